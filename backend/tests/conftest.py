"""Pytest configuration for backend tests."""
import sys
import os
from pathlib import Path
from typing import Dict, List, Optional
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are read at import time, so the app must never see a real database URL here
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient

from app.database import Base, get_db
# Import the entire models module to ensure all models are registered with Base.metadata
import app.models  # noqa: F401
from app.models import User
from app.core.security import get_password_hash, create_access_token
from app.main import app as fastapi_app
from app.schemas.recommendation import BookSummary
from app.services.google_books import get_catalog_client

# Defaults to a throwaway in-memory SQLite database; point at Postgres to run against it
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="function")
def engine():
    """
    Fresh schema for every test.

    In-memory SQLite needs StaticPool so every session sees the same connection.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        test_engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        test_engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)

    if not Base.metadata.tables:
        raise RuntimeError(
            "No tables registered in Base.metadata. "
            "Did you import app.models? All model classes must be imported before create_all()."
        )

    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    """Database session shared by the test body and the app under test."""
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()


class FakeCatalog:
    """
    Stand-in for GoogleBooksClient.

    `results` maps ("author" | "subject" | "search", term) to summaries; a
    value that is an Exception instance is raised instead.
    """

    def __init__(self):
        self.results: Dict[tuple, object] = {}
        self.isbn_results: Dict[str, BookSummary] = {}
        self.calls: List[tuple] = []

    def _answer(self, kind: str, term: str, max_results: int) -> List[BookSummary]:
        self.calls.append((kind, term, max_results))
        value = self.results.get((kind, term), [])
        if isinstance(value, Exception):
            raise value
        return list(value)[:max_results]

    def search(self, query: str, max_results: int = 10) -> List[BookSummary]:
        return self._answer("search", query, max_results)

    def search_by_author(self, author: str, max_results: int = 5) -> List[BookSummary]:
        return self._answer("author", author, max_results)

    def search_by_subject(self, subject: str, max_results: int = 5) -> List[BookSummary]:
        return self._answer("subject", subject, max_results)

    def lookup_isbn(self, isbn: str) -> Optional[BookSummary]:
        self.calls.append(("isbn", isbn, 1))
        return self.isbn_results.get(isbn)


def make_summary(external_id: str, title: str, author: str = "Someone") -> BookSummary:
    return BookSummary(external_id=external_id, title=title, author=author, authors=[author])


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def client(db: Session, catalog: FakeCatalog):
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_catalog_client] = lambda: catalog
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


def _create_user(db: Session, email: str, name: str) -> User:
    user = User(email=email, name=name, password_hash=get_password_hash("secret123"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db: Session) -> User:
    return _create_user(db, "reader@example.com", "Reader")


@pytest.fixture
def other_user(db: Session) -> User:
    return _create_user(db, "other@example.com", "Other Reader")


@pytest.fixture
def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def other_headers(other_user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(other_user.id)})}"}
