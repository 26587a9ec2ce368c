from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from typing import List
from uuid import UUID
import logging

from app.database import get_db
from app.core.auth import get_current_user
from app.core.config import settings
from app.models import Book, Category, User
from app.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from app.services.book_service import get_owned_category

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])

DUPLICATE_NAME = "A category with this name already exists"


def _to_response(category: Category, book_count: int) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        color=category.color,
        book_count=book_count,
        created_at=category.created_at,
    )


def _book_count(db: Session, category: Category) -> int:
    return db.query(func.count(Book.id)).filter(Book.category_id == category.id).scalar() or 0


def _ensure_unique_name(db: Session, user_id: UUID, name: str, exclude_id: UUID = None) -> None:
    query = db.query(Category).filter(Category.user_id == user_id, Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_NAME)


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_NAME)


@router.get("", response_model=List[CategoryResponse])
def get_categories(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(Category, func.count(Book.id))
        .outerjoin(Book, Book.category_id == Category.id)
        .filter(Category.user_id == user.id)
        .group_by(Category.id)
        .order_by(Category.name.asc())
        .all()
    )
    return [_to_response(category, count) for category, count in rows]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_unique_name(db, user.id, payload.name)

    category = Category(
        user_id=user.id,
        name=payload.name,
        color=payload.color or settings.DEFAULT_CATEGORY_COLOR,
    )
    db.add(category)
    _commit_or_conflict(db)
    db.refresh(category)
    return _to_response(category, 0)


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = get_owned_category(db, user.id, category_id)
    _ensure_unique_name(db, user.id, payload.name, exclude_id=category.id)

    category.name = payload.name
    if payload.color:
        category.color = payload.color
    _commit_or_conflict(db)
    db.refresh(category)
    return _to_response(category, _book_count(db, category))


@router.delete("/{category_id}")
def delete_category(
    category_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a category. Its books stay in the library, uncategorized."""
    category = get_owned_category(db, user.id, category_id)
    db.query(Book).filter(
        Book.user_id == user.id,
        Book.category_id == category.id,
    ).update({Book.category_id: None}, synchronize_session="fetch")
    db.delete(category)
    db.commit()
    logger.info("Deleted category %s for user %s", category_id, user.id)
    return {"message": "Category deleted"}
