from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_
from typing import Optional, List
from uuid import UUID
import logging
from app.database import get_db
from app.core.auth import get_current_user
from app.models import Book, BookTag, User, ReadingStatus
from app.schemas.book import BookResponse, BookCreate, BookUpdate
from app.services.book_service import (
    get_owned_book,
    get_owned_category,
    stamp_status_dates,
    find_or_create_tags,
    attach_tags,
    serialize_book,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=List[BookResponse])
def get_books(
    q: Optional[str] = Query(None, description="Search in title or author"),
    status_filter: Optional[ReadingStatus] = Query(None, alias="status", description="Filter by reading status"),
    category_id: Optional[UUID] = Query(None, description="Filter by category"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's books, most recently updated first."""
    query = (
        db.query(Book)
        .options(
            selectinload(Book.category),
            selectinload(Book.book_tags).selectinload(BookTag.tag),
            selectinload(Book.quotes),
        )
        .filter(Book.user_id == user.id)
    )

    if q:
        qq = f"%{q.strip()}%"
        query = query.filter(or_(Book.title.ilike(qq), Book.author.ilike(qq)))
    if status_filter is not None:
        query = query.filter(Book.status == status_filter)
    if category_id is not None:
        query = query.filter(Book.category_id == category_id)

    books = query.order_by(Book.updated_at.desc()).all()
    return [serialize_book(book) for book in books]


@router.get("/{book_id}", response_model=BookResponse)
def get_book(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return serialize_book(get_owned_book(db, user.id, book_id))


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
def create_book(
    payload: BookCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if payload.category_id is not None:
        get_owned_category(db, user.id, payload.category_id)

    data = payload.model_dump(exclude={"tags"})
    book = Book(user_id=user.id, **data)
    stamp_status_dates(book, payload.status, payload.model_fields_set)
    db.add(book)
    db.flush()

    if payload.tags:
        attach_tags(book, find_or_create_tags(db, user.id, payload.tags))

    db.commit()
    db.refresh(book)
    logger.info("Created book %s for user %s", book.id, user.id)
    return serialize_book(book)


@router.put("/{book_id}", response_model=BookResponse)
def update_book(
    book_id: UUID,
    payload: BookUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Partially update a book.

    Moving into READING stamps start_date and moving into COMPLETED stamps
    end_date, unless the date is already set or sent in the same request.
    """
    book = get_owned_book(db, user.id, book_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("category_id") is not None:
        get_owned_category(db, user.id, data["category_id"])

    previous_status = book.status
    for field, value in data.items():
        setattr(book, field, value)

    new_status = data.get("status")
    if new_status is not None and new_status != previous_status:
        stamp_status_dates(book, new_status, set(data))

    db.commit()
    db.refresh(book)
    return serialize_book(book)


@router.delete("/{book_id}")
def delete_book(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, user.id, book_id)
    db.delete(book)
    db.commit()
    logger.info("Deleted book %s for user %s", book_id, user.id)
    return {"message": "Book deleted"}
