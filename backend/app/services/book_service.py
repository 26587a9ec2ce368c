import logging
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models import Book, BookTag, Category, Tag, ReadingStatus
from app.schemas.book import BookResponse
from app.schemas.category import CategoryBrief
from app.schemas.tag import TagBrief

logger = logging.getLogger(__name__)


def not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def get_owned_book(db: Session, user_id: UUID, book_id: UUID) -> Book:
    """Missing and foreign books both surface as the same 404."""
    book = db.query(Book).filter(Book.id == book_id, Book.user_id == user_id).first()
    if not book:
        raise not_found("Book not found")
    return book


def get_owned_category(db: Session, user_id: UUID, category_id: UUID) -> Category:
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.user_id == user_id,
    ).first()
    if not category:
        raise not_found("Category not found")
    return category


def get_owned_tag(db: Session, user_id: UUID, tag_id: UUID) -> Tag:
    tag = db.query(Tag).filter(Tag.id == tag_id, Tag.user_id == user_id).first()
    if not tag:
        raise not_found("Tag not found")
    return tag


def reading_progress(current_page: Optional[int], total_pages: Optional[int]) -> int:
    """Percent read, derived on the fly. current_page > total_pages is allowed and caps at 100."""
    if not total_pages or total_pages <= 0:
        return 0
    percent = round((current_page or 0) / total_pages * 100)
    return max(0, min(100, percent))


def stamp_status_dates(
    book: Book,
    new_status: Optional[ReadingStatus],
    explicit_fields: set[str],
    now: Optional[datetime] = None,
) -> None:
    """
    Fill start_date when a book moves into READING and end_date when it moves
    into COMPLETED. Existing dates and dates sent by the client win.
    """
    if new_status is None:
        return
    now = now or datetime.utcnow()
    if new_status == ReadingStatus.READING and book.start_date is None and "start_date" not in explicit_fields:
        book.start_date = now
    elif new_status == ReadingStatus.COMPLETED and book.end_date is None and "end_date" not in explicit_fields:
        book.end_date = now


def find_or_create_tags(db: Session, user_id: UUID, names: List[str]) -> List[Tag]:
    tags = []
    for name in names:
        tag = db.query(Tag).filter(Tag.user_id == user_id, Tag.name == name).first()
        if tag is None:
            tag = Tag(user_id=user_id, name=name)
            db.add(tag)
            db.flush()
            logger.info("Created tag %r for user %s", name, user_id)
        tags.append(tag)
    return tags


def attach_tags(book: Book, tags: List[Tag]) -> None:
    linked = {link.tag_id for link in book.book_tags}
    for tag in tags:
        if tag.id not in linked:
            book.book_tags.append(BookTag(tag=tag))
            linked.add(tag.id)


def serialize_book(book: Book) -> BookResponse:
    return BookResponse(
        id=book.id,
        title=book.title,
        author=book.author,
        isbn=book.isbn,
        description=book.description,
        cover_image=book.cover_image,
        total_pages=book.total_pages,
        current_page=book.current_page or 0,
        progress=reading_progress(book.current_page, book.total_pages),
        status=book.status,
        rating=book.rating,
        start_date=book.start_date,
        end_date=book.end_date,
        category_id=book.category_id,
        category=CategoryBrief.model_validate(book.category) if book.category else None,
        tags=[TagBrief.model_validate(tag) for tag in sorted(book.tags, key=lambda t: t.name)],
        quote_count=len(book.quotes),
        created_at=book.created_at,
        updated_at=book.updated_at,
    )
