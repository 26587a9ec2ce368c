"""
Attach and detach tags on a single book.
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from uuid import UUID
import logging

from app.database import get_db
from app.core.auth import get_current_user
from app.models import BookTag, User
from app.schemas.tag import BookTagCreate, TagBrief
from app.services.book_service import get_owned_book, get_owned_tag, not_found

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["book-tags"])

DUPLICATE_LINK = "This tag is already attached to the book"


@router.post("/{book_id}/tags", response_model=TagBrief, status_code=status.HTTP_201_CREATED)
def add_tag_to_book(
    book_id: UUID,
    payload: BookTagCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, user.id, book_id)
    tag = get_owned_tag(db, user.id, payload.tag_id)

    existing = db.query(BookTag).filter(
        BookTag.book_id == book.id,
        BookTag.tag_id == tag.id,
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_LINK)

    try:
        db.add(BookTag(book_id=book.id, tag_id=tag.id))
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent request adding the same pair
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_LINK)

    logger.info("Tagged book %s with %s", book.id, tag.id)
    return tag


@router.delete("/{book_id}/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_tag_from_book(
    book_id: UUID,
    tag_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, user.id, book_id)

    link = db.query(BookTag).filter(
        BookTag.book_id == book.id,
        BookTag.tag_id == tag_id,
    ).first()
    if not link:
        raise not_found("Tag is not attached to this book")

    db.delete(link)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
