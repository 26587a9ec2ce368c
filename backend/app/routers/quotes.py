from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload
from typing import List
from uuid import UUID
import logging

from app.database import get_db
from app.core.auth import get_current_user
from app.models import Quote, User
from app.schemas.quote import QuoteCreate, QuoteUpdate, QuoteResponse
from app.services.book_service import get_owned_book, not_found

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])


def _get_owned_quote(db: Session, user_id: UUID, quote_id: UUID) -> Quote:
    quote = db.query(Quote).filter(Quote.id == quote_id, Quote.user_id == user_id).first()
    if not quote:
        raise not_found("Quote not found")
    return quote


@router.get("", response_model=List[QuoteResponse])
def get_quotes(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All quotes of the current user, newest first, each with a short book summary."""
    return (
        db.query(Quote)
        .options(joinedload(Quote.book))
        .filter(Quote.user_id == user.id)
        .order_by(Quote.created_at.desc())
        .all()
    )


@router.get("/book/{book_id}", response_model=List[QuoteResponse])
def get_book_quotes(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, user.id, book_id)
    quotes = (
        db.query(Quote)
        .filter(Quote.book_id == book.id, Quote.user_id == user.id)
        .order_by(Quote.created_at.asc())
        .all()
    )
    # Quotes without a page number go last
    return sorted(quotes, key=lambda q: (q.page is None, q.page or 0))


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
def create_quote(
    payload: QuoteCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, user.id, payload.book_id)
    quote = Quote(
        user_id=user.id,
        book_id=book.id,
        text=payload.text,
        page=payload.page,
        note=payload.note,
    )
    db.add(quote)
    db.commit()
    db.refresh(quote)
    logger.info("Created quote %s on book %s", quote.id, book.id)
    return quote


@router.put("/{quote_id}", response_model=QuoteResponse)
def update_quote(
    quote_id: UUID,
    payload: QuoteUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = _get_owned_quote(db, user.id, quote_id)
    quote.text = payload.text
    quote.page = payload.page
    quote.note = payload.note
    db.commit()
    db.refresh(quote)
    return quote


@router.delete("/{quote_id}")
def delete_quote(
    quote_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = _get_owned_quote(db, user.id, quote_id)
    db.delete(quote)
    db.commit()
    return {"message": "Quote deleted"}
