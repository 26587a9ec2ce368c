from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from typing import List
from uuid import UUID
import logging

from app.database import get_db
from app.core.auth import get_current_user
from app.models import BookTag, Tag, User
from app.schemas.tag import TagCreate, TagUpdate, TagResponse
from app.services.book_service import get_owned_tag

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tags", tags=["tags"])

DUPLICATE_NAME = "A tag with this name already exists"


def _to_response(tag: Tag, book_count: int) -> TagResponse:
    return TagResponse(id=tag.id, name=tag.name, book_count=book_count, created_at=tag.created_at)


def _ensure_unique_name(db: Session, user_id: UUID, name: str, exclude_id: UUID = None) -> None:
    query = db.query(Tag).filter(Tag.user_id == user_id, Tag.name == name)
    if exclude_id is not None:
        query = query.filter(Tag.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_NAME)


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_NAME)


@router.get("", response_model=List[TagResponse])
def get_tags(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(Tag, func.count(BookTag.id))
        .outerjoin(BookTag, BookTag.tag_id == Tag.id)
        .filter(Tag.user_id == user.id)
        .group_by(Tag.id)
        .order_by(Tag.name.asc())
        .all()
    )
    return [_to_response(tag, count) for tag, count in rows]


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
def create_tag(
    payload: TagCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_unique_name(db, user.id, payload.name)
    tag = Tag(user_id=user.id, name=payload.name)
    db.add(tag)
    _commit_or_conflict(db)
    db.refresh(tag)
    return _to_response(tag, 0)


@router.put("/{tag_id}", response_model=TagResponse)
def update_tag(
    tag_id: UUID,
    payload: TagUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tag = get_owned_tag(db, user.id, tag_id)
    _ensure_unique_name(db, user.id, payload.name, exclude_id=tag.id)
    tag.name = payload.name
    _commit_or_conflict(db)
    db.refresh(tag)
    count = db.query(func.count(BookTag.id)).filter(BookTag.tag_id == tag.id).scalar() or 0
    return _to_response(tag, count)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tag(
    tag_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a tag and detach it from every book; the books themselves stay."""
    tag = get_owned_tag(db, user.id, tag_id)
    db.delete(tag)
    db.commit()
    logger.info("Deleted tag %s for user %s", tag_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
