from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, timezone
from uuid import UUID
from app.models import ReadingStatus
from app.schemas.category import CategoryBrief
from app.schemas.tag import TagBrief
from app.schemas.user import _require_text


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Stored dates are naive UTC, same as the ones stamped server-side
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class BookCreate(BaseModel):
    title: str
    author: str
    isbn: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)
    current_page: int = Field(0, ge=0)
    status: ReadingStatus = ReadingStatus.TO_READ
    rating: Optional[int] = Field(None, ge=1, le=5)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category_id: Optional[UUID] = None
    tags: list[str] = []

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        return _require_text(v, "Title")

    @field_validator("author")
    @classmethod
    def author_not_blank(cls, v):
        return _require_text(v, "Author")

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_to_utc(cls, v):
        return _to_naive_utc(v)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        cleaned = []
        for name in v:
            name = name.strip()
            if name and name not in cleaned:
                cleaned.append(name)
        return cleaned


class BookUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)
    current_page: Optional[int] = Field(None, ge=0)
    status: Optional[ReadingStatus] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category_id: Optional[UUID] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        return _require_text(v, "Title")

    @field_validator("author")
    @classmethod
    def author_not_blank(cls, v):
        return _require_text(v, "Author")

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_to_utc(cls, v):
        return _to_naive_utc(v)

    @field_validator("status", "current_page")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class BookResponse(BaseModel):
    id: UUID
    title: str
    author: str
    isbn: Optional[str]
    description: Optional[str]
    cover_image: Optional[str]
    total_pages: Optional[int]
    current_page: int
    progress: int
    status: ReadingStatus
    rating: Optional[int]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    category_id: Optional[UUID]
    category: Optional[CategoryBrief]
    tags: list[TagBrief]
    quote_count: int
    created_at: datetime
    updated_at: datetime


class BookBrief(BaseModel):
    id: UUID
    title: str
    author: str
    cover_image: Optional[str]

    class Config:
        from_attributes = True
