from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from app.schemas.book import BookBrief
from app.schemas.user import _require_text


class QuoteCreate(BaseModel):
    book_id: UUID
    text: str
    page: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v):
        return _require_text(v, "Quote text")


class QuoteUpdate(BaseModel):
    text: str
    page: Optional[int] = Field(None, ge=0)
    note: Optional[str] = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v):
        return _require_text(v, "Quote text")


class QuoteResponse(BaseModel):
    id: UUID
    book_id: UUID
    text: str
    page: Optional[int]
    note: Optional[str]
    created_at: datetime
    book: Optional[BookBrief] = None

    class Config:
        from_attributes = True
