from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from app.schemas.user import _require_text

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreate(BaseModel):
    name: str
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _require_text(v, "Category name")


class CategoryUpdate(CategoryCreate):
    pass


class CategoryBrief(BaseModel):
    id: UUID
    name: str
    color: str

    class Config:
        from_attributes = True


class CategoryResponse(CategoryBrief):
    book_count: int
    created_at: datetime
