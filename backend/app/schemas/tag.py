from pydantic import BaseModel, field_validator
from datetime import datetime
from uuid import UUID
from app.schemas.user import _require_text


class TagCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _require_text(v, "Tag name")


class TagUpdate(TagCreate):
    pass


class BookTagCreate(BaseModel):
    tag_id: UUID


class TagBrief(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class TagResponse(TagBrief):
    book_count: int
    created_at: datetime
