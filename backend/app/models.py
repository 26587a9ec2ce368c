from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Enum as SQLEnum, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
from app.database import Base


class ReadingStatus(str, enum.Enum):
    TO_READ = "TO_READ"
    READING = "READING"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    books = relationship("Book", back_populates="user", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="user", cascade="all, delete-orphan")
    tags = relationship("Tag", back_populates="user", cascade="all, delete-orphan")
    quotes = relationship("Quote", back_populates="user", cascade="all, delete-orphan")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#3B82F6")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Books keep existing with category_id = NULL when the category goes away
    user = relationship("User", back_populates="categories")
    books = relationship("Book", back_populates="category")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_categories_user_name"),
    )


class Book(Base):
    __tablename__ = "books"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    author = Column(String, nullable=False)
    isbn = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    cover_image = Column(String, nullable=True)
    total_pages = Column(Integer, nullable=True)
    current_page = Column(Integer, nullable=False, default=0)
    status = Column(
        SQLEnum(
            ReadingStatus,
            name="readingstatus",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=ReadingStatus.TO_READ,
    )
    rating = Column(Integer, nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="books")
    category = relationship("Category", back_populates="books")
    book_tags = relationship("BookTag", back_populates="book", cascade="all, delete-orphan")
    quotes = relationship("Quote", back_populates="book", cascade="all, delete-orphan")

    @property
    def tags(self) -> list["Tag"]:
        return [link.tag for link in self.book_tags]


class Tag(Base):
    """
    Free-form label a user attaches to books.

    Scoped per user: two readers may both own a tag called "favorites".
    """
    __tablename__ = "tags"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="tags")
    book_tags = relationship("BookTag", back_populates="tag", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tags_user_name"),
    )


class BookTag(Base):
    __tablename__ = "book_tags"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    book_id = Column(Uuid(as_uuid=True), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id = Column(Uuid(as_uuid=True), ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    book = relationship("Book", back_populates="book_tags")
    tag = relationship("Tag", back_populates="book_tags")

    __table_args__ = (
        UniqueConstraint("book_id", "tag_id", name="uq_book_tags_book_tag"),
    )


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(Uuid(as_uuid=True), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    page = Column(Integer, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="quotes")
    book = relationship("Book", back_populates="quotes")
