"""
Reading statistics for a single user.

Everything is recomputed from the database on each call; nothing is cached.
All queries are filtered by user_id.
"""
import logging
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional, List
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import Book, Category, Quote, ReadingStatus
from app.schemas.stats import (
    StatsOverview,
    CategoryCount,
    MonthlyCount,
    AuthorCount,
    StatsResponse,
)

logger = logging.getLogger(__name__)

TOP_AUTHORS_LIMIT = 5
READING_SPEED_SAMPLE_SIZE = 10
SECONDS_PER_DAY = 24 * 60 * 60


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _count_books(db: Session, user_id: UUID, status: Optional[ReadingStatus] = None) -> int:
    query = db.query(func.count(Book.id)).filter(Book.user_id == user_id)
    if status is not None:
        query = query.filter(Book.status == status)
    return query.scalar() or 0


def _books_by_category(db: Session, user_id: UUID) -> List[CategoryCount]:
    rows = (
        db.query(Category.name, Category.color, func.count(Book.id))
        .outerjoin(Book, Book.category_id == Category.id)
        .filter(Category.user_id == user_id)
        .group_by(Category.id, Category.name, Category.color)
        .order_by(Category.name.asc())
        .all()
    )
    return [CategoryCount(name=name, color=color, count=count) for name, color, count in rows]


def _one_year_before(now: datetime) -> datetime:
    try:
        return now.replace(year=now.year - 1)
    except ValueError:
        # Feb 29 has no counterpart in the previous year
        return now.replace(year=now.year - 1, day=28)


def _monthly_completions(db: Session, user_id: UUID, now: datetime) -> List[MonthlyCount]:
    """Completed books over the trailing 12 months, bucketed by calendar month."""
    since = _one_year_before(now)
    end_dates = (
        db.query(Book.end_date)
        .filter(
            Book.user_id == user_id,
            Book.status == ReadingStatus.COMPLETED,
            Book.end_date.isnot(None),
            Book.end_date >= since,
        )
        .all()
    )
    buckets = Counter((end_date.year, end_date.month) for (end_date,) in end_dates)
    return [
        MonthlyCount(year=year, month=month, count=count)
        for (year, month), count in sorted(buckets.items())
    ]


def _average_pages(db: Session, user_id: UUID) -> int:
    avg = (
        db.query(func.avg(Book.total_pages))
        .filter(Book.user_id == user_id, Book.total_pages.isnot(None))
        .scalar()
    )
    return round_half_up(float(avg)) if avg is not None else 0


def _top_authors(db: Session, user_id: UUID) -> List[AuthorCount]:
    count_col = func.count(Book.id)
    rows = (
        db.query(Book.author, count_col)
        .filter(Book.user_id == user_id, Book.status == ReadingStatus.COMPLETED)
        .group_by(Book.author)
        .order_by(count_col.desc(), Book.author.asc())
        .limit(TOP_AUTHORS_LIMIT)
        .all()
    )
    return [AuthorCount(name=author, count=count) for author, count in rows]


def reading_days(start_date: datetime, end_date: datetime) -> int:
    """Whole days spent on a book, rounded up. Same-day reads count as 0."""
    return math.ceil((end_date - start_date).total_seconds() / SECONDS_PER_DAY)


def _average_reading_speed(db: Session, user_id: UUID) -> int:
    """Pages per day over the most recently completed books that have dates and a page count."""
    sample = (
        db.query(Book)
        .filter(
            Book.user_id == user_id,
            Book.status == ReadingStatus.COMPLETED,
            Book.start_date.isnot(None),
            Book.end_date.isnot(None),
            Book.total_pages.isnot(None),
        )
        .order_by(Book.end_date.desc())
        .limit(READING_SPEED_SAMPLE_SIZE)
        .all()
    )
    if not sample:
        return 0

    total_days = sum(reading_days(book.start_date, book.end_date) for book in sample)
    total_pages = sum(book.total_pages or 0 for book in sample)
    if total_days <= 0:
        return 0
    return round_half_up(total_pages / total_days)


def compute_reading_stats(db: Session, user_id: UUID, now: Optional[datetime] = None) -> StatsResponse:
    now = now or datetime.utcnow()

    overview = StatsOverview(
        total_books=_count_books(db, user_id),
        completed_books=_count_books(db, user_id, ReadingStatus.COMPLETED),
        currently_reading=_count_books(db, user_id, ReadingStatus.READING),
        to_read_books=_count_books(db, user_id, ReadingStatus.TO_READ),
        abandoned_books=_count_books(db, user_id, ReadingStatus.ABANDONED),
        total_quotes=db.query(func.count(Quote.id)).filter(Quote.user_id == user_id).scalar() or 0,
        avg_pages=_average_pages(db, user_id),
        avg_reading_speed=_average_reading_speed(db, user_id),
    )

    stats = StatsResponse(
        overview=overview,
        books_by_category=_books_by_category(db, user_id),
        monthly_stats=_monthly_completions(db, user_id, now),
        top_authors=_top_authors(db, user_id),
    )
    logger.debug("Computed stats for user %s: %s", user_id, overview)
    return stats
