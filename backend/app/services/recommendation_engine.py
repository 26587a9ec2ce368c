"""
Catalog recommendations derived from a user's completed books.

The taste profile is nothing more than two frequency tables (authors and
category names over COMPLETED books). The strongest entries of each table are
turned into Google Books lookups, and the results are filtered against the
user's own library.

Known limitation: "already owned" is decided by case-insensitive exact title
match, not by ISBN, so different editions slip through and unrelated books
with identical titles are dropped.
"""
import logging
from collections import Counter
from typing import List, Tuple, Callable
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.models import Book, ReadingStatus
from app.schemas.recommendation import BookSummary, RecommendationItem
from app.services.google_books import GoogleBooksClient

logger = logging.getLogger(__name__)

TOP_SEEDS = 3
QUERIED_AUTHORS = 2
QUERIED_CATEGORIES = 2
RESULTS_PER_QUERY = 5
MAX_RECOMMENDATIONS = 20


def _get_completed_books(db: Session, user_id: UUID) -> List[Book]:
    return (
        db.query(Book)
        .options(joinedload(Book.category))
        .filter(Book.user_id == user_id, Book.status == ReadingStatus.COMPLETED)
        .all()
    )


def _get_library_titles(db: Session, user_id: UUID) -> set[str]:
    rows = db.query(Book.title).filter(Book.user_id == user_id).all()
    return {title.lower() for (title,) in rows if title}


def top_by_frequency(counts: Counter, n: int) -> List[Tuple[str, int]]:
    """Highest counts first; equal counts ordered by name so results are stable."""
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]


def build_taste_profile(books: List[Book]) -> Tuple[List[str], List[str]]:
    """Return (top authors, top category names) over the given completed books."""
    author_counts = Counter(book.author for book in books if book.author)
    category_counts = Counter(book.category.name for book in books if book.category is not None)
    top_authors = [name for name, _ in top_by_frequency(author_counts, TOP_SEEDS)]
    top_categories = [name for name, _ in top_by_frequency(category_counts, TOP_SEEDS)]
    return top_authors, top_categories


def _collect(
    lookup: Callable[[str, int], List[BookSummary]],
    seed: str,
    recommendation_type: str,
    reason: str,
) -> List[RecommendationItem]:
    try:
        results = lookup(seed, RESULTS_PER_QUERY)
    except Exception:
        # One broken source must not sink the whole list
        logger.warning("Recommendation lookup failed: type=%s seed=%r", recommendation_type, seed, exc_info=True)
        return []

    return [
        RecommendationItem(
            **summary.model_dump(),
            recommendation_type=recommendation_type,
            recommendation_reason=reason,
        )
        for summary in results
    ]


def filter_candidates(
    candidates: List[RecommendationItem],
    owned_titles: set[str],
    limit: int = MAX_RECOMMENDATIONS,
) -> List[RecommendationItem]:
    """Drop owned titles, keep the first occurrence of each external id, then truncate."""
    seen_ids = set()
    result = []
    for candidate in candidates:
        if candidate.title.lower() in owned_titles:
            continue
        if candidate.external_id in seen_ids:
            continue
        seen_ids.add(candidate.external_id)
        result.append(candidate)
        if len(result) >= limit:
            break
    return result


def get_recommendations(
    db: Session,
    user_id: UUID,
    catalog: GoogleBooksClient,
) -> List[RecommendationItem]:
    completed = _get_completed_books(db, user_id)
    if not completed:
        logger.info("User %s has no completed books, nothing to recommend from", user_id)
        return []

    top_authors, top_categories = build_taste_profile(completed)
    logger.info(
        "Recommendation seeds for user %s: authors=%s categories=%s",
        user_id, top_authors, top_categories,
    )

    candidates: List[RecommendationItem] = []
    for author in top_authors[:QUERIED_AUTHORS]:
        candidates.extend(_collect(
            catalog.search_by_author,
            author,
            "author",
            f"Because you enjoyed books by {author}",
        ))
    for category in top_categories[:QUERIED_CATEGORIES]:
        candidates.extend(_collect(
            catalog.search_by_subject,
            category,
            "category",
            f"Because you read a lot of {category}",
        ))

    recommendations = filter_candidates(candidates, _get_library_titles(db, user_id))
    logger.info(
        "Built %d recommendation(s) for user %s from %d candidate(s)",
        len(recommendations), user_id, len(candidates),
    )
    return recommendations
