"""Tests for the reading statistics aggregation."""
from datetime import datetime, timedelta

import pytest

from app.models import Book, Category, Quote, ReadingStatus
from app.services.stats_service import compute_reading_stats, reading_days, round_half_up

NOW = datetime(2026, 6, 15, 12, 0, 0)


def _add_book(db, user, **fields):
    defaults = {"title": "Untitled", "author": "Anon", "status": ReadingStatus.TO_READ}
    defaults.update(fields)
    book = Book(user_id=user.id, **defaults)
    db.add(book)
    db.commit()
    return book


def test_empty_library_returns_zeros(db, user):
    stats = compute_reading_stats(db, user.id, now=NOW)
    assert stats.overview.model_dump() == {
        "total_books": 0,
        "completed_books": 0,
        "currently_reading": 0,
        "to_read_books": 0,
        "abandoned_books": 0,
        "total_quotes": 0,
        "avg_pages": 0,
        "avg_reading_speed": 0,
    }
    assert stats.books_by_category == []
    assert stats.monthly_stats == []
    assert stats.top_authors == []


def test_status_counts_partition_total(db, user):
    for status in [ReadingStatus.TO_READ, ReadingStatus.TO_READ, ReadingStatus.READING,
                   ReadingStatus.COMPLETED, ReadingStatus.ABANDONED]:
        _add_book(db, user, status=status)

    overview = compute_reading_stats(db, user.id, now=NOW).overview
    assert overview.total_books == 5
    assert overview.to_read_books == 2
    assert overview.currently_reading == 1
    assert overview.completed_books == 1
    assert overview.abandoned_books == 1
    assert (overview.to_read_books + overview.currently_reading
            + overview.completed_books + overview.abandoned_books) == overview.total_books


def test_other_users_books_are_ignored(db, user, other_user):
    _add_book(db, other_user, status=ReadingStatus.COMPLETED, total_pages=500)
    stats = compute_reading_stats(db, user.id, now=NOW)
    assert stats.overview.total_books == 0
    assert stats.overview.avg_pages == 0


def test_quote_count(db, user):
    book = _add_book(db, user)
    db.add_all([Quote(user_id=user.id, book_id=book.id, text=f"q{i}") for i in range(3)])
    db.commit()
    assert compute_reading_stats(db, user.id, now=NOW).overview.total_quotes == 3


def test_avg_pages_ignores_missing_page_counts(db, user):
    _add_book(db, user, total_pages=100)
    _add_book(db, user, total_pages=201)
    _add_book(db, user, total_pages=None)
    # (100 + 201) / 2 = 150.5 rounds half up
    assert compute_reading_stats(db, user.id, now=NOW).overview.avg_pages == 151


def test_books_by_category_includes_empty_categories(db, user):
    fiction = Category(user_id=user.id, name="Fiction", color="#111111")
    empty = Category(user_id=user.id, name="Biography", color="#222222")
    db.add_all([fiction, empty])
    db.commit()
    _add_book(db, user, category_id=fiction.id)
    _add_book(db, user, category_id=fiction.id)
    _add_book(db, user)

    rows = compute_reading_stats(db, user.id, now=NOW).books_by_category
    assert [(r.name, r.count, r.color) for r in rows] == [
        ("Biography", 0, "#222222"),
        ("Fiction", 2, "#111111"),
    ]


def test_monthly_stats_bucket_by_calendar_month(db, user):
    completed = ReadingStatus.COMPLETED
    _add_book(db, user, status=completed, end_date=datetime(2026, 6, 1, 9, 0))
    _add_book(db, user, status=completed, end_date=datetime(2026, 6, 14, 22, 30))
    _add_book(db, user, status=completed, end_date=datetime(2025, 12, 3))
    # outside the trailing 12 months
    _add_book(db, user, status=completed, end_date=datetime(2025, 6, 1))
    # not completed
    _add_book(db, user, status=ReadingStatus.ABANDONED, end_date=datetime(2026, 5, 1))

    monthly = compute_reading_stats(db, user.id, now=NOW).monthly_stats
    assert [(m.year, m.month, m.count) for m in monthly] == [(2025, 12, 1), (2026, 6, 2)]


def test_top_authors_limit_and_tie_break(db, user):
    counts = {"Zadie Smith": 2, "Anne Carson": 2, "Ted Chiang": 3, "Ali Smith": 1,
              "Bo Yang": 1, "Cy Twombly": 1, "Dee Rees": 1}
    for author, n in counts.items():
        for _ in range(n):
            _add_book(db, user, author=author, status=ReadingStatus.COMPLETED)
    _add_book(db, user, author="Unread Author", status=ReadingStatus.TO_READ)

    top = compute_reading_stats(db, user.id, now=NOW).top_authors
    assert [(a.name, a.count) for a in top] == [
        ("Ted Chiang", 3),
        ("Anne Carson", 2),
        ("Zadie Smith", 2),
        ("Ali Smith", 1),
        ("Bo Yang", 1),
    ]


def test_reading_speed_over_qualifying_books(db, user):
    start = datetime(2026, 1, 1)
    _add_book(db, user, status=ReadingStatus.COMPLETED, total_pages=300,
              start_date=start, end_date=start + timedelta(days=10))
    _add_book(db, user, status=ReadingStatus.COMPLETED, total_pages=100,
              start_date=start, end_date=start + timedelta(days=4, hours=1))  # ceil -> 5 days
    # missing start date, not part of the sample
    _add_book(db, user, status=ReadingStatus.COMPLETED, total_pages=900, end_date=start)

    # 400 pages / 15 days = 26.67
    assert compute_reading_stats(db, user.id, now=NOW).overview.avg_reading_speed == 27


def test_reading_speed_uses_ten_most_recent(db, user):
    base = datetime(2025, 1, 1)
    for i in range(10):
        end = base + timedelta(days=30 * (i + 1))
        _add_book(db, user, status=ReadingStatus.COMPLETED, total_pages=100,
                  start_date=end - timedelta(days=10), end_date=end)
    # oldest book, would drag the average to 1000 pages/day if counted
    _add_book(db, user, status=ReadingStatus.COMPLETED, total_pages=10000,
              start_date=base - timedelta(days=10), end_date=base)

    assert compute_reading_stats(db, user.id, now=NOW).overview.avg_reading_speed == 10


def test_reading_speed_same_day_does_not_divide_by_zero(db, user):
    day = datetime(2026, 3, 3, 10, 0)
    _add_book(db, user, status=ReadingStatus.COMPLETED, total_pages=120, start_date=day, end_date=day)
    assert compute_reading_stats(db, user.id, now=NOW).overview.avg_reading_speed == 0


def test_reading_speed_without_qualifying_books(db, user):
    _add_book(db, user, status=ReadingStatus.COMPLETED, total_pages=None,
              start_date=datetime(2026, 1, 1), end_date=datetime(2026, 1, 5))
    assert compute_reading_stats(db, user.id, now=NOW).overview.avg_reading_speed == 0


@pytest.mark.parametrize("delta,expected", [
    (timedelta(0), 0),
    (timedelta(hours=1), 1),
    (timedelta(days=1), 1),
    (timedelta(days=2, seconds=1), 3),
])
def test_reading_days_rounds_up(delta, expected):
    start = datetime(2026, 1, 1)
    assert reading_days(start, start + delta) == expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_stats_endpoint(client, auth_headers):
    client.post("/api/books", json={"title": "Dune", "author": "Frank Herbert", "total_pages": 412},
                headers=auth_headers)
    response = client.get("/api/stats", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["overview"]["total_books"] == 1
    assert body["overview"]["avg_pages"] == 412
    assert set(body) == {"overview", "books_by_category", "monthly_stats", "top_authors"}
