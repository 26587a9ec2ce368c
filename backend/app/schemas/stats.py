from pydantic import BaseModel


class StatsOverview(BaseModel):
    total_books: int = 0
    completed_books: int = 0
    currently_reading: int = 0
    to_read_books: int = 0
    abandoned_books: int = 0
    total_quotes: int = 0
    avg_pages: int = 0
    avg_reading_speed: int = 0  # pages per day


class CategoryCount(BaseModel):
    name: str
    count: int
    color: str


class MonthlyCount(BaseModel):
    year: int
    month: int
    count: int


class AuthorCount(BaseModel):
    name: str
    count: int


class StatsResponse(BaseModel):
    """Aggregation snapshot of one user's library at request time."""
    overview: StatsOverview
    books_by_category: list[CategoryCount]
    monthly_stats: list[MonthlyCount]
    top_authors: list[AuthorCount]
