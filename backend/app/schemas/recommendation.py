from pydantic import BaseModel
from typing import Optional, List, Literal


class BookSummary(BaseModel):
    """Catalog entry normalized away from the Google Books volume format."""
    external_id: str
    title: str = "Untitled"
    author: str = "Unknown"
    authors: List[str] = ["Unknown"]
    description: str = ""
    isbn: str = ""
    cover_image: str = ""
    page_count: Optional[int] = None
    categories: List[str] = []
    average_rating: Optional[float] = None
    ratings_count: int = 0
    published_date: str = ""
    publisher: str = ""
    language: str = ""


class RecommendationItem(BookSummary):
    recommendation_type: Literal["author", "category"]
    recommendation_reason: str


class SearchResponse(BaseModel):
    books: List[BookSummary]


class IsbnLookupResponse(BaseModel):
    book: BookSummary


class RecommendationsResponse(BaseModel):
    recommendations: List[RecommendationItem]
