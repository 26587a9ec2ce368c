"""
Google Books search, ISBN lookup and history-based recommendations.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.database import get_db
from app.core.auth import get_current_user
from app.models import User
from app.schemas.recommendation import SearchResponse, IsbnLookupResponse, RecommendationsResponse
from app.services import recommendation_engine
from app.services.google_books import GoogleBooksClient, get_catalog_client, MAX_RESULTS_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/books", response_model=SearchResponse)
def search_books(
    q: Optional[str] = Query(None, description="Free-text query"),
    max_results: int = Query(10, alias="maxResults", ge=1, le=MAX_RESULTS_LIMIT),
    user: User = Depends(get_current_user),
    catalog: GoogleBooksClient = Depends(get_catalog_client),
):
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required",
        )
    return {"books": catalog.search(q.strip(), max_results)}


@router.get("/isbn/{isbn}", response_model=IsbnLookupResponse)
def search_isbn(
    isbn: str,
    user: User = Depends(get_current_user),
    catalog: GoogleBooksClient = Depends(get_catalog_client),
):
    book = catalog.lookup_isbn(isbn)
    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found",
        )
    return {"book": book}


@router.get("/recommendations", response_model=RecommendationsResponse)
def get_recommendations(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: GoogleBooksClient = Depends(get_catalog_client),
):
    logger.info("Fetching recommendations for user %s", user.id)
    items = recommendation_engine.get_recommendations(db=db, user_id=user.id, catalog=catalog)
    return {"recommendations": items}
