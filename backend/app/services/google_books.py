"""
Google Books catalog client.

Every outbound call carries a bounded timeout and is never retried. List
lookups degrade to an empty list when Google is unreachable or answers with
garbage; the ISBN lookup degrades to None.
"""
import logging
from typing import Optional, Dict, Any, List

import requests

from app.core.config import settings
from app.schemas.recommendation import BookSummary

logger = logging.getLogger(__name__)

# Google caps maxResults at 40 per request
MAX_RESULTS_LIMIT = 40


class CatalogError(Exception):
    """Raised when the catalog could not be reached or returned an unusable payload."""
    pass


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _extract_isbn(volume_info: dict) -> str:
    isbn_10 = None
    isbn_13 = None
    identifiers = volume_info.get("industryIdentifiers")
    if not isinstance(identifiers, list):
        return ""
    for ident in identifiers:
        ident = _as_dict(ident)
        t = ident.get("type")
        val = ident.get("identifier")
        if not val:
            continue
        if t == "ISBN_13" and isbn_13 is None:
            isbn_13 = str(val)
        elif t == "ISBN_10" and isbn_10 is None:
            isbn_10 = str(val)
    return isbn_13 or isbn_10 or ""


def _secure_url(url: Any) -> str:
    if not isinstance(url, str) or not url:
        return ""
    if url.startswith("http:"):
        return "https:" + url[len("http:"):]
    return url


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def normalize_volume(item: Any) -> Optional[BookSummary]:
    """
    Map one Google Books volume onto a BookSummary.

    Every missing or malformed field falls back to its default. Items without
    a volume id cannot be deduplicated or imported and are dropped (None).
    """
    item = _as_dict(item)
    volume_id = item.get("id")
    if not volume_id:
        return None

    info = _as_dict(item.get("volumeInfo"))
    authors = _as_str_list(info.get("authors"))
    image_links = _as_dict(info.get("imageLinks"))
    title = info.get("title")

    return BookSummary(
        external_id=str(volume_id),
        title=str(title) if title else "Untitled",
        author=", ".join(authors) if authors else "Unknown",
        authors=authors or ["Unknown"],
        description=str(info.get("description") or ""),
        isbn=_extract_isbn(info),
        cover_image=_secure_url(image_links.get("thumbnail")),
        page_count=_optional_int(info.get("pageCount")),
        categories=_as_str_list(info.get("categories")),
        average_rating=_optional_float(info.get("averageRating")),
        ratings_count=_optional_int(info.get("ratingsCount")) or 0,
        published_date=str(info.get("publishedDate") or ""),
        publisher=str(info.get("publisher") or ""),
        language=str(info.get("language") or ""),
    )


class GoogleBooksClient:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = settings.GOOGLE_BOOKS_BASE_URL,
        api_key: Optional[str] = settings.GOOGLE_BOOKS_API_KEY,
        timeout: float = settings.GOOGLE_BOOKS_TIMEOUT_SECONDS,
        lang_restrict: Optional[str] = settings.GOOGLE_BOOKS_LANG_RESTRICT,
    ):
        self.session = session or requests.Session()
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.lang_restrict = lang_restrict

    def close(self) -> None:
        self.session.close()

    def _build_params(self, query: str, max_results: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "q": query,
            "maxResults": max(1, min(max_results, MAX_RESULTS_LIMIT)),
        }
        if self.lang_restrict:
            params["langRestrict"] = self.lang_restrict
        if self.api_key:
            params["key"] = self.api_key
        return params

    def fetch_volumes(self, query: str, max_results: int) -> List[dict]:
        """Issue one volumes query and return the raw items. Raises CatalogError."""
        params = self._build_params(query, max_results)
        try:
            resp = self.session.get(self.base_url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise CatalogError(f"Google Books request failed for {query!r}: {e}") from e
        except ValueError as e:
            raise CatalogError(f"Google Books returned invalid JSON for {query!r}: {e}") from e

        if not isinstance(data, dict):
            raise CatalogError(f"Google Books returned an unexpected payload for {query!r}")

        items = data.get("items") or []
        if not isinstance(items, list):
            raise CatalogError(f"Google Books returned malformed items for {query!r}")
        return items

    def _search(self, query: str, max_results: int) -> List[BookSummary]:
        try:
            items = self.fetch_volumes(query, max_results)
        except CatalogError as e:
            logger.warning("%s", e)
            return []

        books = []
        for item in items:
            book = normalize_volume(item)
            if book is not None:
                books.append(book)
        logger.info("Google Books query %r returned %d result(s)", query, len(books))
        return books

    def search(self, query: str, max_results: int = 10) -> List[BookSummary]:
        """Free-text search."""
        return self._search(query, max_results)

    def search_by_author(self, author: str, max_results: int = 5) -> List[BookSummary]:
        return self._search(f'inauthor:"{author}"', max_results)

    def search_by_subject(self, subject: str, max_results: int = 5) -> List[BookSummary]:
        return self._search(f'subject:"{subject}"', max_results)

    def lookup_isbn(self, isbn: str) -> Optional[BookSummary]:
        """Return the first volume matching an ISBN, or None when nothing usable comes back."""
        isbn = isbn.strip().replace("-", "")
        try:
            items = self.fetch_volumes(f"isbn:{isbn}", 1)
        except CatalogError as e:
            logger.warning("%s", e)
            return None

        if not items:
            logger.info("No Google Books results for ISBN %s", isbn)
            return None

        book = normalize_volume(items[0])
        if book is None:
            return None
        if not book.isbn:
            book.isbn = isbn
        return book


def get_catalog_client():
    """FastAPI dependency; the HTTP session is closed when the request ends."""
    client = GoogleBooksClient()
    try:
        yield client
    finally:
        client.close()
