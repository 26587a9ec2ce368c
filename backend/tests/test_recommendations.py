"""Tests for catalog search endpoints and history-based recommendations."""
from collections import Counter

from conftest import make_summary

from app.models import Book, Category, ReadingStatus
from app.services.recommendation_engine import filter_candidates, get_recommendations, top_by_frequency
from app.schemas.recommendation import RecommendationItem


def _seed_history(db, user):
    """Completed: A/Fiction, A/Fiction, B/SciFi. Plus an unfinished C/Poetry."""
    fiction = Category(user_id=user.id, name="Fiction", color="#111111")
    scifi = Category(user_id=user.id, name="SciFi", color="#222222")
    poetry = Category(user_id=user.id, name="Poetry", color="#333333")
    db.add_all([fiction, scifi, poetry])
    db.commit()
    completed = ReadingStatus.COMPLETED
    db.add_all([
        Book(user_id=user.id, title="A One", author="A", status=completed, category_id=fiction.id),
        Book(user_id=user.id, title="A Two", author="A", status=completed, category_id=fiction.id),
        Book(user_id=user.id, title="B One", author="B", status=completed, category_id=scifi.id),
        Book(user_id=user.id, title="Owned Later", author="C", status=ReadingStatus.TO_READ,
             category_id=poetry.id),
    ])
    db.commit()


def test_no_completed_books_means_no_recommendations(db, user, catalog):
    db.add(Book(user_id=user.id, title="Unread", author="A", status=ReadingStatus.READING))
    db.commit()
    assert get_recommendations(db, user.id, catalog) == []
    assert catalog.calls == []


def test_seeds_follow_frequency_order(db, user, catalog):
    _seed_history(db, user)
    catalog.results[("author", "A")] = [make_summary("a1", "New A", "A")]
    catalog.results[("author", "B")] = [make_summary("b1", "New B", "B")]
    catalog.results[("subject", "Fiction")] = [make_summary("f1", "New Fiction")]
    catalog.results[("subject", "SciFi")] = [make_summary("s1", "New SciFi")]

    recommendations = get_recommendations(db, user.id, catalog)

    assert catalog.calls == [
        ("author", "A", 5),
        ("author", "B", 5),
        ("subject", "Fiction", 5),
        ("subject", "SciFi", 5),
    ]
    assert [r.external_id for r in recommendations] == ["a1", "b1", "f1", "s1"]
    assert recommendations[0].recommendation_type == "author"
    assert recommendations[0].recommendation_reason == "Because you enjoyed books by A"
    assert recommendations[2].recommendation_type == "category"
    assert recommendations[2].recommendation_reason == "Because you read a lot of Fiction"


def test_failing_source_does_not_sink_the_rest(db, user, catalog):
    _seed_history(db, user)
    catalog.results[("author", "A")] = RuntimeError("catalog exploded")
    catalog.results[("author", "B")] = [make_summary("b1", "New B", "B")]
    catalog.results[("subject", "Fiction")] = [make_summary("f1", "New Fiction")]

    recommendations = get_recommendations(db, user.id, catalog)
    assert [r.external_id for r in recommendations] == ["b1", "f1"]
    assert recommendations[0].recommendation_reason == "Because you enjoyed books by B"
    assert [kind for kind, _, _ in catalog.calls] == ["author", "author", "subject", "subject"]


def test_owned_titles_and_duplicates_are_filtered(db, user, catalog):
    _seed_history(db, user)
    catalog.results[("author", "A")] = [
        make_summary("a1", "a one"),
        make_summary("a2", "OWNED LATER"),
        make_summary("a3", "Fresh"),
        # exact title match only, surrounding whitespace is not ignored
        make_summary("a4", " A One "),
    ]
    catalog.results[("subject", "Fiction")] = [
        make_summary("a3", "Fresh"),
        make_summary("f1", "Also Fresh"),
    ]

    recommendations = get_recommendations(db, user.id, catalog)
    assert [r.external_id for r in recommendations] == ["a3", "a4", "f1"]
    assert recommendations[0].recommendation_type == "author"


def test_other_users_history_is_ignored(db, user, other_user, catalog):
    _seed_history(db, other_user)
    catalog.results[("author", "A")] = [make_summary("a1", "New A")]
    assert get_recommendations(db, user.id, catalog) == []


def test_filter_candidates_truncates():
    candidates = [
        RecommendationItem(**make_summary(f"id{i}", f"Title {i}").model_dump(),
                           recommendation_type="author", recommendation_reason="r")
        for i in range(30)
    ]
    result = filter_candidates(candidates, set())
    assert len(result) == 20
    assert result[-1].external_id == "id19"


def test_top_by_frequency_breaks_ties_by_name():
    counts = Counter({"Zed": 2, "Amy": 2, "Bob": 5, "Cal": 1})
    assert top_by_frequency(counts, 3) == [("Bob", 5), ("Amy", 2), ("Zed", 2)]


def test_recommendations_endpoint(client, auth_headers, db, user, catalog):
    _seed_history(db, user)
    catalog.results[("author", "A")] = [make_summary("a1", "New A", "A")]

    response = client.get("/api/search/recommendations", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert [r["external_id"] for r in body["recommendations"]] == ["a1"]
    assert body["recommendations"][0]["recommendation_type"] == "author"


def test_recommendations_require_auth(client):
    assert client.get("/api/search/recommendations").status_code == 401


def test_search_endpoint(client, auth_headers, catalog):
    catalog.results[("search", "dune")] = [make_summary("v1", "Dune", "Frank Herbert")]
    response = client.get("/api/search/books", params={"q": " dune ", "maxResults": 5}, headers=auth_headers)
    assert response.status_code == 200
    assert [b["title"] for b in response.json()["books"]] == ["Dune"]
    assert catalog.calls == [("search", "dune", 5)]


def test_search_requires_query(client, auth_headers):
    assert client.get("/api/search/books", headers=auth_headers).status_code == 400
    assert client.get("/api/search/books", params={"q": "  "}, headers=auth_headers).status_code == 400


def test_search_without_results(client, auth_headers):
    response = client.get("/api/search/books", params={"q": "nothing"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"books": []}


def test_isbn_lookup(client, auth_headers, catalog):
    catalog.isbn_results["9780441013593"] = make_summary("v1", "Dune", "Frank Herbert")
    found = client.get("/api/search/isbn/9780441013593", headers=auth_headers)
    assert found.status_code == 200
    assert found.json()["book"]["external_id"] == "v1"

    missing = client.get("/api/search/isbn/0000000000", headers=auth_headers)
    assert missing.status_code == 404


def test_owned_title_match_does_not_trim():
    candidate = RecommendationItem(**make_summary("d1", " Dune ").model_dump(),
                                   recommendation_type="author", recommendation_reason="r")
    assert [c.external_id for c in filter_candidates([candidate], {"dune"})] == ["d1"]
