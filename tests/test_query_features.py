"""Tests for the list-endpoint query language"""

import asyncio
from datetime import datetime

import pytest

from linkup.models import Post
from linkup.query import QueryFeatures, parse_query_string, query_factory
from linkup.query.features import rewrite_condition
from linkup.stores import DocumentStore, PostRepository
from linkup.utils.exceptions import NotFoundError, ValidationError


@pytest.fixture
def posts(tmp_path):
    repository = PostRepository(DocumentStore(tmp_path))
    seed = [
        ("p1", "hello world", ["u1"], "2024-01-01T10:00:00"),
        ("p2", "second post", [], "2024-01-02T10:00:00"),
        ("p3", "Hello again", ["u1", "u2"], "2024-01-03T10:00:00"),
        ("p4", "fourth", [], "2024-01-04T10:00:00"),
        ("p5", "fifth hello", [], "2024-01-05T10:00:00"),
    ]
    for post_id, text, likers, created in seed:
        asyncio.run(
            repository.create(
                Post(
                    id=post_id,
                    author_id="author",
                    text=text,
                    liker_ids=likers,
                    created_at=datetime.fromisoformat(created),
                    updated_at=datetime.fromisoformat(created),
                )
            )
        )
    return repository


def run(repository, params, query=None, page_size=2):
    query = query if query is not None else repository.find()
    return asyncio.run(
        query_factory(repository, query, params, page_size, now=datetime(2024, 1, 6, 10, 0, 0))
    )


def test_parse_query_string_brackets_and_repeats():
    parsed = parse_query_string(
        [("age[gte]", "25"), ("age[lt]", "40"), ("tag", "a"), ("tag", "b"), ("ids[]", "x")]
    )
    assert parsed == {"age": {"gte": "25", "lt": "40"}, "tag": ["a", "b"], "ids": ["x"]}


def test_only_exact_keywords_are_rewritten():
    assert rewrite_condition({"gte": "1", "lt": "5"}) == {"$gte": "1", "$lt": "5"}
    # a keyword inside a longer word stays literal
    assert rewrite_condition({"gtex": "1"}) == {"gtex": "1"}
    assert rewrite_condition({"$regex": ".*"}) == {"regex": ".*"}
    assert rewrite_condition(["a", "b"]) == {"$in": ["a", "b"]}
    assert rewrite_condition("plain") == "plain"


def test_filter_excludes_reserved_keys(posts):
    features = QueryFeatures(
        posts.find(), {"text": "fourth", "page": "1", "sort": "text", "fields": "text", "search": "x"}
    ).filter()
    assert features.pipeline.filter_predicate == {"text": "fourth"}


def test_filter_ignores_fields_outside_allowed_set(posts):
    features = QueryFeatures(
        posts.find(), {"text": "fourth", "secret": "1"}, allowed_fields={"text"}
    ).filter()
    assert features.pipeline.filter_predicate == {"text": "fourth"}


def test_unrewritten_operator_matches_nothing(posts):
    with pytest.raises(NotFoundError, match="No posts found."):
        run(posts, {"created_at": {"between": "2024"}})


def test_comparison_filter(posts):
    result = run(posts, {"created_at": {"gte": "2024-01-04"}})
    assert {doc["id"] for doc in result["data"]} == {"p4", "p5"}
    assert result["page"] is None
    assert result["limit"] == 0


def test_sort_replaces_default_order(posts):
    query = posts.find().sort("-created_at")
    result = run(posts, {"sort": "created_at"}, query=query)
    assert [doc["id"] for doc in result["data"]] == ["p1", "p2", "p3", "p4", "p5"]


def test_sort_accepts_comma_separated_keys(posts):
    features = QueryFeatures(posts.find(), {"sort": "-created_at,text"}).sort()
    assert features.pipeline.sort_spec == "-created_at text"
    assert features.query.sort_spec == [("created_at", -1), ("text", 1)]


def test_search_is_case_insensitive_substring(posts):
    result = run(posts, {"search": "HELLO"})
    assert {doc["id"] for doc in result["data"]} == {"p1", "p3", "p5"}


def test_search_term_is_matched_literally(posts):
    with pytest.raises(NotFoundError):
        run(posts, {"search": ".*"})


def test_select_projects_fields(posts):
    result = run(posts, {"fields": "text", "search": "fourth"})
    doc = result["data"][0]
    assert set(doc) == {"id", "text", "time_elapsed", "likes_count"}
    assert doc["time_elapsed"] == "2 days ago"
    assert doc["likes_count"] == 0


def test_projection_does_not_change_derived_values(posts):
    result = run(posts, {"fields": "text", "search": "again"})
    assert result["data"] == [
        {"id": "p3", "text": "Hello again", "time_elapsed": "3 days ago", "likes_count": 2}
    ]

    result = run(posts, {"fields": "-liker_ids", "search": "again"})
    doc = result["data"][0]
    assert "liker_ids" not in doc
    assert doc["likes_count"] == 2
    assert doc["author_id"] == "author"


def test_paginate_slices_results(posts):
    query = posts.find().sort("created_at")
    result = run(posts, {"page": "2"}, query=query)
    assert result["page"] == 2
    assert result["limit"] == 2
    assert result["results"] == 2
    assert [doc["id"] for doc in result["data"]] == ["p3", "p4"]


def test_page_beyond_last_is_page_not_found(posts):
    with pytest.raises(NotFoundError, match="Page not found"):
        run(posts, {"page": "9"})


@pytest.mark.parametrize("page", ["0", "-3", ""])
def test_non_positive_page_disables_pagination(posts, page):
    result = run(posts, {"page": page})
    assert result["page"] is None
    assert result["results"] == 5


def test_non_integer_page_is_rejected(posts):
    with pytest.raises(ValidationError):
        run(posts, {"page": "two"})
    with pytest.raises(ValidationError):
        run(posts, {"page": "2.5"})


def test_integral_float_page_is_accepted(posts):
    result = run(posts, {"page": "2.0"}, query=posts.find().sort("created_at"))
    assert result["page"] == 2
    assert [doc["id"] for doc in result["data"]] == ["p3", "p4"]


def test_base_predicate_is_kept_alongside_client_filter(posts):
    base = {"id": {"$in": ["p1", "p2"]}}
    with pytest.raises(NotFoundError):
        run(posts, {"text": "fourth"}, query=posts.find(base))
    result = run(posts, {"text": "second post"}, query=posts.find(base))
    assert [doc["id"] for doc in result["data"]] == ["p2"]


def test_feed_documents_are_enriched(posts):
    result = run(posts, {"search": "again"})
    doc = result["data"][0]
    assert doc["likes_count"] == 2
    assert doc["time_elapsed"] == "3 days ago"
