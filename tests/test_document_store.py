"""Tests for the JSON-file document store"""

import asyncio
import json

import pytest

from linkup.stores.document_store import (
    DocumentStore,
    DuplicateKeyError,
    matches,
    parse_sort,
    project,
)
from linkup.utils.exceptions import UpstreamError

FIELDS = ("name", "age", "tags", "active", "created_at")


@pytest.fixture
def people(tmp_path):
    store = DocumentStore(tmp_path)
    collection = store.collection("people", FIELDS, unique=("name",))
    docs = [
        {"id": "1", "name": "alice", "age": 31, "tags": ["a", "b"], "active": True, "created_at": "2024-01-01T00:00:00"},
        {"id": "2", "name": "bob", "age": 25, "tags": ["b"], "active": False, "created_at": "2024-01-03T00:00:00"},
        {"id": "3", "name": "carol", "age": 40, "tags": [], "active": True, "created_at": "2024-01-02T00:00:00"},
    ]
    for doc in docs:
        asyncio.run(collection.insert_one(doc))
    return collection


def test_string_operands_are_cast_to_stored_type():
    doc = {"age": 30, "active": True}
    assert matches(doc, {"age": {"$gte": "25"}})
    assert not matches(doc, {"age": {"$lt": "25"}})
    assert matches(doc, {"age": "30"})
    assert matches(doc, {"active": "true"})


def test_array_fields_match_by_membership():
    doc = {"tags": ["a", "b"]}
    assert matches(doc, {"tags": "a"})
    assert not matches(doc, {"tags": "z"})
    assert matches(doc, {"tags": {"$ne": "z"}})
    assert not matches(doc, {"tags": {"$ne": "a"}})


def test_unknown_operator_matches_nothing():
    assert not matches({"age": 30}, {"age": {"$between": "20"}})


def test_and_or_combinators():
    doc = {"age": 30, "name": "x"}
    assert matches(doc, {"$or": [{"age": 1}, {"name": "x"}]})
    assert not matches(doc, {"$and": [{"age": 30}, {"name": "y"}]})


def test_parse_sort_and_project():
    assert parse_sort("age -name") == [("age", 1), ("name", -1)]
    assert parse_sort({"age": -1}) == [("age", -1)]
    doc = {"id": "1", "name": "a", "age": 2}
    assert project(doc, "name") == {"id": "1", "name": "a"}
    assert project(doc, "-age") == {"id": "1", "name": "a"}


def test_find_sort_skip_limit(people):
    results = asyncio.run(people.find({"active": True}).sort("-age").exec())
    assert [doc["name"] for doc in results] == ["carol", "alice"]

    page = asyncio.run(people.find().sort("created_at").skip(1).limit(1).exec())
    assert [doc["name"] for doc in page] == ["carol"]


def test_clauses_on_unknown_fields_are_ignored(people):
    results = asyncio.run(people.find({"nickname": "al"}).exec())
    assert len(results) == 3


def test_unique_fields_are_enforced(people):
    with pytest.raises(DuplicateKeyError):
        asyncio.run(people.insert_one({"id": "4", "name": "alice"}))
    with pytest.raises(DuplicateKeyError):
        asyncio.run(people.update_one({"id": "2"}, {"name": "alice"}))


def test_update_add_to_set_pull_and_unset(people):
    updated = asyncio.run(people.update_one({"id": "3"}, add_to_set={"tags": "x"}))
    assert updated["tags"] == ["x"]
    updated = asyncio.run(people.update_one({"id": "3"}, add_to_set={"tags": "x"}))
    assert updated["tags"] == ["x"]
    updated = asyncio.run(people.update_one({"id": "3"}, pull={"tags": "x"}, unset=("created_at",)))
    assert updated["tags"] == []
    assert "created_at" not in updated

    assert asyncio.run(people.update_one({"id": "missing"}, {"age": 1})) is None


def test_delete_one_and_many(people):
    removed = asyncio.run(people.delete_one({"active": True}))
    assert removed["name"] == "alice"
    assert asyncio.run(people.delete_many({"age": {"$gte": 0}})) == 2
    assert asyncio.run(people.count()) == 0


def test_writes_are_persisted_to_disk(people):
    raw = json.loads(people.path.read_text(encoding="utf-8"))
    assert {doc["id"] for doc in raw["documents"]} == {"1", "2", "3"}


def test_corrupt_file_raises_upstream_error(tmp_path):
    store = DocumentStore(tmp_path)
    collection = store.collection("broken", FIELDS)
    collection.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(UpstreamError):
        asyncio.run(collection.find().exec())
