"""Unit tests for resources/store.py -- the shared document store."""

import pytest

from core.errors import Conflict
from resources.store import DocumentStore


@pytest.fixture
def store():
    s = DocumentStore("sqlite:///:memory:")
    yield s
    s.close()


def test_create_and_get(store):
    doc = store.create("book", {"Title": "Dune"}, doc_id="1")
    assert doc.id == "1"
    assert doc.created_at
    fetched = store.get("book", "1")
    assert fetched.data == {"Title": "Dune"}
    assert fetched.updated_at is None


def test_get_missing(store):
    assert store.get("book", "nope") is None


def test_generated_ids_are_unique(store):
    first = store.create("fine", {"Amount": 5})
    second = store.create("fine", {"Amount": 5})
    assert first.id != second.id


def test_same_id_in_different_entities(store):
    store.create("book", {"Title": "Dune"}, doc_id="1")
    store.create("shelf", {"Shelf_Name": "A"}, doc_id="1")
    assert store.get("book", "1").data["Title"] == "Dune"


def test_duplicate_id_conflicts(store):
    store.create("book", {"Title": "Dune"}, doc_id="1")
    with pytest.raises(Conflict):
        store.create("book", {"Title": "Emma"}, doc_id="1")


def test_list_page_offsets_and_total(store):
    for i in range(7):
        store.create("grade", {"n": i})
    store.create("book", {"n": 99})
    docs, total = store.list_page("grade", offset=5, limit=5)
    assert total == 7
    assert [d.data["n"] for d in docs] == [5, 6]


def test_replace(store):
    store.create("book", {"Title": "Dune"}, doc_id="1")
    updated = store.replace("book", "1", {"Title": "Dune Messiah"})
    assert updated.data == {"Title": "Dune Messiah"}
    assert updated.updated_at is not None
    assert store.replace("book", "2", {"Title": "Nothing"}) is None


def test_delete(store):
    store.create("book", {"Title": "Dune"}, doc_id="1")
    assert store.delete("book", "1") is True
    assert store.delete("book", "1") is False
    assert store.get("book", "1") is None


def test_nested_json_round_trips(store):
    data = {"Title": "Atlas", "Tags": ["maps", "reference"], "Meta": {"pages": 320, "color": True}}
    store.create("book", data, doc_id="atlas")
    assert store.get("book", "atlas").data == data
