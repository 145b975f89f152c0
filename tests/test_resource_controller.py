"""Unit tests for resources/controller.py -- generic CRUD and the validation gate.

Covers:
- pagination clamps out-of-range page and page size instead of rejecting them
- create then get returns the same record; ids come from the natural key
- remove then get raises NotFound
- v2 create reports every failing field at once
- v2 update validates the merged record, not only the partial payload
- duplicate natural keys raise Conflict
- natural keys longer than the id column are rejected, not truncated
- v1 stores payloads as sent
"""

import pytest

from core.errors import Conflict, NotFound, ValidationFailed
from resources.controller import MAX_PAGE_SIZE, ResourceController, clamp_pagination
from resources.store import MAX_ID_LENGTH
from resources.schemas import ENTITIES, get_binding


@pytest.fixture
def category_v1(stores) -> ResourceController:
    return ResourceController(get_binding("category"), stores.documents, validate=False)


@pytest.fixture
def category_v2(stores) -> ResourceController:
    return ResourceController(get_binding("category"), stores.documents, validate=True)


@pytest.fixture
def department_v2(stores) -> ResourceController:
    return ResourceController(get_binding("department"), stores.documents, validate=True)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "page, page_size, expected",
    [
        (None, None, (1, 10)),
        (0, 1000, (1, MAX_PAGE_SIZE)),
        (-3, 0, (1, 1)),
        (4, 25, (4, 25)),
    ],
)
def test_clamp_pagination(page, page_size, expected):
    assert clamp_pagination(page, page_size) == expected


def test_list_clamps_and_counts(category_v1):
    for i in range(1, 26):
        category_v1.create({"Category_ID": i, "Category_Name": f"Cat {i}"})
    page = category_v1.list(page=0, page_size=1000)
    assert page.page == 1
    assert page.limit == MAX_PAGE_SIZE
    assert page.total == 25
    assert page.pages == 1
    assert len(page.items) == 25


def test_list_pages_in_insertion_order(category_v1):
    for i in range(1, 26):
        category_v1.create({"Category_ID": i, "Category_Name": f"Cat {i}"})
    third = category_v1.list(page=3, page_size=10)
    assert third.pages == 3
    assert [doc.data["Category_ID"] for doc in third.items] == [21, 22, 23, 24, 25]
    assert category_v1.list(page=9, page_size=10).items == []


def test_list_empty_collection(category_v1):
    page = category_v1.list()
    assert page.total == 0
    assert page.pages == 0
    assert page.items == []


# ---------------------------------------------------------------------------
# Create / get / remove
# ---------------------------------------------------------------------------


def test_create_then_get(category_v1):
    created = category_v1.create({"Category_ID": 3, "Category_Name": "Fiction"})
    assert created.id == "3"
    fetched = category_v1.get("3")
    assert fetched.data == created.data == {"Category_ID": 3, "Category_Name": "Fiction"}


def test_create_without_key_generates_id(category_v1):
    created = category_v1.create({"Category_Name": "Unkeyed"})
    assert len(created.id) == 32
    assert category_v1.get(created.id).data == {"Category_Name": "Unkeyed"}


def test_create_strips_bookkeeping_fields(category_v1):
    created = category_v1.create({"Category_ID": 8, "Category_Name": "Maps", "id": "x", "created_at": "then"})
    assert "id" not in created.data
    assert "created_at" not in created.data


def test_duplicate_key_conflicts(category_v1):
    category_v1.create({"Category_ID": 5, "Category_Name": "History"})
    with pytest.raises(Conflict):
        category_v1.create({"Category_ID": 5, "Category_Name": "Other"})
    assert category_v1.get("5").data["Category_Name"] == "History"


def test_overlong_key_is_rejected(stores, category_v1):
    longest = "k" * MAX_ID_LENGTH
    assert category_v1.create({"Category_ID": longest}).id == longest

    with pytest.raises(ValidationFailed) as excinfo:
        category_v1.create({"Category_ID": longest + "k"})
    assert excinfo.value.errors[0]["field"] == "Category_ID"
    _docs, total = stores.documents.list_page("category", offset=0, limit=10)
    assert total == 1


def test_remove_then_get(category_v1):
    category_v1.create({"Category_ID": 9, "Category_Name": "Poetry"})
    category_v1.remove("9")
    with pytest.raises(NotFound):
        category_v1.get("9")
    with pytest.raises(NotFound):
        category_v1.remove("9")


def test_entities_do_not_share_ids(stores, category_v1):
    shelf = ResourceController(get_binding("shelf"), stores.documents)
    category_v1.create({"Category_ID": 1, "Category_Name": "Science"})
    shelf.create({"Shelf_ID": 1, "Shelf_Name": "A1", "Category_ID": 1, "Location": "North wing"})
    assert category_v1.get("1").data["Category_Name"] == "Science"
    assert shelf.get("1").data["Shelf_Name"] == "A1"


# ---------------------------------------------------------------------------
# Validation gate
# ---------------------------------------------------------------------------


def test_v1_stores_invalid_payload_as_sent(category_v1):
    created = category_v1.create({"Category_ID": "not-a-number", "Extra": True})
    assert created.data == {"Category_ID": "not-a-number", "Extra": True}


def test_v2_reports_all_failing_fields(department_v2):
    with pytest.raises(ValidationFailed) as excinfo:
        department_v2.create({"Department_ID": "abc", "Department_Head": "x" * 60, "Budget": 10})
    fields = {err["field"] for err in excinfo.value.errors}
    assert {"Department_ID", "Department_Name", "Department_Head", "Budget"} <= fields


def test_v2_valid_payload_is_normalized(category_v2):
    created = category_v2.create({"Category_ID": "12", "Category_Name": "  Reference  "})
    assert created.id == "12"
    assert created.data == {"Category_ID": 12, "Category_Name": "Reference"}


def test_v2_update_validates_merged_record(category_v2):
    category_v2.create({"Category_ID": 4, "Category_Name": "Art"})
    updated = category_v2.update("4", {"Category_Name": "Fine Art"})
    assert updated.data == {"Category_ID": 4, "Category_Name": "Fine Art"}
    assert updated.updated_at is not None
    with pytest.raises(ValidationFailed) as excinfo:
        category_v2.update("4", {"Category_Name": "x" * 150})
    assert [err["field"] for err in excinfo.value.errors] == ["Category_Name"]
    assert category_v2.get("4").data["Category_Name"] == "Fine Art"


def test_update_cannot_change_key(category_v1):
    category_v1.create({"Category_ID": 6, "Category_Name": "Music"})
    with pytest.raises(ValidationFailed):
        category_v1.update("6", {"Category_ID": 7})


def test_update_missing_record(category_v2):
    with pytest.raises(NotFound):
        category_v2.update("404", {"Category_Name": "Nothing"})


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_registry_names_are_unique():
    names = [binding.name for binding in ENTITIES]
    assert len(names) == len(set(names)) == 16


def test_get_binding_unknown():
    with pytest.raises(KeyError):
        get_binding("spaceship")
