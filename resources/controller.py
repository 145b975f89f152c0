"""
resources/controller.py -- The generic CRUD controller and its validation gate.

ResourceController is parameterized by composition, not subclassing: it takes
an EntityBinding (name, natural key, schema), a DocumentStore and a validate
flag. Nothing in this module knows about books, students or any other entity.

  validate=False  -- v1 behaviour: payloads are stored as sent.
  validate=True   -- v2 behaviour: create payloads and the MERGED result of an
                     update must pass the entity schema before they reach the
                     store.

Pagination bounds:
  page      >= 1                 (0 or negative -> 1)
  page_size in [1, MAX_PAGE_SIZE] (out of range -> nearest bound)
Out-of-range values are clamped, never rejected.

Identity:
  If the create payload carries the entity's key field, str(value) becomes the
  record id (caller-supplied). Otherwise the store generates one. Once created,
  the key field cannot be changed by update. Ids longer than MAX_ID_LENGTH are
  rejected in both versions.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ValidationError

from core.errors import NotFound, ValidationFailed
from resources.models import Document, EntityBinding, Page
from resources.store import MAX_ID_LENGTH, DocumentStore

logger = logging.getLogger("campusinfo.resources")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Bookkeeping fields added to every response. Clients often echo a fetched
# record back on PUT, so these are dropped from incoming payloads.
_RESERVED_FIELDS = frozenset({"id", "created_at", "updated_at"})


# ---------------------------------------------------------------------------
# Validation gate
# ---------------------------------------------------------------------------


def format_errors(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten a pydantic ValidationError into [{"field", "message"}, ...]."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        errors.append({"field": field, "message": err.get("msg", "Invalid value")})
    return errors


def validate_payload(schema: type[BaseModel], payload: dict) -> dict:
    """Check payload against schema and return the normalized, JSON-safe dict.

    Raises ValidationFailed listing every failing field. Optional fields the
    caller did not send are left out of the result rather than stored as null.
    """
    try:
        model = schema.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(format_errors(exc)) from exc
    return model.model_dump(mode="json", exclude_unset=True)


def clamp_pagination(page: Optional[int], page_size: Optional[int]) -> tuple[int, int]:
    page = 1 if page is None or page < 1 else page
    if page_size is None:
        page_size = DEFAULT_PAGE_SIZE
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
    return page, page_size


def _strip_reserved(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if k not in _RESERVED_FIELDS}


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class ResourceController:
    """CRUD over one entity collection.

    Usage:
        controller = ResourceController(get_binding("book"), DocumentStore(), validate=True)
        doc = controller.create({"Book_ID": 1, ...})
        controller.get(doc.id)
        controller.list(page=1, page_size=20)
    """

    def __init__(self, binding: EntityBinding, store: DocumentStore, validate: bool = False) -> None:
        self.binding = binding
        self.store = store
        self.validate = validate

    @property
    def entity(self) -> str:
        return self.binding.name

    def _gate(self, payload: dict) -> dict:
        if not self.validate:
            return payload
        return validate_payload(self.binding.schema, payload)

    def create(self, payload: dict) -> Document:
        """Insert a record. Raises ValidationFailed (v2), Conflict or StoreError."""
        data = self._gate(_strip_reserved(payload))
        key = data.get(self.binding.key_field)
        doc_id = str(key) if key is not None and str(key) != "" else None
        if doc_id is not None and len(doc_id) > MAX_ID_LENGTH:
            field = self.binding.key_field
            message = f"{field} must be at most {MAX_ID_LENGTH} characters"
            raise ValidationFailed([{"field": field, "message": message}])
        doc = self.store.create(self.entity, data, doc_id=doc_id)
        logger.info("Created %s %s", self.entity, doc.id)
        return doc

    def list(self, page: Optional[int] = None, page_size: Optional[int] = None) -> Page:
        page, page_size = clamp_pagination(page, page_size)
        items, total = self.store.list_page(self.entity, offset=(page - 1) * page_size, limit=page_size)
        return Page(items=items, total=total, page=page, limit=page_size)

    def get(self, doc_id: str) -> Document:
        doc = self.store.get(self.entity, doc_id)
        if doc is None:
            raise NotFound(f"{self.entity} {doc_id} not found.")
        return doc

    def update(self, doc_id: str, partial: dict) -> Document:
        """Merge partial onto the stored record and save the result.

        In v2 the merged record, not just the partial payload, must satisfy
        the schema.
        """
        existing = self.get(doc_id)
        merged = {**existing.data, **_strip_reserved(partial)}
        key_field = self.binding.key_field
        if key_field in existing.data and merged.get(key_field) != existing.data[key_field]:
            raise ValidationFailed([{"field": key_field, "message": f"{key_field} cannot be changed"}])
        data = self._gate(merged)
        updated = self.store.replace(self.entity, doc_id, data)
        if updated is None:
            # Deleted between the read and the write.
            raise NotFound(f"{self.entity} {doc_id} not found.")
        logger.info("Updated %s %s", self.entity, doc_id)
        return updated

    def remove(self, doc_id: str) -> None:
        if not self.store.delete(self.entity, doc_id):
            raise NotFound(f"{self.entity} {doc_id} not found.")
        logger.info("Deleted %s %s", self.entity, doc_id)
