"""
resources/models.py -- Domain dataclasses for generic entity records.

These are pure data containers with zero logic. All behaviour lives in
resources/store.py (persistence) and resources/controller.py (CRUD rules).

Separation of concerns: these dataclasses say nothing about any particular
entity. Entity-specific shape is carried by the pydantic schema referenced from
EntityBinding and by the JSON document itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class EntityBinding:
    """Everything the generic controller needs to know about one entity.

    name      -- collection name and URL segment ("book" -> /api/v1/book)
    key_field -- natural key in the payload ("Book_ID"). When a create
                 payload carries it, its value becomes the record identity;
                 otherwise the store generates one.
    schema    -- pydantic model used by the validation gate (v2 routes).
    """

    name: str
    key_field: str
    schema: type[BaseModel]
    title: str = ""


@dataclass
class Document:
    """One stored entity record.

    id is the record identity used in /<entity>/{id}. data is the entity's own
    payload; it never contains the bookkeeping fields below.
    """

    entity: str
    id: str
    data: dict = field(default_factory=dict)
    created_at: str = ""
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {**self.data, "id": self.id, "created_at": self.created_at, "updated_at": self.updated_at}


@dataclass
class Page:
    """One page of a list query plus the totals needed to render a pager."""

    items: list[Document]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0
