"""
resources/store.py -- SQLAlchemy-backed document store for entity records.

Uses SQLAlchemy Core (not ORM) so the dataclasses in resources/models.py
remain the authoritative domain representation. Every entity shares one
"documents" table; rows are partitioned by the entity column and the payload
is stored as JSON text. Swapping SQLite for PostgreSQL is a connection string
change, not a rewrite.

Pattern: Repository + Data Mapper. DocumentStore is the repository (create /
get / list_page / replace / delete by entity type). _row_to_document is the
mapper. Controllers never touch SQL directly.

Identity: each record is keyed by (entity, doc_id). doc_id is either supplied
by the caller or generated here (uuid4 hex). A second create with an existing
(entity, doc_id) is rejected with Conflict; records are never overwritten by
create.

Ordering: list_page() returns records in insertion order (the autoincrement
seq column), not by doc_id.

Errors: IntegrityError -> Conflict; any other SQLAlchemyError -> StoreError.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = DocumentStore()                                # DATABASE_URL
    store = DocumentStore("postgresql://user:pw@host/db")  # explicit
    doc = store.create("book", {"Book_ID": 7, "Title": "Dune"}, doc_id="7")
    page = store.list_page("book", offset=0, limit=20)
    store.close()
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config import get_settings
from core.db import make_engine
from core.errors import Conflict, StoreError
from resources.models import Document

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

# Longest record id the documents table holds.
MAX_ID_LENGTH = 64

metadata = MetaData()

_documents = Table(
    "documents",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("entity", String(50), nullable=False),
    Column("doc_id", String(MAX_ID_LENGTH), nullable=False),
    Column("data", Text, nullable=False),  # JSON object serialized as text
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
    UniqueConstraint("entity", "doc_id", name="uq_entity_doc"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_doc_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class DocumentStore:
    """Repository for Document records of every entity type."""

    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    def create(self, entity: str, data: dict, doc_id: Optional[str] = None) -> Document:
        """Insert a record and return it as stored.

        Raises Conflict if doc_id is already used within this entity.
        """
        doc = Document(entity=entity, id=doc_id or new_doc_id(), data=data, created_at=_now_iso())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _documents.insert().values(
                        entity=entity,
                        doc_id=doc.id,
                        data=json.dumps(data),
                        created_at=doc.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise Conflict(f"{entity} {doc.id} already exists.") from exc
        except SQLAlchemyError as exc:
            raise StoreError(detail=type(exc).__name__) from exc
        return doc

    def get(self, entity: str, doc_id: str) -> Optional[Document]:
        """Return the record or None."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    _documents.select().where((_documents.c.entity == entity) & (_documents.c.doc_id == doc_id))
                ).fetchone()
        except SQLAlchemyError as exc:
            raise StoreError(detail=type(exc).__name__) from exc
        return _row_to_document(row) if row is not None else None

    def list_page(self, entity: str, offset: int, limit: int) -> tuple[list[Document], int]:
        """Return (records in insertion order, total record count) for one page."""
        try:
            with self.engine.connect() as conn:
                total = conn.execute(
                    select(func.count()).select_from(_documents).where(_documents.c.entity == entity)
                ).scalar()
                rows = conn.execute(
                    _documents.select()
                    .where(_documents.c.entity == entity)
                    .order_by(_documents.c.seq)
                    .offset(offset)
                    .limit(limit)
                ).fetchall()
        except SQLAlchemyError as exc:
            raise StoreError(detail=type(exc).__name__) from exc
        return [_row_to_document(r) for r in rows], total or 0

    def replace(self, entity: str, doc_id: str, data: dict) -> Optional[Document]:
        """Overwrite the payload of an existing record. Returns None if absent."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _documents.update()
                    .where((_documents.c.entity == entity) & (_documents.c.doc_id == doc_id))
                    .values(data=json.dumps(data), updated_at=_now_iso())
                )
                conn.commit()
        except SQLAlchemyError as exc:
            raise StoreError(detail=type(exc).__name__) from exc
        if result.rowcount == 0:
            return None
        return self.get(entity, doc_id)

    def delete(self, entity: str, doc_id: str) -> bool:
        """Delete a record. Returns True if deleted, False if not found."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _documents.delete().where((_documents.c.entity == entity) & (_documents.c.doc_id == doc_id))
                )
                conn.commit()
        except SQLAlchemyError as exc:
            raise StoreError(detail=type(exc).__name__) from exc
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_document(row) -> Document:
    return Document(
        entity=row.entity,
        id=row.doc_id,
        data=json.loads(row.data),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
