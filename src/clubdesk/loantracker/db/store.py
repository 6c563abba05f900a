"""Document store operations.

A small Firestore-like contract over the ``documents`` table: insert,
get by id, query by one field with optional ordering, merge-update and
batched updates committed in a single transaction.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import NotFoundError, StoreError
from .models import Document, generate_uuid
from .sqlite import Database, get_db


class _ServerTimestamp:
    """Sentinel replaced by the write-time UTC instant."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

QUERY_OPERATORS = ("==", "!=", "in")


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime as an ISO-8601 UTC string (naive means UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def encode_value(value: Any, now: datetime) -> Any:
    """Convert a Python value into its JSON document form."""
    if value is SERVER_TIMESTAMP:
        return format_timestamp(now)
    if isinstance(value, BaseModel):
        return encode_value(value.model_dump(), now)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): encode_value(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [encode_value(v, now) for v in value]
    return value


class Batch:
    """Staged updates applied together by ``commit``."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._updates: list[tuple[str, str, dict[str, Any]]] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._updates)

    def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> "Batch":
        """Stage a merge-update of one document."""
        if self._committed:
            raise StoreError("Batch already committed")
        self._updates.append((collection, doc_id, dict(partial)))
        return self

    def commit(self) -> int:
        """Apply every staged update atomically.

        Returns:
            Number of documents updated

        Raises:
            NotFoundError: A staged document does not exist (nothing applied)
            StoreError: The transaction failed (nothing applied)
        """
        if self._committed:
            raise StoreError("Batch already committed")
        self._committed = True
        if not self._updates:
            return 0
        self._store._apply_updates(self._updates)
        return len(self._updates)


class DocumentStore:
    """Document CRUD and query operations."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize document store.

        Args:
            db: Database instance (uses global if not provided)
        """
        self.db = db or get_db()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, collection: str, record: dict[str, Any]) -> str:
        """Insert a new document and return its generated id."""
        now = datetime.now(timezone.utc)
        data = encode_value({k: v for k, v in record.items() if k != "id"}, now)
        doc_id = generate_uuid()
        try:
            with self.db.get_session() as session:
                session.add(Document(collection=collection, id=doc_id, data=data))
        except SQLAlchemyError as e:
            raise StoreError(f"Insert into {collection} failed: {e}") from e
        return doc_id

    def set_document(self, collection: str, doc_id: str, record: dict[str, Any], merge: bool = True) -> None:
        """Create or replace a document with a caller-chosen id."""
        now = datetime.now(timezone.utc)
        data = encode_value({k: v for k, v in record.items() if k != "id"}, now)
        try:
            with self.db.get_session() as session:
                doc = session.get(Document, (collection, doc_id))
                if doc is None:
                    session.add(Document(collection=collection, id=doc_id, data=data))
                else:
                    doc.data = {**doc.data, **data} if merge else data
        except SQLAlchemyError as e:
            raise StoreError(f"Write to {collection}/{doc_id} failed: {e}") from e

    def update_by_id(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        """Merge ``partial`` into an existing document.

        Raises:
            NotFoundError: Document does not exist
        """
        self._apply_updates([(collection, doc_id, partial)])

    def batch(self) -> Batch:
        """Start a batch of updates."""
        return Batch(self)

    def _apply_updates(self, updates: Iterable[tuple[str, str, dict[str, Any]]]) -> None:
        now = datetime.now(timezone.utc)
        try:
            with self.db.get_session() as session:
                for collection, doc_id, partial in updates:
                    doc = session.get(Document, (collection, doc_id))
                    if doc is None:
                        raise NotFoundError(collection, doc_id)
                    # Reassign so the JSON column is flagged dirty
                    doc.data = {**doc.data, **encode_value(partial, now)}
        except SQLAlchemyError as e:
            raise StoreError(f"Update failed: {e}") from e

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Get a document by id, or None."""
        try:
            with self.db.get_session() as session:
                doc = session.get(Document, (collection, doc_id))
                return doc.to_record() if doc else None
        except SQLAlchemyError as e:
            raise StoreError(f"Read of {collection}/{doc_id} failed: {e}") from e

    def query_by_field(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
        op: str = "==",
    ) -> list[dict[str, Any]]:
        """Query documents by a single field.

        Args:
            collection: Collection name
            field: Top-level field name
            value: Value to compare against (a list for ``in``)
            order_by: Optional field to order results by
            descending: Reverse the ordering
            op: One of ``==``, ``!=``, ``in``

        Returns:
            Matching documents with their ids
        """
        if op not in QUERY_OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")

        now = datetime.now(timezone.utc)
        target = func.json_extract(Document.data, f"$.{field}")
        encoded = encode_value(value, now)

        stmt = select(Document).where(Document.collection == collection)
        if op == "in":
            stmt = stmt.where(target.in_(list(encoded)))
        elif encoded is None:
            stmt = stmt.where(target.is_(None) if op == "==" else target.isnot(None))
        elif op == "==":
            stmt = stmt.where(target == encoded)
        else:
            stmt = stmt.where(target.isnot(None), target != encoded)

        if order_by:
            key = func.json_extract(Document.data, f"$.{order_by}")
            stmt = stmt.order_by(key.desc() if descending else key.asc())
        stmt = stmt.order_by(Document.created_at, Document.id)

        try:
            with self.db.get_session() as session:
                docs = session.execute(stmt).scalars().all()
                return [d.to_record() for d in docs]
        except SQLAlchemyError as e:
            raise StoreError(f"Query on {collection}.{field} failed: {e}") from e

    def list_collection(self, collection: str) -> list[dict[str, Any]]:
        """Return every document of a collection."""
        stmt = (
            select(Document)
            .where(Document.collection == collection)
            .order_by(Document.created_at, Document.id)
        )
        try:
            with self.db.get_session() as session:
                return [d.to_record() for d in session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Listing {collection} failed: {e}") from e
