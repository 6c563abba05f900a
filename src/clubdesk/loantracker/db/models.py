"""SQLAlchemy ORM models for the local document store.

Tables:
- documents: JSON documents grouped by collection name
"""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Document(Base):
    """A schemaless document, addressed by (collection, id)."""

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(100), primary_key=True)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(
        String(32),
        default=utc_now_iso,
        onupdate=utc_now_iso,
    )

    __table_args__ = (Index("ix_documents_collection_created", "collection", "created_at"),)

    def __repr__(self) -> str:
        return f"<Document(collection={self.collection}, id={self.id})>"

    def to_record(self) -> dict[str, Any]:
        """Return the document data with its id merged in."""
        return {**self.data, "id": self.id}
