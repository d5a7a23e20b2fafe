"""
SQLAlchemy ORM models for the gateway database.

Defines the EnergyDocument model: one JSON document per (collection,
document_id), where the collection is a load category name (Main, AirCon,
...) and the document id is a local date string. Partial updates are deep
merged into ``data`` by the document store.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON (TEXT) elsewhere.
DocumentJSON = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all gateway ORM models."""

    pass


class EnergyDocument(Base):
    """A per-category, per-date aggregate document.

    Attributes:
        collection: Load category name, e.g. ``Main``.
        document_id: Local date, ``YYYY-MM-DD``.
        data: Nested document keyed by RTU id.
        updated_at: Time of the last merge, UTC.
    """

    __tablename__ = "energy_documents"

    collection: Mapped[str] = mapped_column(Text, primary_key=True, nullable=False)
    document_id: Mapped[str] = mapped_column(Text, primary_key=True, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(DocumentJSON, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        """Return string representation of the EnergyDocument."""
        return (
            f"EnergyDocument(collection={self.collection!r}, "
            f"document_id={self.document_id!r})"
        )
