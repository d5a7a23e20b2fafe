"""
Document store adapter for per-category, per-date aggregate documents.

Partial writes are expressed as DocumentUpdate values (collection, document
id, nested key path, value) instead of dotted field strings. A store applies
a batch of updates atomically, deep merging each one into its target
document so unrelated fields survive.

Two implementations are provided:
- SqlDocumentStore: SQLAlchemy async, one transaction per batch. Batches
  are serialized per store so concurrent read-merge-writes on the same
  document cannot overwrite each other.
- InMemoryDocumentStore: process-local dictionaries, for running without a
  database.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Serialize SqlDocumentStore.apply per store

TODO:
- None
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eems.db.models import EnergyDocument

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE class 53: insufficient resources (disk full, out of
# memory, too many connections).
_INSUFFICIENT_RESOURCES_CLASS = "53"


class DocumentStoreError(Exception):
    """A document store read or write failed."""


class QuotaExceededError(DocumentStoreError):
    """The store rejected a write for lack of capacity; retry later."""


# ---------------------------------------------------------------------------
# Update descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentUpdate:
    """Set *value* at *path* inside document (*collection*, *document_id*).

    Attributes:
        collection: Collection name (a load category).
        document_id: Document key (a local date).
        path: Nested keys from the document root to the target field.
        value: Value to merge in at *path*. Dict values are merged, not
            replaced.
    """

    collection: str
    document_id: str
    path: tuple[str, ...]
    value: Any

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("DocumentUpdate.path must name at least one key")

    def as_patch(self) -> dict[str, Any]:
        """Return the update as a nested dict rooted at the document."""
        patch: Any = self.value
        for key in reversed(self.path):
            patch = {key: patch}
        return patch


def deep_merge(target: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *target* with *patch* merged in.

    Dict values merge recursively. Any other value in *patch* replaces the
    value in *target*. Neither argument is mutated.
    """
    merged = copy.deepcopy(target)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def group_updates(
    updates: Sequence[DocumentUpdate],
) -> dict[tuple[str, str], dict[str, Any]]:
    """Fold a batch of updates into one merged patch per document."""
    patches: dict[tuple[str, str], dict[str, Any]] = {}
    for update in updates:
        key = (update.collection, update.document_id)
        patches[key] = deep_merge(patches.get(key, {}), update.as_patch())
    return patches


def get_path(document: dict[str, Any] | None, path: Sequence[str]) -> Any:
    """Return the value at *path* in *document*, or None if any key is absent."""
    node: Any = document
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


class DocumentStore(Protocol):
    """Interface the aggregator writes through."""

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Return a copy of the document, or None if it does not exist."""
        ...

    async def apply(self, updates: Sequence[DocumentUpdate]) -> None:
        """Merge all *updates* atomically; raise DocumentStoreError on failure."""
        ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """Dictionary-backed store with the same merge semantics as the SQL one."""

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], dict[str, Any]] = {}

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        document = self._documents.get((collection, document_id))
        return copy.deepcopy(document) if document is not None else None

    async def apply(self, updates: Sequence[DocumentUpdate]) -> None:
        # Build every new document before assigning any, so the batch lands
        # all at once.
        staged = {
            key: deep_merge(self._documents.get(key, {}), patch)
            for key, patch in group_updates(updates).items()
        }
        self._documents.update(staged)


# ---------------------------------------------------------------------------
# SQL implementation
# ---------------------------------------------------------------------------


def _translate_error(exc: DBAPIError) -> DocumentStoreError:
    """Map a driver error onto the store's error classes."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig)
    lowered = message.lower()
    if (
        (code is not None and str(code).startswith(_INSUFFICIENT_RESOURCES_CLASS))
        or "disk is full" in lowered
        or "quota" in lowered
    ):
        return QuotaExceededError(message)
    return DocumentStoreError(message)


class SqlDocumentStore:
    """SQLAlchemy-backed document store over the energy_documents table.

    Args:
        session_factory: Async session factory from
            :func:`eems.db.session.create_session_factory`.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        # SQLite ignores FOR UPDATE; the lock orders read-merge-writes in-process.
        self._apply_lock = asyncio.Lock()

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(EnergyDocument, (collection, document_id))
                return copy.deepcopy(row.data) if row is not None else None
        except DBAPIError as exc:
            raise _translate_error(exc) from exc
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc

    async def apply(self, updates: Sequence[DocumentUpdate]) -> None:
        """Merge *updates* into their documents inside one transaction.

        Batches on one store run one at a time, and rows are also locked
        with SELECT ... FOR UPDATE where the dialect supports it. Either
        every document in the batch is written or none is.

        Args:
            updates: Updates to apply.

        Raises:
            QuotaExceededError: The database ran out of resources.
            DocumentStoreError: Any other database failure.
        """
        patches = group_updates(updates)
        if not patches:
            return
        now = datetime.now(tz=UTC)
        try:
            async with (
                self._apply_lock,
                self._session_factory() as session,
                session.begin(),
            ):
                for (collection, document_id), patch in patches.items():
                    row = await session.get(
                        EnergyDocument,
                        (collection, document_id),
                        with_for_update=True,
                    )
                    if row is None:
                        session.add(
                            EnergyDocument(
                                collection=collection,
                                document_id=document_id,
                                data=deep_merge({}, patch),
                                updated_at=now,
                            )
                        )
                    else:
                        # Assign a new dict so the JSON column is flagged dirty.
                        row.data = deep_merge(row.data, patch)
                        row.updated_at = now
        except DBAPIError as exc:
            raise _translate_error(exc) from exc
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc
        logger.debug("Applied %d update(s) to %d document(s)", len(updates), len(patches))
