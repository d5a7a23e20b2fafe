"""
Durable document store package.

Exports the update descriptor, the store protocol and its implementations.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from eems.store.documents import (
    DocumentStore,
    DocumentStoreError,
    DocumentUpdate,
    InMemoryDocumentStore,
    QuotaExceededError,
    SqlDocumentStore,
    deep_merge,
)

__all__ = [
    "DocumentStore",
    "DocumentStoreError",
    "DocumentUpdate",
    "InMemoryDocumentStore",
    "QuotaExceededError",
    "SqlDocumentStore",
    "deep_merge",
]
