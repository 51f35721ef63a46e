"""Document store adapters."""

from .memory import InMemoryDocumentStore
from .postgres import PostgresDocumentStore, create_pool
from .store import Document, DocumentNotFoundError, DocumentStore, DocumentStoreError

__all__ = [
    "Document",
    "DocumentNotFoundError",
    "DocumentStore",
    "DocumentStoreError",
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
    "create_pool",
]
