from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

Document = dict[str, Any]


class DocumentStoreError(RuntimeError):
    """Raised when the document store cannot complete an operation."""


class DocumentNotFoundError(DocumentStoreError):
    """Raised when a document addressed by id does not exist."""


class DocumentStore(Protocol):
    """Collection-oriented document database.

    Every returned document carries its id under the ``id`` key; the id itself is
    never persisted inside the document body.
    """

    async def ping(self) -> bool:
        ...

    async def get(self, collection: str, document_id: str) -> Document | None:
        ...

    async def list(self, collection: str) -> list[Document]:
        ...

    async def query(self, collection: str, filters: Mapping[str, Any]) -> list[Document]:
        """Return documents whose fields equal every value in ``filters``."""
        ...

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Insert a document under a generated id and return that id."""
        ...

    async def set(
        self, collection: str, document_id: str, data: Mapping[str, Any], *, merge: bool = False
    ) -> None:
        ...

    async def update(self, collection: str, document_id: str, patch: Mapping[str, Any]) -> bool:
        """Merge ``patch`` into an existing document; ``False`` when it does not exist."""
        ...

    async def delete(self, collection: str, document_id: str) -> bool:
        ...

    async def array_append(
        self, collection: str, document_id: str, field: str, value: Mapping[str, Any]
    ) -> bool:
        """Atomically append ``value`` to the list stored under ``field``."""
        ...

    async def batch_add(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[str]:
        """Insert all documents in a single all-or-nothing write."""
        ...


def strip_id(data: Mapping[str, Any]) -> Document:
    return {key: value for key, value in data.items() if key != "id"}


def with_id(document_id: str, data: Mapping[str, Any]) -> Document:
    return {"id": document_id, **strip_id(data)}
