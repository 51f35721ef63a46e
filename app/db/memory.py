from __future__ import annotations

import asyncio
import copy
import uuid
from collections import defaultdict
from typing import Any, Mapping, Sequence

from .store import Document, strip_id, with_id


class InMemoryDocumentStore:
    """Process-local document store used for development and tests.

    All writes go through one lock so appends and batches behave atomically,
    matching the guarantees of :class:`~app.db.postgres.PostgresDocumentStore`.
    Stored and returned documents are deep copies; callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self._lock = asyncio.Lock()

    async def ping(self) -> bool:
        return True

    async def get(self, collection: str, document_id: str) -> Document | None:
        data = self._collections[collection].get(document_id)
        if data is None:
            return None
        return with_id(document_id, copy.deepcopy(data))

    async def list(self, collection: str) -> list[Document]:
        return [
            with_id(document_id, copy.deepcopy(data))
            for document_id, data in self._collections[collection].items()
        ]

    async def query(self, collection: str, filters: Mapping[str, Any]) -> list[Document]:
        return [
            document
            for document in await self.list(collection)
            if all(document.get(key) == value for key, value in filters.items())
        ]

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        document_id = uuid.uuid4().hex
        async with self._lock:
            self._collections[collection][document_id] = copy.deepcopy(strip_id(data))
        return document_id

    async def set(
        self, collection: str, document_id: str, data: Mapping[str, Any], *, merge: bool = False
    ) -> None:
        async with self._lock:
            documents = self._collections[collection]
            payload = copy.deepcopy(strip_id(data))
            if merge and document_id in documents:
                documents[document_id].update(payload)
            else:
                documents[document_id] = payload

    async def update(self, collection: str, document_id: str, patch: Mapping[str, Any]) -> bool:
        async with self._lock:
            current = self._collections[collection].get(document_id)
            if current is None:
                return False
            current.update(copy.deepcopy(strip_id(patch)))
            return True

    async def delete(self, collection: str, document_id: str) -> bool:
        async with self._lock:
            return self._collections[collection].pop(document_id, None) is not None

    async def array_append(
        self, collection: str, document_id: str, field: str, value: Mapping[str, Any]
    ) -> bool:
        async with self._lock:
            current = self._collections[collection].get(document_id)
            if current is None:
                return False
            items = current.get(field)
            if not isinstance(items, list):
                items = []
            current[field] = [*items, copy.deepcopy(dict(value))]
            return True

    async def batch_add(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[str]:
        staged = {uuid.uuid4().hex: copy.deepcopy(strip_id(document)) for document in documents}
        async with self._lock:
            self._collections[collection].update(staged)
        return list(staged)
