from __future__ import annotations

import json
import uuid
from typing import Any, Mapping, Sequence

import asyncpg

from .store import Document, DocumentStoreError, strip_id, with_id


async def _init_connection(connection: asyncpg.Connection) -> None:
    await connection.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def create_pool(dsn: str, *, min_size: int = 1, max_size: int = 10) -> asyncpg.Pool:
    """Create a pool whose connections transparently encode and decode JSONB."""

    return await asyncpg.create_pool(dsn=dsn, min_size=min_size, max_size=max_size, init=_init_connection)


class PostgresDocumentStore:
    """Document store persisting every collection into a single JSONB table."""

    _CREATE_DOCUMENTS_SQL = """
    CREATE TABLE IF NOT EXISTS documents (
        collection TEXT NOT NULL,
        id TEXT NOT NULL,
        data JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (collection, id)
    )
    """

    _CREATE_DATA_INDEX_SQL = """
    CREATE INDEX IF NOT EXISTS documents_data_idx ON documents USING GIN (data jsonb_path_ops)
    """

    _SELECT_DOCUMENT_SQL = """
    SELECT id, data FROM documents WHERE collection = $1 AND id = $2
    """

    _LIST_DOCUMENTS_SQL = """
    SELECT id, data FROM documents WHERE collection = $1 ORDER BY created_at ASC
    """

    _QUERY_DOCUMENTS_SQL = """
    SELECT id, data FROM documents
    WHERE collection = $1 AND data @> $2::jsonb
    ORDER BY created_at ASC
    """

    _INSERT_DOCUMENT_SQL = """
    INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb)
    """

    _REPLACE_DOCUMENT_SQL = """
    INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb)
    ON CONFLICT (collection, id) DO UPDATE SET data = EXCLUDED.data
    """

    _MERGE_DOCUMENT_SQL = """
    INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb)
    ON CONFLICT (collection, id) DO UPDATE SET data = documents.data || EXCLUDED.data
    """

    _UPDATE_DOCUMENT_SQL = """
    UPDATE documents SET data = data || $3::jsonb
    WHERE collection = $1 AND id = $2
    RETURNING id
    """

    # A single UPDATE holds the row lock, so concurrent appends are serialised
    # and each one re-reads the latest array.
    _ARRAY_APPEND_SQL = """
    UPDATE documents
    SET data = jsonb_set(
        data,
        ARRAY[$3::text],
        CASE
            WHEN jsonb_typeof(data -> $3::text) = 'array' THEN data -> $3::text
            ELSE '[]'::jsonb
        END || jsonb_build_array($4::jsonb)
    )
    WHERE collection = $1 AND id = $2
    RETURNING id
    """

    _DELETE_DOCUMENT_SQL = """
    DELETE FROM documents WHERE collection = $1 AND id = $2 RETURNING id
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_DOCUMENTS_SQL)
            await connection.execute(self._CREATE_DATA_INDEX_SQL)

    async def ping(self) -> bool:
        try:
            async with self._pool.acquire() as connection:
                await connection.execute("SELECT 1")
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError("Document store is unreachable") from exc
        return True

    async def get(self, collection: str, document_id: str) -> Document | None:
        try:
            async with self._pool.acquire() as connection:
                row = await connection.fetchrow(self._SELECT_DOCUMENT_SQL, collection, document_id)
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to read {collection}/{document_id}") from exc
        if row is None:
            return None
        return self._row_to_document(row)

    async def list(self, collection: str) -> list[Document]:
        try:
            async with self._pool.acquire() as connection:
                rows = await connection.fetch(self._LIST_DOCUMENTS_SQL, collection)
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to list {collection}") from exc
        return [self._row_to_document(row) for row in rows]

    async def query(self, collection: str, filters: Mapping[str, Any]) -> list[Document]:
        try:
            async with self._pool.acquire() as connection:
                rows = await connection.fetch(self._QUERY_DOCUMENTS_SQL, collection, dict(filters))
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to query {collection}") from exc
        return [self._row_to_document(row) for row in rows]

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        document_id = _generate_id()
        try:
            async with self._pool.acquire() as connection:
                await connection.execute(self._INSERT_DOCUMENT_SQL, collection, document_id, strip_id(data))
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to insert into {collection}") from exc
        return document_id

    async def set(
        self, collection: str, document_id: str, data: Mapping[str, Any], *, merge: bool = False
    ) -> None:
        statement = self._MERGE_DOCUMENT_SQL if merge else self._REPLACE_DOCUMENT_SQL
        try:
            async with self._pool.acquire() as connection:
                await connection.execute(statement, collection, document_id, strip_id(data))
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to write {collection}/{document_id}") from exc

    async def update(self, collection: str, document_id: str, patch: Mapping[str, Any]) -> bool:
        try:
            async with self._pool.acquire() as connection:
                row = await connection.fetchrow(
                    self._UPDATE_DOCUMENT_SQL, collection, document_id, strip_id(patch)
                )
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to update {collection}/{document_id}") from exc
        return row is not None

    async def delete(self, collection: str, document_id: str) -> bool:
        try:
            async with self._pool.acquire() as connection:
                row = await connection.fetchrow(self._DELETE_DOCUMENT_SQL, collection, document_id)
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to delete {collection}/{document_id}") from exc
        return row is not None

    async def array_append(
        self, collection: str, document_id: str, field: str, value: Mapping[str, Any]
    ) -> bool:
        try:
            async with self._pool.acquire() as connection:
                row = await connection.fetchrow(
                    self._ARRAY_APPEND_SQL, collection, document_id, field, dict(value)
                )
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to append to {collection}/{document_id}.{field}") from exc
        return row is not None

    async def batch_add(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[str]:
        records = [(collection, _generate_id(), strip_id(document)) for document in documents]
        try:
            async with self._pool.acquire() as connection:
                async with connection.transaction():
                    await connection.executemany(self._INSERT_DOCUMENT_SQL, records)
        except (asyncpg.PostgresError, OSError) as exc:
            raise DocumentStoreError(f"Failed to batch insert into {collection}") from exc
        return [record[1] for record in records]

    @staticmethod
    def _row_to_document(row: Mapping[str, Any]) -> Document:
        data = row["data"]
        if isinstance(data, str):
            data = json.loads(data)
        return with_id(str(row["id"]), data or {})


def _generate_id() -> str:
    return uuid.uuid4().hex
