"""Load a JSON dump of users, tickets, categories and SLA rules into the document store.

Usage::

    python -m app.seed path/to/db.json

Documents keep the ids found in the dump, so running the seeder twice
overwrites instead of duplicating. Plaintext passwords are hashed on the way in.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from app.configuration.service import (
    CATEGORIES,
    EMAIL_SETTINGS,
    GENERAL_SETTINGS,
    SETTINGS_DOCUMENT_ID,
    SLA_CONFIG,
)
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.postgres import PostgresDocumentStore, create_pool
from app.db.store import DocumentStore
from app.tickets.models import TICKETS
from app.users.passwords import hash_password
from app.users.service import USERS

logger = logging.getLogger(__name__)

SEEDED_COLLECTIONS: dict[str, str] = {
    "users": USERS,
    "tickets": TICKETS,
    "categories": CATEGORIES,
    "slaConfig": SLA_CONFIG,
}

DEFAULT_GENERAL_SETTINGS: dict[str, Any] = {
    "companyName": "HelpDesk Pro",
    "supportEmail": "suporte@empresa.com",
    "maxFileSize": 10,
    "allowedFileTypes": ".pdf,.doc,.docx,.jpg,.jpeg,.png",
    "autoAssignment": True,
    "requireApproval": False,
}

DEFAULT_EMAIL_SETTINGS: dict[str, Any] = {
    "notifyOnNew": True,
    "notifyOnUpdate": True,
    "notifyOnClose": True,
}


def _is_password_hash(value: str) -> bool:
    return value.count("$") >= 2 and value.split("$", 1)[0].startswith(("pbkdf2:", "scrypt:"))


def prepare_user(user: Mapping[str, Any]) -> dict[str, Any]:
    prepared = dict(user)
    password = prepared.get("password")
    if password and not _is_password_hash(str(password)):
        prepared["password"] = hash_password(str(password))
    return prepared


async def seed(store: DocumentStore, data: Mapping[str, Sequence[Mapping[str, Any]]]) -> dict[str, int]:
    """Write every known collection from ``data`` and return per-collection counts."""

    counts: dict[str, int] = {}
    for key, collection in SEEDED_COLLECTIONS.items():
        written = 0
        for document in data.get(key) or ():
            document_id = document.get("id")
            if not document_id:
                logger.warning("Skipping %s entry without an id", key)
                continue
            body = prepare_user(document) if collection == USERS else dict(document)
            await store.set(collection, str(document_id), body)
            written += 1
        counts[collection] = written
        logger.info("Seeded %d %s", written, collection)

    if await store.get(GENERAL_SETTINGS, SETTINGS_DOCUMENT_ID) is None:
        await store.set(GENERAL_SETTINGS, SETTINGS_DOCUMENT_ID, DEFAULT_GENERAL_SETTINGS)
    if await store.get(EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID) is None:
        await store.set(EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID, DEFAULT_EMAIL_SETTINGS)
    return counts


async def _run(path: Path) -> None:
    settings = get_settings()
    configure_logging(settings)
    data = json.loads(path.read_text(encoding="utf-8"))
    pool = await create_pool(
        settings.postgres_dsn,
        min_size=settings.postgres_pool_min_size,
        max_size=settings.postgres_pool_max_size,
    )
    try:
        store = PostgresDocumentStore(pool)
        await store.ensure_schema()
        await seed(store, data)
    finally:
        await pool.close()


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", type=Path, help="JSON file with users, tickets, categories and slaConfig lists")
    args = parser.parse_args(argv)
    if not args.path.exists():
        parser.error(f"{args.path} does not exist")
    asyncio.run(_run(args.path))


if __name__ == "__main__":
    main()
