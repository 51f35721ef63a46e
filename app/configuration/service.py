from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from app.core.timestamps import Clock, to_iso, utc_now
from app.db.store import Document, DocumentNotFoundError, DocumentStore, with_id

CATEGORIES = "categories"
SLA_CONFIG = "slaConfig"
GENERAL_SETTINGS = "generalSettings"
EMAIL_SETTINGS = "emailSettings"
SETTINGS_DOCUMENT_ID = "main"

EMAIL_SETTING_FLAGS = ("notifyOnNew", "notifyOnUpdate", "notifyOnClose")


@dataclass(frozen=True, slots=True)
class NotificationFlags:
    """Which ticket events email the people involved. Unset flags default to on."""

    on_new: bool = True
    on_update: bool = True
    on_close: bool = True

    @classmethod
    def from_document(cls, document: Mapping[str, Any] | None) -> "NotificationFlags":
        if not document:
            return cls()
        return cls(
            on_new=document.get("notifyOnNew") is not False,
            on_update=document.get("notifyOnUpdate") is not False,
            on_close=document.get("notifyOnClose") is not False,
        )


async def load_notification_flags(store: DocumentStore) -> NotificationFlags:
    document = await store.get(EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID)
    return NotificationFlags.from_document(document)


class CategoryService:
    """Ticket categories; deactivated categories are hidden instead of deleted."""

    def __init__(self, store: DocumentStore, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def list_active(self) -> list[Document]:
        return await self._store.query(CATEGORIES, {"isActive": True})

    async def create(self, payload: Mapping[str, Any]) -> Document:
        data = {"isActive": True, **payload, "createdAt": to_iso(self._clock())}
        category_id = await self._store.add(CATEGORIES, data)
        return with_id(category_id, data)

    async def update(self, category_id: str, patch: Mapping[str, Any]) -> Document:
        if not await self._store.update(CATEGORIES, category_id, patch):
            raise DocumentNotFoundError(f"Category {category_id} not found")
        return with_id(category_id, patch)

    async def deactivate(self, category_id: str) -> None:
        if not await self._store.update(CATEGORIES, category_id, {"isActive": False}):
            raise DocumentNotFoundError(f"Category {category_id} not found")


class SlaService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list(self) -> list[Document]:
        return await self._store.list(SLA_CONFIG)

    async def update(self, sla_id: str, patch: Mapping[str, Any]) -> Document:
        if not await self._store.update(SLA_CONFIG, sla_id, patch):
            raise DocumentNotFoundError(f"SLA configuration {sla_id} not found")
        return with_id(sla_id, patch)


class SettingsService:
    """Singleton settings documents with read-modify-merge semantics."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def _get(self, collection: str) -> Document:
        document = await self._store.get(collection, SETTINGS_DOCUMENT_ID)
        if document is None:
            raise DocumentNotFoundError(f"{collection} not found")
        document.pop("id", None)
        return document

    async def get_general(self) -> Document:
        return await self._get(GENERAL_SETTINGS)

    async def save_general(self, values: Mapping[str, Any]) -> Document:
        await self._store.set(GENERAL_SETTINGS, SETTINGS_DOCUMENT_ID, values, merge=True)
        return dict(values)

    async def get_email(self) -> Document:
        return await self._get(EMAIL_SETTINGS)

    async def save_email(self, values: Mapping[str, Any]) -> Document:
        flags = {key: values[key] for key in EMAIL_SETTING_FLAGS if key in values}
        await self._store.set(EMAIL_SETTINGS, SETTINGS_DOCUMENT_ID, flags, merge=True)
        return flags
