from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from app.core.timestamps import Clock, to_iso, utc_now
from app.db.store import Document, DocumentStore, with_id

from .models import DEFAULT_POSITIONS, Role
from .passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

USERS = "users"


class UserServiceError(RuntimeError):
    """Base error for user service issues."""


class UserNotFoundError(UserServiceError):
    """Raised when a user could not be located."""


class InvalidCredentialsError(UserServiceError):
    """Raised when an email/password pair does not match any user."""


class BulkImportError(UserServiceError, ValueError):
    """Raised when a bulk import payload contains no usable rows."""


def public_user(document: Mapping[str, Any]) -> Document:
    """Copy of a user document without its credential."""

    return {key: value for key, value in document.items() if key != "password"}


class UserService:
    """User accounts: credential checks, CRUD and spreadsheet import."""

    def __init__(self, store: DocumentStore, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def login(self, email: str, password: str) -> Document:
        candidates = await self._store.query(USERS, {"email": email})
        for candidate in candidates:
            if verify_password(candidate.get("password"), password):
                return public_user(candidate)
        raise InvalidCredentialsError("Invalid email or password")

    async def list_users(self) -> list[Document]:
        return [public_user(user) for user in await self._store.list(USERS)]

    async def get_user(self, user_id: str) -> Document:
        user = await self.find(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return public_user(user)

    async def find(self, user_id: Any) -> Document | None:
        """Raw lookup used to resolve weak ``userId`` references; ``None`` when absent."""

        if not isinstance(user_id, str) or not user_id:
            return None
        return await self._store.get(USERS, user_id)

    async def with_role(self, role: Role) -> list[Document]:
        return await self._store.query(USERS, {"role": role.value})

    async def create_user(self, payload: Mapping[str, Any]) -> Document:
        data = dict(payload)
        if data.get("password"):
            data["password"] = hash_password(str(data["password"]))
        data.setdefault("role", Role.USER.value)
        data["createdAt"] = to_iso(self._clock())
        user_id = await self._store.add(USERS, data)
        return public_user(with_id(user_id, data))

    async def update_user(self, user_id: str, patch: Mapping[str, Any]) -> Document:
        data = dict(patch)
        data.pop("createdAt", None)
        if data.get("password"):
            data["password"] = hash_password(str(data["password"]))
        else:
            data.pop("password", None)
        if not await self._store.update(USERS, user_id, data):
            raise UserNotFoundError(f"User {user_id} not found")
        return public_user(with_id(user_id, data))

    async def delete_user(self, user_id: str) -> None:
        if not await self._store.delete(USERS, user_id):
            raise UserNotFoundError(f"User {user_id} not found")

    async def bulk_import(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """Create users from spreadsheet rows in one atomic batch.

        Rows use the sheet's headers (``Nome``, ``Email``, ``Senha``, ``Papel``,
        ``Departamento``, ``Cargo``, ``Telefone``). Rows without a name, email or
        password are skipped. Returns the number of users created.
        """
        created_at = to_iso(self._clock())
        documents: list[Document] = []
        skipped = 0
        for row in rows:
            if not isinstance(row, Mapping) or not (row.get("Nome") and row.get("Email") and row.get("Senha")):
                skipped += 1
                continue
            role = Role.parse(row.get("Papel"))
            documents.append(
                {
                    "name": row["Nome"],
                    "email": row["Email"],
                    "department": row.get("Departamento") or "Não especificado",
                    "password": hash_password(str(row["Senha"])),
                    "role": role.value,
                    "position": row.get("Cargo") or DEFAULT_POSITIONS[role],
                    "phone": row.get("Telefone") or "",
                    "createdAt": created_at,
                }
            )

        if not documents:
            raise BulkImportError("No valid users to create")

        await self._store.batch_add(USERS, documents)
        logger.info("Imported %d users (%d rows skipped)", len(documents), skipped)
        return len(documents)
