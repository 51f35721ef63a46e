from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Supported user roles."""

    ADMIN = "admin"
    TECHNICIAN = "technician"
    USER = "user"

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Map free-form spreadsheet text to a role, defaulting to a plain user."""

        text = str(value or "").strip().lower()
        for role in cls:
            if role.value == text:
                return role
        return cls.USER


DEFAULT_POSITIONS: dict[Role, str] = {
    Role.ADMIN: "Administrador",
    Role.TECHNICIAN: "Técnico",
    Role.USER: "Usuário",
}
