"""User accounts and credentials."""

from .models import Role
from .service import (
    BulkImportError,
    InvalidCredentialsError,
    UserNotFoundError,
    UserService,
    public_user,
)

__all__ = [
    "BulkImportError",
    "InvalidCredentialsError",
    "Role",
    "UserNotFoundError",
    "UserService",
    "public_user",
]
