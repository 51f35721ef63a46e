"""Salted password hashing for stored user credentials."""

from werkzeug.security import check_password_hash, generate_password_hash

_HASH_METHOD = "pbkdf2:sha256"


def hash_password(password: str) -> str:
    return generate_password_hash(password, method=_HASH_METHOD)


def verify_password(password_hash: str | None, password: str) -> bool:
    """Constant-time check of ``password`` against a stored hash.

    Values that are not hashes (for example legacy plaintext passwords) never match.
    """
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)
