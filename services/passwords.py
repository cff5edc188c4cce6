"""Password hashing and session token helpers."""

from __future__ import annotations

import secrets

from werkzeug.security import check_password_hash, generate_password_hash

TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Return a salted hash of ``password`` suitable for storage."""

    return generate_password_hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Return ``True`` when ``password`` matches ``password_hash``."""

    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def generate_token() -> str:
    """Return a new opaque session token (64 hex characters)."""

    return secrets.token_hex(TOKEN_BYTES)


__all__ = ["TOKEN_BYTES", "generate_token", "hash_password", "verify_password"]
