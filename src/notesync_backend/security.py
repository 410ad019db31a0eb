"""Password hashing (bcrypt)."""

from __future__ import annotations

import bcrypt

from notesync_backend.config import settings

_MAX_BCRYPT_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes | None:
    raw = password.encode("utf-8")
    if len(raw) > _MAX_BCRYPT_PASSWORD_BYTES:
        return None
    return raw


def hash_password(password: str) -> str:
    raw = _password_bytes(password)
    if raw is None:
        raise ValueError("Password is too long (bcrypt accepts at most 72 bytes)")
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(raw, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    raw = _password_bytes(password)
    if raw is None or not password_hash:
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def needs_rehash(password_hash: str) -> bool:
    """True when the stored hash was made with a different bcrypt cost."""

    # $2b$<cost>$<salt+digest>
    parts = password_hash.split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return True
    return int(parts[2]) != settings.bcrypt_rounds
