from __future__ import annotations

import re
from datetime import date, datetime, time, timezone

from notesync_backend.errors import ValidationError

_EMAIL_RE = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")

TITLE_MAX_LENGTH = 100
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(str(email).lower()))


def normalize_email(email: str) -> str:
    v = (email or "").strip().lower()
    if not v:
        raise ValidationError("Email is required")
    if not is_valid_email(v):
        raise ValidationError("Please provide a valid email")
    return v


def validate_title(title: str | None) -> str:
    v = (title or "").strip()
    if not v:
        raise ValidationError("Title is required")
    if len(v) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title cannot be more than {TITLE_MAX_LENGTH} characters")
    return v


def validate_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise ValidationError("Content is required")
    return content


def _invalid_date(field_name: str) -> ValidationError:
    return ValidationError(
        f"Please provide a valid date for {field_name}", details={"field": field_name}
    )


def parse_datetime(value: object, field_name: str) -> datetime | None:
    """Parse an ISO date or datetime into an aware UTC datetime.

    Empty values parse to None. Bare dates become midnight UTC. Values that
    cannot be represented in UTC (e.g. year 1 with a positive offset) are
    rejected like malformed input.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise _invalid_date(field_name) from None
    else:
        raise _invalid_date(field_name)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        raise _invalid_date(field_name) from None


def validate_name(name: str | None) -> str:
    v = (name or "").strip()
    if not v:
        raise ValidationError("Name is required")
    if len(v) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name cannot be more than {NAME_MAX_LENGTH} characters")
    return v


def validate_password(password: str | None) -> str:
    if not password:
        raise ValidationError("Password is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    return password
