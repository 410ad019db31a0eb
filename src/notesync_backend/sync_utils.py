from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.models import User


def as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back naive; everything we store is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()


async def advance_sync_cursor(session: AsyncSession, user_id: int, now: datetime) -> datetime:
    """Move the principal's watermark forward to ``now``; never backwards.

    Commits on the given session and returns the stored cursor value.
    """

    user = await session.get(User, user_id)
    if user is None:
        raise LookupError(f"user {user_id} vanished before cursor advance")

    current = as_utc(user.last_synced_at)
    if now > current:
        user.last_synced_at = now
        session.add(user)
        await session.commit()
        return now
    return current
