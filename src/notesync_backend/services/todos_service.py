from __future__ import annotations

from datetime import datetime, time

from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.domain.record_kinds import TODO, set_completion
from notesync_backend.errors import NotFoundOrForbidden, ValidationError
from notesync_backend.models import Todo, utc_now
from notesync_backend.repositories import records_repo
from notesync_backend.services.ownership import load_owned
from notesync_backend.validators import parse_datetime


def _start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)


def _end_of_day(value: datetime) -> datetime:
    # Last instant of the same day; stays in range for 9999-12-31.
    return datetime.combine(value.date(), time.max, tzinfo=value.tzinfo)


def _parse_completed_flag(raw: str | None) -> bool | None:
    # Only the literal strings filter; anything else means "no filter".
    if raw == "true":
        return True
    if raw == "false":
        return False
    return None


async def list_todos(
    session: AsyncSession,
    *,
    user_id: int,
    completed: str | None = None,
    due_date: str | None = None,
) -> list[Todo]:
    due_from: datetime | None = None
    due_until: datetime | None = None
    day = parse_datetime(due_date, "dueDate")
    if day is not None:
        due_from = _start_of_day(day)
        due_until = _end_of_day(day)

    return await records_repo.list_active_todos(
        session,
        user_id=user_id,
        completed=_parse_completed_flag(completed),
        due_from=due_from,
        due_until=due_until,
    )


async def list_todos_due(
    session: AsyncSession, *, user_id: int, start: str | None, end: str | None
) -> list[Todo]:
    """Todos due on any day from ``start`` through ``end``, both days inclusive."""

    start_dt = parse_datetime(start, "start")
    end_dt = parse_datetime(end, "end")
    if start_dt is None or end_dt is None:
        raise ValidationError("Please provide start and end dates")

    range_start = _start_of_day(start_dt)
    range_end = _end_of_day(end_dt)
    return await records_repo.list_todos_due_between(
        session, user_id=user_id, start=range_start, end=range_end
    )


async def toggle_todo(session: AsyncSession, *, user_id: int, todo_id: str) -> Todo:
    row = await load_owned(session, TODO, principal_id=user_id, record_id=todo_id)
    if not isinstance(row, Todo):
        raise NotFoundOrForbidden("Todo not found")
    now = utc_now()
    set_completion(row, not row.completed, now)
    row.updated_at = now
    session.add(row)
    await session.commit()
    return row
