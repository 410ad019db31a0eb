from __future__ import annotations

from datetime import datetime
from typing import TypeVar, cast

from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.models import Note, Todo

RowT = TypeVar("RowT", Note, Todo)


def _not_deleted(model: type[Note] | type[Todo]) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], col(model.is_deleted).is_(False))


async def get_record(
    session: AsyncSession,
    model: type[RowT],
    *,
    record_id: str,
    include_deleted: bool,
) -> RowT | None:
    """Look a record up by id only; ownership is checked by the caller."""

    stmt = select(model).where(model.id == record_id)
    if not include_deleted:
        stmt = stmt.where(_not_deleted(model))
    return (await session.exec(stmt)).first()


async def list_active_notes(session: AsyncSession, *, user_id: int) -> list[Note]:
    stmt = (
        select(Note)
        .where(Note.user_id == user_id)
        .where(_not_deleted(Note))
        .order_by(col(Note.created_at).desc())
    )
    return list(await session.exec(stmt))


async def list_active_todos(
    session: AsyncSession,
    *,
    user_id: int,
    completed: bool | None = None,
    due_from: datetime | None = None,
    due_until: datetime | None = None,
) -> list[Todo]:
    """Active todos, ``due_date asc, created_at desc``.

    ``due_from``/``due_until`` bound ``due_date`` inclusively.
    """

    stmt = select(Todo).where(Todo.user_id == user_id).where(_not_deleted(Todo))
    if completed is not None:
        stmt = stmt.where(Todo.completed == completed)
    if due_from is not None:
        stmt = stmt.where(col(Todo.due_date) >= due_from)
    if due_until is not None:
        stmt = stmt.where(col(Todo.due_date) <= due_until)
    stmt = stmt.order_by(col(Todo.due_date).asc(), col(Todo.created_at).desc())
    return list(await session.exec(stmt))


async def list_todos_due_between(
    session: AsyncSession, *, user_id: int, start: datetime, end: datetime
) -> list[Todo]:
    """Active todos with ``start <= due_date <= end``, soonest first."""

    stmt = (
        select(Todo)
        .where(Todo.user_id == user_id)
        .where(_not_deleted(Todo))
        .where(col(Todo.due_date) >= start)
        .where(col(Todo.due_date) <= end)
        .order_by(col(Todo.due_date).asc())
    )
    return list(await session.exec(stmt))


async def list_updated_after(
    session: AsyncSession, model: type[RowT], *, user_id: int, since: datetime
) -> list[RowT]:
    """Change-feed query: tombstones included, oldest change first."""

    stmt = (
        select(model)
        .where(model.user_id == user_id)
        .where(col(model.updated_at) > since)
        .order_by(col(model.updated_at).asc())
    )
    return list(await session.exec(stmt))
