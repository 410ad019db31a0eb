from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.domain.record_kinds import (
    NOTE,
    RecordKind,
    RecordRow,
    apply_changes,
    extract_changes,
    merge_validated,
    new_row,
)
from notesync_backend.models import utc_now
from notesync_backend.repositories import records_repo
from notesync_backend.services.ownership import load_owned


async def list_records(session: AsyncSession, kind: RecordKind, *, user_id: int) -> list[RecordRow]:
    if kind is NOTE:
        return list(await records_repo.list_active_notes(session, user_id=user_id))
    return list(await records_repo.list_active_todos(session, user_id=user_id))


async def get_record(
    session: AsyncSession, kind: RecordKind, *, user_id: int, record_id: str
) -> RecordRow:
    return await load_owned(session, kind, principal_id=user_id, record_id=record_id)


async def create_record(
    session: AsyncSession, kind: RecordKind, *, user_id: int, payload: Mapping[str, Any]
) -> RecordRow:
    local_id = payload.get("localId")
    row = new_row(
        kind,
        record_id=str(uuid.uuid4()),
        user_id=user_id,
        local_id=str(local_id) if local_id else None,
        changes=extract_changes(kind, payload),
        now=utc_now(),
    )
    session.add(row)
    await session.commit()
    return row


async def update_record(
    session: AsyncSession,
    kind: RecordKind,
    *,
    user_id: int,
    record_id: str,
    payload: Mapping[str, Any],
) -> RecordRow:
    row = await load_owned(session, kind, principal_id=user_id, record_id=record_id)
    merged = merge_validated(kind, row, extract_changes(kind, payload))
    apply_changes(row, merged, utc_now())
    session.add(row)
    await session.commit()
    return row


async def delete_record(
    session: AsyncSession, kind: RecordKind, *, user_id: int, record_id: str
) -> None:
    """Soft delete: the row stays for the change feed."""

    row = await load_owned(session, kind, principal_id=user_id, record_id=record_id)
    row.is_deleted = True
    row.updated_at = utc_now()
    session.add(row)
    await session.commit()
