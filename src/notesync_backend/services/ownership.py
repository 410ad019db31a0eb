from __future__ import annotations

from typing import Optional, TypeVar

from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.domain.record_kinds import RecordKind
from notesync_backend.errors import NotFoundOrForbidden
from notesync_backend.models import Note, Todo
from notesync_backend.repositories import records_repo

RowT = TypeVar("RowT", Note, Todo)


def authorize(principal_id: int, record: Optional[RowT], *, label: str = "Record") -> RowT:
    """Return ``record`` if ``principal_id`` owns it.

    Missing and foreign records raise the same error so callers cannot probe
    for other users' ids.
    """

    if record is None or record.user_id != principal_id:
        raise NotFoundOrForbidden(f"{label} not found")
    return record


async def load_owned(
    session: AsyncSession,
    kind: RecordKind,
    *,
    principal_id: int,
    record_id: str,
    include_deleted: bool = False,
) -> Note | Todo:
    row = await records_repo.get_record(
        session, kind.model, record_id=record_id, include_deleted=include_deleted
    )
    return authorize(principal_id, row, label=kind.label)
