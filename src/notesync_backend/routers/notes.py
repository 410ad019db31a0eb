# pyright: reportArgumentType=false

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.db import get_session
from notesync_backend.deps import get_current_user
from notesync_backend.domain.record_kinds import NOTE, serialize
from notesync_backend.models import User
from notesync_backend.schemas import (
    ApiResponse,
    ChangesResponse,
    ListResponse,
    NoteSyncRequest,
    NoteWriteRequest,
    SyncResponse,
)
from notesync_backend.services import records_service, sync_service
from notesync_backend.sync_utils import isoformat
from notesync_backend.validators import parse_datetime

router = APIRouter(prefix="/notes", tags=["notes"])


@router.post("/sync", response_model=SyncResponse)
async def sync_notes(
    payload: NoteSyncRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    outcome = await sync_service.reconcile(
        session=session, kind=NOTE, principal_id=int(user.id), deltas=payload.notes
    )
    return {"success": True, "data": outcome.to_dict()}


@router.get("/updates", response_model=ChangesResponse)
async def get_updated_notes(
    since: Optional[str] = Query(default=None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    feed = await sync_service.changes_since(
        session=session, kind=NOTE, principal=user, since=parse_datetime(since, "since")
    )
    return {
        "success": True,
        "count": len(feed.records),
        "data": feed.records,
        "lastSync": isoformat(feed.now),
    }


@router.get("", response_model=ListResponse)
async def list_notes(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await records_service.list_records(session, NOTE, user_id=int(user.id))
    return {"success": True, "count": len(rows), "data": [serialize(r) for r in rows]}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
)
async def create_note(
    payload: NoteWriteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await records_service.create_record(
        session, NOTE, user_id=int(user.id), payload=payload.model_dump(exclude_unset=True)
    )
    return {"success": True, "data": serialize(row)}


@router.get("/{note_id}", response_model=ApiResponse)
async def get_note(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await records_service.get_record(session, NOTE, user_id=int(user.id), record_id=note_id)
    return {"success": True, "data": serialize(row)}


@router.put("/{note_id}", response_model=ApiResponse)
async def update_note(
    note_id: str,
    payload: NoteWriteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await records_service.update_record(
        session,
        NOTE,
        user_id=int(user.id),
        record_id=note_id,
        payload=payload.model_dump(exclude_unset=True),
    )
    return {"success": True, "data": serialize(row)}


@router.delete("/{note_id}", response_model=ApiResponse)
async def delete_note(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await records_service.delete_record(session, NOTE, user_id=int(user.id), record_id=note_id)
    return {"success": True, "data": {}}
