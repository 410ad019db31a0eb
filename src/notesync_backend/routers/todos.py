# pyright: reportArgumentType=false

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.db import get_session
from notesync_backend.deps import get_current_user
from notesync_backend.domain.record_kinds import TODO, serialize
from notesync_backend.models import User
from notesync_backend.schemas import (
    ApiResponse,
    ChangesResponse,
    ListResponse,
    SyncResponse,
    TodoSyncRequest,
    TodoWriteRequest,
)
from notesync_backend.services import records_service, sync_service, todos_service
from notesync_backend.sync_utils import isoformat
from notesync_backend.validators import parse_datetime

router = APIRouter(prefix="/todos", tags=["todos"])


@router.post("/sync", response_model=SyncResponse)
async def sync_todos(
    payload: TodoSyncRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    outcome = await sync_service.reconcile(
        session=session, kind=TODO, principal_id=int(user.id), deltas=payload.todos
    )
    return {"success": True, "data": outcome.to_dict()}


@router.get("/updates", response_model=ChangesResponse)
async def get_updated_todos(
    since: Optional[str] = Query(default=None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    feed = await sync_service.changes_since(
        session=session, kind=TODO, principal=user, since=parse_datetime(since, "since")
    )
    return {
        "success": True,
        "count": len(feed.records),
        "data": feed.records,
        "lastSync": isoformat(feed.now),
    }


@router.get("/due", response_model=ListResponse)
async def get_todos_by_due_date(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await todos_service.list_todos_due(session, user_id=int(user.id), start=start, end=end)
    return {"success": True, "count": len(rows), "data": [serialize(r) for r in rows]}


@router.get("", response_model=ListResponse)
async def list_todos(
    completed: Optional[str] = Query(default=None),
    due_date: Optional[str] = Query(default=None, alias="dueDate"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await todos_service.list_todos(
        session, user_id=int(user.id), completed=completed, due_date=due_date
    )
    return {"success": True, "count": len(rows), "data": [serialize(r) for r in rows]}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def create_todo(
    payload: TodoWriteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await records_service.create_record(
        session, TODO, user_id=int(user.id), payload=payload.model_dump(exclude_unset=True)
    )
    return {"success": True, "data": serialize(row)}


@router.put("/{todo_id}/toggle", response_model=ApiResponse)
async def toggle_todo_status(
    todo_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await todos_service.toggle_todo(session, user_id=int(user.id), todo_id=todo_id)
    return {"success": True, "data": serialize(row)}


@router.get("/{todo_id}", response_model=ApiResponse)
async def get_todo(
    todo_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await records_service.get_record(session, TODO, user_id=int(user.id), record_id=todo_id)
    return {"success": True, "data": serialize(row)}


@router.put("/{todo_id}", response_model=ApiResponse)
async def update_todo(
    todo_id: str,
    payload: TodoWriteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    row = await records_service.update_record(
        session,
        TODO,
        user_id=int(user.id),
        record_id=todo_id,
        payload=payload.model_dump(exclude_unset=True),
    )
    return {"success": True, "data": serialize(row)}


@router.delete("/{todo_id}", response_model=ApiResponse)
async def delete_todo(
    todo_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await records_service.delete_record(session, TODO, user_id=int(user.id), record_id=todo_id)
    return {"success": True, "data": {}}
