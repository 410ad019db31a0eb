# pyright: reportArgumentType=false

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.db import get_session
from notesync_backend.deps import get_current_user
from notesync_backend.models import User
from notesync_backend.schemas import ApiResponse, ProfileUpdateRequest
from notesync_backend.services import auth_service
from notesync_backend.sync_utils import isoformat

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/profile", response_model=ApiResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    updated = await auth_service.update_profile(session, user_id=int(user.id), payload=payload)
    return {"success": True, "data": auth_service.serialize_user(updated)}


@router.put("/sync", response_model=ApiResponse)
async def update_last_synced(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    cursor = await auth_service.touch_sync_cursor(session, user_id=int(user.id))
    return {"success": True, "data": {"lastSynced": isoformat(cursor)}}
