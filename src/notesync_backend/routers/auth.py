# pyright: reportArgumentType=false

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.db import get_session
from notesync_backend.deps import get_current_user
from notesync_backend.models import User
from notesync_backend.schemas import ApiResponse, AuthResponse, LoginRequest, RegisterRequest
from notesync_backend.services import auth_service
from notesync_backend.tokens import make_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> dict[str, object]:
    return {
        "success": True,
        "token": make_access_token(int(user.id)),
        "user": auth_service.serialize_user(user),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    user = await auth_service.register(session, payload)
    return _token_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await auth_service.authenticate(session, payload)
    return _token_response(user)


@router.get("/me", response_model=ApiResponse)
async def get_me(user: User = Depends(get_current_user)):
    return {"success": True, "data": auth_service.serialize_user(user)}


@router.get("/logout")
async def logout(_user: User = Depends(get_current_user)):
    # Tokens are stateless; the client drops its copy.
    return {"success": True, "message": "Logged out successfully"}
