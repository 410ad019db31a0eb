from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.db import get_session
from notesync_backend.errors import Unauthorized
from notesync_backend.models import User
from notesync_backend.repositories import users_repo
from notesync_backend.tokens import verify_access_token

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    # Dedicated session so request handlers own their transaction boundaries.
    session: AsyncSession = Depends(get_session, use_cache=False),
) -> User:
    raw_token = creds.credentials.strip() if creds is not None else ""
    if not raw_token:
        raise Unauthorized("Not authorized to access this route")

    claims = verify_access_token(raw_token)
    if claims is None:
        raise Unauthorized("Not authorized to access this route")

    user = await users_repo.get_user(session, claims["user_id"])
    if user is None or user.id is None:
        raise Unauthorized("User not found")

    request.state.auth_user_id = int(user.id)
    return user
