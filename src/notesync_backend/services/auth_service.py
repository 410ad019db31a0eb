from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.errors import Conflict, Unauthorized, ValidationError
from notesync_backend.models import User, utc_now
from notesync_backend.repositories import users_repo
from notesync_backend.schemas import LoginRequest, ProfileUpdateRequest, RegisterRequest
from notesync_backend.security import hash_password, needs_rehash, verify_password
from notesync_backend.sync_utils import advance_sync_cursor
from notesync_backend.validators import (
    normalize_email,
    validate_name,
    validate_password,
)

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> dict[str, object]:
    return {"id": user.id, "name": user.name, "email": user.email}


async def register(session: AsyncSession, payload: RegisterRequest) -> User:
    name = validate_name(payload.name)
    email = normalize_email(payload.email)
    password = validate_password(payload.password)

    # Duplicate email is reported before anything is written.
    if await users_repo.get_user_by_email(session, email) is not None:
        raise Conflict("Email already exists")

    try:
        password_hash = hash_password(password)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    user = User(name=name, email=email, password_hash=password_hash)
    try:
        session.add(user)
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise Conflict("Email already exists") from None

    logger.info("registered user_id=%s", user.id)
    return user


async def authenticate(session: AsyncSession, payload: LoginRequest) -> User:
    if not payload.email or not payload.password:
        raise ValidationError("Please provide email and password")

    user = await users_repo.get_user_by_email(session, payload.email.strip().lower())
    if user is None or not verify_password(payload.password, user.password_hash):
        raise Unauthorized("Invalid credentials")

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        session.add(user)
        await session.commit()
        logger.info("upgraded password hash user_id=%s", user.id)
    return user


async def update_profile(
    session: AsyncSession, *, user_id: int, payload: ProfileUpdateRequest
) -> User:
    user = await users_repo.get_user(session, user_id)
    if user is None:
        raise Unauthorized("User not found")

    if payload.name:
        user.name = validate_name(payload.name)
    if payload.email:
        email = normalize_email(payload.email)
        if email != user.email:
            existing = await users_repo.get_user_by_email(session, email)
            if existing is not None:
                raise Conflict("Email already exists")
            user.email = email

    try:
        session.add(user)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("Email already exists") from None
    return user


async def touch_sync_cursor(session: AsyncSession, *, user_id: int) -> datetime:
    return await advance_sync_cursor(session, user_id, utc_now())
