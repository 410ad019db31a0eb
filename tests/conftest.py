from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest

from notesync_backend.config import settings
from notesync_backend.db import dispose_engine, init_db, reset_engine_cache, session_scope
from notesync_backend.models import User
from notesync_backend.security import hash_password


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
async def _dispose_engine_per_test(  # pyright: ignore[reportUnusedFunction]
    anyio_backend: object,  # noqa: ARG001
) -> AsyncGenerator[None, None]:
    # Close the cached AsyncEngine (aiosqlite worker thread) while the
    # per-test event loop is still alive.
    _ = anyio_backend
    yield
    await dispose_engine()


@pytest.fixture(autouse=True)
def _fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
async def sqlite_db(tmp_path: Path) -> AsyncGenerator[str, None]:
    """Point the app at a fresh per-test sqlite file."""

    old_db = settings.database_url
    settings.database_url = f"sqlite:///{tmp_path / 'test.db'}"
    reset_engine_cache()
    await init_db()
    try:
        yield settings.database_url
    finally:
        await dispose_engine()
        settings.database_url = old_db


@pytest.fixture
def make_user(sqlite_db: str) -> Callable[..., Awaitable[User]]:  # noqa: ARG001
    async def _make_user(email: str = "u1@example.com", name: str = "u1") -> User:
        async with session_scope() as session:
            user = User(name=name, email=email, password_hash=hash_password("secret123"))
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user
