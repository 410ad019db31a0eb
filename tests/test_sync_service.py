from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from notesync_backend.config import settings
from notesync_backend.db import session_scope
from notesync_backend.domain import record_kinds
from notesync_backend.domain.deltas import REASON_MISSING_IDENTITY, REASON_NOT_FOUND
from notesync_backend.domain.record_kinds import NOTE, TODO, RecordKind, RecordRow
from notesync_backend.errors import ValidationError
from notesync_backend.models import Note, Todo, User
from notesync_backend.services import sync_service
from notesync_backend.sync_utils import as_utc

MakeUser = Callable[..., Awaitable[User]]

# Ahead of the wall clock so the cursor set by make_user never outruns it.
T0 = datetime(2100, 1, 1, 8, 0, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(minutes=5)
T2 = T0 + timedelta(minutes=10)


async def _insert_note(note_id: str, user_id: int, *, updated_at: datetime = T0) -> None:
    async with session_scope() as session:
        session.add(
            Note(
                id=note_id,
                user_id=user_id,
                title=f"note {note_id}",
                content="body",
                created_at=updated_at,
                updated_at=updated_at,
            )
        )
        await session.commit()


async def _load_user(user_id: int) -> User:
    async with session_scope() as session:
        user = await session.get(User, user_id)
        assert user is not None
        return user


@pytest.mark.anyio
async def test_reconcile_mixed_batch_and_change_feed(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    await _insert_note("existing-1", user.id)

    deltas: list[object] = [
        {"title": "A", "content": "x", "localId": "L1"},
        {"_id": "existing-1", "isDeleted": True},
        {"_id": "missing-9", "title": "y"},
    ]
    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session, kind=NOTE, principal_id=user.id, deltas=deltas, now=T1
        )

    assert len(outcome.created) == 1
    created = outcome.created[0]
    assert created["localId"] == "L1"
    assert created["title"] == "A"
    assert created["ownerId"] == user.id
    assert created["_id"] and created["_id"] != "L1"
    assert outcome.updated == []
    assert outcome.deleted == ["existing-1"]
    assert outcome.errors == [
        {"input": {"_id": "missing-9", "title": "y"}, "reason": REASON_NOT_FOUND}
    ]
    assert outcome.total() == len(deltas)

    refreshed = await _load_user(user.id)
    assert as_utc(refreshed.last_synced_at) == T1

    async with session_scope() as session:
        feed = await sync_service.changes_since(
            session=session, kind=NOTE, principal=refreshed, since=T0, now=T2
        )

    ids = {r["_id"] for r in feed.records}
    assert ids == {created["_id"], "existing-1"}
    tombstone = next(r for r in feed.records if r["_id"] == "existing-1")
    assert tombstone["isDeleted"] is True
    assert feed.now == T2


@pytest.mark.anyio
async def test_reconcile_replaying_update_is_noop(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    await _insert_note("n1", user.id)

    delta = {"_id": "n1", "title": "renamed", "content": "new body"}
    for now in (T1, T2):
        async with session_scope() as session:
            outcome = await sync_service.reconcile(
                session=session, kind=NOTE, principal_id=user.id, deltas=[delta], now=now
            )
        assert outcome.errors == []
        assert [r["_id"] for r in outcome.updated] == ["n1"]

    async with session_scope() as session:
        rows = list(await session.exec(select(Note).where(Note.user_id == user.id)))
    assert len(rows) == 1
    assert rows[0].title == "renamed"
    assert rows[0].content == "new body"
    assert as_utc(rows[0].updated_at) == T2


@pytest.mark.anyio
async def test_reconcile_replaying_tombstone_is_noop(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    await _insert_note("n1", user.id)

    for _ in range(2):
        async with session_scope() as session:
            outcome = await sync_service.reconcile(
                session=session,
                kind=NOTE,
                principal_id=user.id,
                deltas=[{"_id": "n1", "isDeleted": True}],
            )
        assert outcome.deleted == ["n1"]
        assert outcome.errors == []


@pytest.mark.anyio
async def test_reconcile_foreign_record_is_reported_as_not_found(make_user: MakeUser) -> None:
    owner = await make_user("owner@example.com", "owner")
    other = await make_user("other@example.com", "other")
    assert owner.id is not None and other.id is not None
    await _insert_note("n-owned", owner.id)

    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session,
            kind=NOTE,
            principal_id=other.id,
            deltas=[
                {"_id": "n-owned", "title": "hijack", "content": "x"},
                {"_id": "n-owned", "isDeleted": True},
            ],
        )

    assert [e["reason"] for e in outcome.errors] == [REASON_NOT_FOUND, REASON_NOT_FOUND]
    async with session_scope() as session:
        row = await session.get(Note, "n-owned")
    assert row is not None
    assert row.title == "note n-owned"
    assert row.is_deleted is False
    assert row.user_id == owner.id


@pytest.mark.anyio
async def test_reconcile_ignores_owner_reassignment(make_user: MakeUser) -> None:
    owner = await make_user("owner@example.com", "owner")
    other = await make_user("other@example.com", "other")
    assert owner.id is not None and other.id is not None
    await _insert_note("n1", owner.id)

    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session,
            kind=NOTE,
            principal_id=owner.id,
            deltas=[
                {"_id": "n1", "title": "t", "ownerId": other.id, "user": other.id},
                {"localId": "L1", "title": "t", "content": "c", "ownerId": other.id},
            ],
        )

    assert outcome.errors == []
    assert outcome.updated[0]["ownerId"] == owner.id
    assert outcome.created[0]["ownerId"] == owner.id


@pytest.mark.anyio
async def test_reconcile_item_errors_do_not_stop_the_batch(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    await _insert_note("n1", user.id)

    deltas: list[object] = [
        {"title": "no identity"},
        "not-an-object",
        {"localId": "L-bad", "title": "", "content": "x"},
        {"_id": "n1", "title": "x" * 101},
        {"localId": "L-ok", "title": "ok", "content": "x"},
    ]
    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session, kind=NOTE, principal_id=user.id, deltas=deltas
        )

    reasons = [e["reason"] for e in outcome.errors]
    assert reasons == [
        REASON_MISSING_IDENTITY,
        "delta must be an object",
        "Title is required",
        "Title cannot be more than 100 characters",
    ]
    assert [r["localId"] for r in outcome.created] == ["L-ok"]
    assert outcome.total() == len(deltas)

    async with session_scope() as session:
        row = await session.get(Note, "n1")
    assert row is not None
    assert row.title == "note n1"


@pytest.mark.anyio
async def test_reconcile_later_delta_on_same_id_wins(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    await _insert_note("n1", user.id)

    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session,
            kind=NOTE,
            principal_id=user.id,
            deltas=[
                {"_id": "n1", "title": "first"},
                {"_id": "n1", "title": "second"},
            ],
        )

    assert [r["title"] for r in outcome.updated] == ["first", "second"]
    async with session_scope() as session:
        row = await session.get(Note, "n1")
    assert row is not None
    assert row.title == "second"


@pytest.mark.anyio
async def test_reconcile_explicit_undelete_restores_tombstone(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    await _insert_note("n1", user.id)

    async with session_scope() as session:
        await sync_service.reconcile(
            session=session,
            kind=NOTE,
            principal_id=user.id,
            deltas=[{"_id": "n1", "isDeleted": True}],
        )
        outcome = await sync_service.reconcile(
            session=session,
            kind=NOTE,
            principal_id=user.id,
            deltas=[{"_id": "n1", "isDeleted": False, "title": "back"}],
        )

    assert outcome.updated[0]["isDeleted"] is False
    assert outcome.updated[0]["title"] == "back"


@pytest.mark.anyio
async def test_reconcile_storage_error_is_item_local(
    make_user: MakeUser, monkeypatch: pytest.MonkeyPatch
) -> None:
    user = await make_user()
    assert user.id is not None

    real_new_row = record_kinds.new_row

    def flaky_new_row(kind: RecordKind, **kwargs: Any) -> RecordRow:
        if kwargs["local_id"] == "L-boom":
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        return real_new_row(kind, **kwargs)

    monkeypatch.setattr(sync_service, "new_row", flaky_new_row)

    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session,
            kind=NOTE,
            principal_id=user.id,
            deltas=[
                {"localId": "L-boom", "title": "a", "content": "x"},
                {"localId": "L-ok", "title": "b", "content": "y"},
            ],
            now=T1,
        )

    assert outcome.errors == [
        {"input": {"localId": "L-boom", "title": "a", "content": "x"}, "reason": "storage error"}
    ]
    assert [r["localId"] for r in outcome.created] == ["L-ok"]
    refreshed = await _load_user(user.id)
    assert as_utc(refreshed.last_synced_at) == T1


@pytest.mark.anyio
async def test_reconcile_cursor_never_moves_backwards(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None

    async with session_scope() as session:
        await sync_service.reconcile(
            session=session, kind=NOTE, principal_id=user.id, deltas=[], now=T2
        )
        await sync_service.reconcile(
            session=session, kind=NOTE, principal_id=user.id, deltas=[], now=T1
        )

    refreshed = await _load_user(user.id)
    assert as_utc(refreshed.last_synced_at) == T2


@pytest.mark.anyio
async def test_reconcile_rejects_oversized_batch(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    old = settings.sync_max_batch_size
    settings.sync_max_batch_size = 2
    try:
        async with session_scope() as session:
            with pytest.raises(ValidationError):
                await sync_service.reconcile(
                    session=session,
                    kind=NOTE,
                    principal_id=user.id,
                    deltas=[{"localId": f"L{i}", "title": "t", "content": "c"} for i in range(3)],
                )
            rows = list(await session.exec(select(Note)))
        assert rows == []
    finally:
        settings.sync_max_batch_size = old


@pytest.mark.anyio
async def test_reconcile_todo_completion_is_server_managed(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None

    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session,
            kind=TODO,
            principal_id=user.id,
            deltas=[
                {
                    "localId": "L1",
                    "title": "buy milk",
                    "completed": True,
                    "completedAt": "1999-01-01T00:00:00Z",
                    "dueDate": "2026-10-20",
                }
            ],
            now=T1,
        )
        created = outcome.created[0]
        assert created["completedAt"] == T1.isoformat()
        assert created["dueDate"] == "2026-10-20T00:00:00+00:00"

        outcome = await sync_service.reconcile(
            session=session,
            kind=TODO,
            principal_id=user.id,
            deltas=[{"_id": created["_id"], "completed": False}],
            now=T2,
        )
    assert outcome.updated[0]["completed"] is False
    assert outcome.updated[0]["completedAt"] is None


@pytest.mark.anyio
async def test_changes_since_is_strict_scoped_and_read_only(make_user: MakeUser) -> None:
    user = await make_user("a@example.com", "a")
    other = await make_user("b@example.com", "b")
    assert user.id is not None and other.id is not None
    await _insert_note("at-t0", user.id, updated_at=T0)
    await _insert_note("at-t1", user.id, updated_at=T1)
    await _insert_note("foreign", other.id, updated_at=T1)

    principal = await _load_user(user.id)
    cursor_before = as_utc(principal.last_synced_at)

    async with session_scope() as session:
        feed = await sync_service.changes_since(
            session=session, kind=NOTE, principal=principal, since=T0
        )
        todos = await sync_service.changes_since(
            session=session, kind=TODO, principal=principal, since=T0
        )

    assert [r["_id"] for r in feed.records] == ["at-t1"]
    assert todos.records == []
    refreshed = await _load_user(user.id)
    assert as_utc(refreshed.last_synced_at) == cursor_before


@pytest.mark.anyio
async def test_changes_since_defaults_to_stored_cursor(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    await _insert_note("old", user.id, updated_at=T0)

    async with session_scope() as session:
        await sync_service.reconcile(
            session=session, kind=NOTE, principal_id=user.id, deltas=[], now=T1
        )
    await _insert_note("new", user.id, updated_at=T2)

    principal = await _load_user(user.id)
    async with session_scope() as session:
        feed = await sync_service.changes_since(
            session=session, kind=NOTE, principal=principal, since=None
        )

    assert [r["_id"] for r in feed.records] == ["new"]


@pytest.mark.anyio
async def test_reconcile_tombstones_todo(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None
    async with session_scope() as session:
        session.add(Todo(id="t1", user_id=user.id, title="t"))
        await session.commit()
        await sync_service.reconcile(
            session=session,
            kind=TODO,
            principal_id=user.id,
            deltas=[{"_id": "t1", "isDeleted": True}],
        )
        row = await session.get(Todo, "t1")
    assert row is not None
    assert row.is_deleted is True


@pytest.mark.anyio
async def test_reconcile_unrepresentable_due_date_is_item_local(make_user: MakeUser) -> None:
    user = await make_user()
    assert user.id is not None

    bad = {"localId": "L2", "title": "bad", "dueDate": "0001-01-01T00:00:00+01:00"}
    deltas: list[object] = [
        {"localId": "L1", "title": "ok"},
        bad,
        {"localId": "L3", "title": "also ok", "dueDate": "9999-12-31T23:00:00Z"},
    ]
    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session, kind=TODO, principal_id=user.id, deltas=deltas, now=T1
        )

    assert outcome.total() == 3
    assert outcome.errors == [
        {"input": bad, "reason": "Please provide a valid date for dueDate"}
    ]
    assert [r["localId"] for r in outcome.created] == ["L1", "L3"]
    refreshed = await _load_user(user.id)
    assert as_utc(refreshed.last_synced_at) == T1


@pytest.mark.anyio
async def test_reconcile_returns_outcome_when_principal_row_is_gone(sqlite_db: str) -> None:  # noqa: ARG001
    async with session_scope() as session:
        outcome = await sync_service.reconcile(
            session=session,
            kind=NOTE,
            principal_id=424242,
            deltas=[{"title": "no identity"}, {"_id": "n1", "isDeleted": True}],
        )

    assert outcome.total() == 2
    assert [e["reason"] for e in outcome.errors] == [REASON_MISSING_IDENTITY, REASON_NOT_FOUND]
