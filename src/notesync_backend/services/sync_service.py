from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from notesync_backend.config import settings
from notesync_backend.domain.deltas import REASON_NOT_FOUND, ClassifiedDelta, classify_delta
from notesync_backend.domain.record_kinds import (
    RecordKind,
    RecordRow,
    apply_changes,
    extract_changes,
    merge_validated,
    new_row,
    serialize,
)
from notesync_backend.errors import NotFoundOrForbidden, ValidationError
from notesync_backend.models import User, utc_now
from notesync_backend.repositories import records_repo
from notesync_backend.services.ownership import load_owned
from notesync_backend.sync_utils import advance_sync_cursor, as_utc

logger = logging.getLogger(__name__)

REASON_STORAGE = "storage error"


@dataclass
class ReconcileOutcome:
    created: list[dict[str, object]] = field(default_factory=list)
    updated: list[dict[str, object]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    errors: list[dict[str, object]] = field(default_factory=list)

    def total(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted) + len(self.errors)

    def to_dict(self) -> dict[str, object]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "errors": self.errors,
        }


@dataclass(frozen=True)
class ChangeFeed:
    records: list[dict[str, object]]
    # Server clock at query time; clients pass it back as the next `since`.
    now: datetime


def _new_id() -> str:
    return str(uuid.uuid4())


async def _create(
    session: AsyncSession, kind: RecordKind, item: ClassifiedDelta, principal_id: int, now: datetime
) -> RecordRow:
    changes = extract_changes(kind, item.payload)
    row = new_row(
        kind,
        record_id=_new_id(),
        user_id=principal_id,
        local_id=item.local_id,
        changes=changes,
        now=now,
    )
    session.add(row)
    await session.commit()
    return row


async def _tombstone(
    session: AsyncSession, kind: RecordKind, item: ClassifiedDelta, principal_id: int, now: datetime
) -> RecordRow:
    row = await load_owned(
        session, kind, principal_id=principal_id, record_id=str(item.record_id), include_deleted=True
    )
    row.is_deleted = True
    row.updated_at = now
    session.add(row)
    await session.commit()
    return row


async def _update(
    session: AsyncSession, kind: RecordKind, item: ClassifiedDelta, principal_id: int, now: datetime
) -> RecordRow:
    row = await load_owned(
        session, kind, principal_id=principal_id, record_id=str(item.record_id), include_deleted=True
    )
    # Validate against the merged view first so a bad delta never touches the row.
    merged = merge_validated(kind, row, extract_changes(kind, item.payload))
    apply_changes(row, merged, now)
    if item.payload.get("isDeleted") is False:
        row.is_deleted = False
    # Ownership is fixed at creation; the stored owner already equals principal_id.
    row.user_id = principal_id
    session.add(row)
    await session.commit()
    return row


async def reconcile(
    *,
    session: AsyncSession,
    kind: RecordKind,
    principal_id: int,
    deltas: Sequence[Any],
    now: datetime | None = None,
) -> ReconcileOutcome:
    """Apply a batch of offline deltas for one principal.

    Deltas are applied in order, each committed on its own. A failing delta
    becomes an ``errors`` entry and the batch carries on. Once every delta
    has a disposition the principal's sync cursor is advanced to ``now``,
    whether or not anything failed.
    """

    if len(deltas) > settings.sync_max_batch_size:
        raise ValidationError(
            f"Sync batch too large (max {settings.sync_max_batch_size} items)",
            details={"count": len(deltas)},
        )

    now = as_utc(now) if now is not None else utc_now()
    outcome = ReconcileOutcome()

    for delta in deltas:
        item = classify_delta(delta)
        if item.action == "reject":
            outcome.errors.append({"input": delta, "reason": item.reason})
            continue

        try:
            if item.action == "create":
                row = await _create(session, kind, item, principal_id, now)
                outcome.created.append(serialize(row))
            elif item.action == "delete":
                row = await _tombstone(session, kind, item, principal_id, now)
                outcome.deleted.append(row.id)
            else:
                row = await _update(session, kind, item, principal_id, now)
                outcome.updated.append(serialize(row))
        except NotFoundOrForbidden:
            outcome.errors.append({"input": delta, "reason": REASON_NOT_FOUND})
        except ValidationError as e:
            outcome.errors.append({"input": delta, "reason": e.message})
        except SQLAlchemyError:
            logger.warning(
                "sync delta failed kind=%s user_id=%s action=%s",
                kind.name,
                principal_id,
                item.action,
                exc_info=True,
            )
            await session.rollback()
            outcome.errors.append({"input": delta, "reason": REASON_STORAGE})

    try:
        await advance_sync_cursor(session, principal_id, now)
    except (SQLAlchemyError, LookupError):
        # Applied deltas are already committed.
        logger.warning(
            "sync cursor advance failed user_id=%s", principal_id, exc_info=True
        )
        await session.rollback()

    logger.info(
        "reconciled %s batch user_id=%s size=%d created=%d updated=%d deleted=%d errors=%d",
        kind.collection,
        principal_id,
        len(deltas),
        len(outcome.created),
        len(outcome.updated),
        len(outcome.deleted),
        len(outcome.errors),
    )
    return outcome


async def changes_since(
    *,
    session: AsyncSession,
    kind: RecordKind,
    principal: User,
    since: datetime | None,
    now: datetime | None = None,
) -> ChangeFeed:
    """Records of ``kind`` owned by ``principal`` changed strictly after ``since``.

    Falls back to the principal's stored cursor. Read-only: the cursor is not
    touched.
    """

    if principal.id is None:
        raise NotFoundOrForbidden("User not found")

    # Taken before the query so nothing committed in between can be skipped.
    server_now = as_utc(now) if now is not None else utc_now()
    lower = as_utc(since) if since is not None else as_utc(principal.last_synced_at)

    rows = await records_repo.list_updated_after(
        session, kind.model, user_id=int(principal.id), since=lower
    )
    return ChangeFeed(records=[serialize(r) for r in rows], now=server_now)
