"""Per-resource field whitelists, validation and wire format.

Each ``RecordKind`` names the fields a client may set. Anything else in an
incoming payload (owner, timestamps, ``completedAt`` ...) is ignored, so a
delta can never reassign ownership or rewrite history.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union, cast

from notesync_backend.errors import ValidationError
from notesync_backend.models import Note, Todo
from notesync_backend.sync_utils import isoformat
from notesync_backend.validators import parse_datetime, validate_content, validate_title

RecordRow = Union[Note, Todo]


@dataclass(frozen=True)
class FieldSpec:
    wire: str
    attr: str
    parse: Callable[[object], object]


@dataclass(frozen=True)
class RecordKind:
    name: str
    # Route prefix and the key holding the delta array in sync bodies.
    collection: str
    label: str
    model: type[Note] | type[Todo]
    fields: tuple[FieldSpec, ...]



def _string(field: str) -> Callable[[object], object]:
    def parse(value: object) -> object:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError(f"{field} must be a string", details={"field": field})
        return value

    return parse


def _optional_trimmed(field: str) -> Callable[[object], object]:
    base = _string(field)

    def parse(value: object) -> object:
        v = base(value)
        if v is None:
            return None
        return str(v).strip()

    return parse


def _boolean(field: str) -> Callable[[object], object]:
    def parse(value: object) -> object:
        if not isinstance(value, bool):
            raise ValidationError(f"{field} must be a boolean", details={"field": field})
        return value

    return parse


def _datetime(field: str) -> Callable[[object], object]:
    def parse(value: object) -> object:
        return parse_datetime(value, field)

    return parse


NOTE = RecordKind(
    name="note",
    collection="notes",
    label="Note",
    model=Note,
    fields=(
        FieldSpec("title", "title", _string("title")),
        FieldSpec("content", "content", _string("content")),
    ),
)

TODO = RecordKind(
    name="todo",
    collection="todos",
    label="Todo",
    model=Todo,
    fields=(
        FieldSpec("title", "title", _string("title")),
        FieldSpec("description", "description", _optional_trimmed("description")),
        FieldSpec("completed", "completed", _boolean("completed")),
        FieldSpec("dueDate", "due_date", _datetime("dueDate")),
    ),
)


def extract_changes(kind: RecordKind, payload: Mapping[str, Any]) -> dict[str, object]:
    """Pick and type-check the whitelisted fields present in ``payload``."""

    changes: dict[str, object] = {}
    for spec in kind.fields:
        if spec.wire in payload:
            changes[spec.attr] = spec.parse(payload[spec.wire])
    return changes


def set_completion(todo: Todo, completed: bool, now: datetime) -> None:
    if completed and not todo.completed:
        todo.completed_at = now
    elif not completed and todo.completed:
        todo.completed_at = None
    todo.completed = completed


def apply_changes(row: RecordRow, changes: Mapping[str, object], now: datetime) -> None:
    for attr, value in changes.items():
        if attr == "completed" and isinstance(row, Todo):
            set_completion(row, bool(value), now)
            continue
        setattr(row, attr, value)
    row.updated_at = now


def merge_validated(
    kind: RecordKind, row: RecordRow | None, changes: Mapping[str, object]
) -> dict[str, object]:
    """Validate ``changes`` as they would look merged onto ``row``.

    Nothing is written to ``row``; a failing delta leaves the stored record
    untouched. Returns the changes with normalized values filled in.
    """

    merged = dict(changes)
    current_title = row.title if row is not None else None
    merged["title"] = validate_title(cast(Optional[str], changes.get("title", current_title)))
    if kind.model is Note:
        current_content = row.content if isinstance(row, Note) else None
        merged["content"] = validate_content(
            cast(Optional[str], changes.get("content", current_content))
        )
    return merged


def new_row(
    kind: RecordKind,
    *,
    record_id: str,
    user_id: int,
    local_id: str | None,
    changes: Mapping[str, object],
    now: datetime,
) -> RecordRow:
    merged = merge_validated(kind, None, changes)
    row = kind.model(
        id=record_id,
        user_id=user_id,
        local_id=local_id,
        title="",
        is_deleted=False,
        created_at=now,
        updated_at=now,
    )
    apply_changes(row, merged, now)
    return row


def serialize(row: RecordRow) -> dict[str, object]:
    data: dict[str, object] = {
        "_id": row.id,
        "ownerId": row.user_id,
        "localId": row.local_id,
        "title": row.title,
    }
    if isinstance(row, Note):
        data["content"] = row.content
    else:
        data["description"] = row.description
        data["completed"] = row.completed
        data["dueDate"] = isoformat(row.due_date)
        data["completedAt"] = isoformat(row.completed_at)
    data["isDeleted"] = row.is_deleted
    data["createdAt"] = isoformat(row.created_at)
    data["updatedAt"] = isoformat(row.updated_at)
    return data
