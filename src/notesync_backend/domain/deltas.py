from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, cast


DeltaAction = Literal["update", "delete", "create", "reject"]

REASON_NOT_OBJECT = "delta must be an object"
REASON_MISSING_IDENTITY = "missing id or localId"
REASON_NOT_FOUND = "not found or not owned"


@dataclass(frozen=True)
class ClassifiedDelta:
    action: DeltaAction
    payload: Mapping[str, Any]
    record_id: str | None = None
    local_id: str | None = None
    reason: str | None = None


def _token(value: object) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        v = str(value).strip()
        return v or None
    return None


def record_id_of(delta: Mapping[str, Any]) -> str | None:
    # Clients echo the server identity back as `_id`; accept plain `id` too.
    return _token(delta.get("_id")) or _token(delta.get("id"))


def classify_delta(delta: object) -> ClassifiedDelta:
    """Decide what a single sync delta asks for.

    Pure: no store access. Order matters: a server id wins over a localId,
    and the tombstone flag only counts when it is literally ``true``.
    """

    if not isinstance(delta, Mapping):
        return ClassifiedDelta(action="reject", payload={}, reason=REASON_NOT_OBJECT)
    payload = cast(Mapping[str, Any], delta)

    record_id = record_id_of(payload)
    if record_id is not None:
        action: DeltaAction = "delete" if payload.get("isDeleted") is True else "update"
        return ClassifiedDelta(action=action, payload=payload, record_id=record_id)

    local_id = _token(payload.get("localId"))
    if local_id is not None:
        return ClassifiedDelta(action="create", payload=payload, local_id=local_id)

    return ClassifiedDelta(action="reject", payload=payload, reason=REASON_MISSING_IDENTITY)
