# basedpyright: reportAssignmentType=false
# basedpyright: reportIncompatibleVariableOverride=false

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(min_length=1, max_length=50)
    # Stored lower-cased; uniqueness is enforced on the normalized form.
    email: str = Field(index=True, unique=True, min_length=3, max_length=255)
    password_hash: str = Field(min_length=1, max_length=255)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    # Sync cursor: only moves forward, see sync_utils.advance_sync_cursor.
    last_synced_at: datetime = Field(default_factory=utc_now)


class SyncRecord(SQLModel):
    """Columns shared by every synchronized record type."""

    user_id: int = Field(index=True, foreign_key="users.id")
    # Client correlation token for records created offline; never an identity.
    local_id: Optional[str] = Field(default=None, max_length=128, index=True)

    is_deleted: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class Note(SyncRecord, table=True):
    __tablename__ = "notes"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    title: str = Field(max_length=100)
    content: str = Field(default="", sa_column=Column(Text, nullable=False))


class Todo(SyncRecord, table=True):
    __tablename__ = "todos"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    title: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    completed: bool = Field(default=False, index=True)
    due_date: Optional[datetime] = Field(default=None, index=True)
    # Server-managed: set when completed flips to true, cleared when it flips back.
    completed_at: Optional[datetime] = Field(default=None)
