from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    name: str = Field(default="", max_length=200)
    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=200)


class LoginRequest(BaseModel):
    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=200)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)


class NoteWriteRequest(BaseModel):
    """Note create/update body; business rules are checked by the record kind."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    content: Optional[str] = None
    localId: Optional[str] = Field(default=None, max_length=128)


class TodoWriteRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    # ISO date or datetime; null clears the due date.
    dueDate: Optional[str] = None
    localId: Optional[str] = Field(default=None, max_length=128)


class NoteSyncRequest(BaseModel):
    # Items stay untyped: each delta is validated on its own inside the batch.
    notes: list[Any]


class TodoSyncRequest(BaseModel):
    todos: list[Any]


class UserOut(BaseModel):
    id: int
    name: str
    email: str


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut


class ApiResponse(BaseModel):
    success: bool = True
    data: Any = None


class ListResponse(BaseModel):
    success: bool = True
    count: int
    data: list[dict[str, Any]]


class ReconcileResult(BaseModel):
    created: list[dict[str, Any]] = Field(default_factory=list)
    updated: list[dict[str, Any]] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    errors: list[dict[str, Any]] = Field(default_factory=list)


class SyncResponse(BaseModel):
    success: bool = True
    data: ReconcileResult


class ChangesResponse(BaseModel):
    success: bool = True
    count: int
    data: list[dict[str, Any]]
    lastSync: str


class ErrorResponse(BaseModel):
    """Error envelope shared by every endpoint."""

    success: bool = False
    error: str
    request_id: str | None = None
    details: object | None = None
