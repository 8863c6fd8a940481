import uuid
from datetime import date, datetime
from typing import Literal, get_args

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.customer import CustomerSummary
from app.schemas.user import AttendantSummary

AttendanceStatus = Literal["open", "in_progress", "resolved", "closed"]
AttendancePriority = Literal["low", "medium", "high", "urgent"]

ATTENDANCE_STATUSES: tuple[str, ...] = get_args(AttendanceStatus)
ATTENDANCE_PRIORITIES: tuple[str, ...] = get_args(AttendancePriority)

# Older screens wrote a three-state enum; fold it into the canonical one.
LEGACY_STATUS_ALIASES: dict[str, str] = {
    "pending": "open",
    "completed": "resolved",
}


def normalize_status(value):
    """Map legacy status names onto the canonical enum; others pass through."""
    if isinstance(value, str):
        value = value.strip().lower()
        return LEGACY_STATUS_ALIASES.get(value, value)
    return value


def _require_text(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("cannot be empty")
    return v


class AttendanceCreate(SQLModel):
    """
    Payload for opening a ticket.

    customer_id / attendant_id are only checked for presence here;
    their existence is enforced by the database foreign keys.
    """

    model_config = ConfigDict(extra="forbid")

    customer_id: uuid.UUID
    attendant_id: uuid.UUID
    title: str = Field(max_length=200)
    description: str | None = None
    solution: str | None = None
    status: AttendanceStatus = "open"
    priority: AttendancePriority = "medium"
    due_date: date | None = None

    @field_validator("title")
    @classmethod
    def normalize_title(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("status", mode="before")
    @classmethod
    def fold_legacy_status(cls, v):
        return normalize_status(v)


class AttendanceUpdate(SQLModel):
    """Partial update; only fields the caller sets are sent."""

    model_config = ConfigDict(extra="forbid")

    customer_id: uuid.UUID | None = None
    attendant_id: uuid.UUID | None = None
    title: str | None = Field(default=None, max_length=200)
    description: str | None = None
    solution: str | None = None
    status: AttendanceStatus | None = None
    priority: AttendancePriority | None = None
    due_date: date | None = None

    @field_validator("title")
    @classmethod
    def normalize_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _require_text(v)

    @field_validator("status", mode="before")
    @classmethod
    def fold_legacy_status(cls, v):
        return normalize_status(v)


class AttendanceRead(SQLModel):
    """
    Attendance row, optionally with customer / attendant expanded.
    """

    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    customer_id: uuid.UUID
    attendant_id: uuid.UUID
    title: str
    description: str | None = None
    solution: str | None = None
    status: AttendanceStatus
    priority: AttendancePriority = "medium"
    due_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    customer: CustomerSummary | None = None
    attendant: AttendantSummary | None = None

    @field_validator("status", mode="before")
    @classmethod
    def fold_legacy_status(cls, v):
        return normalize_status(v)


class CommentCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    content: str

    @field_validator("content")
    @classmethod
    def normalize_content(cls, v: str) -> str:
        return _require_text(v)


class CommentRead(SQLModel):
    """attendance_comments row with its author expanded."""

    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    attendance_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    created_at: datetime | None = None

    author: AttendantSummary | None = None
