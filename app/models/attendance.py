import uuid
from datetime import date, datetime, timezone

from sqlmodel import SQLModel, Field


class Attendance(SQLModel, table=True):
    """
    Support ticket.

    Both foreign keys are enforced by the database only.
    """

    __tablename__ = "attendances"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    customer_id: uuid.UUID = Field(foreign_key="customers.id", index=True)
    attendant_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    title: str = Field(max_length=200)
    description: str | None = Field(default=None)
    solution: str | None = Field(default=None)

    # open | in_progress | resolved | closed
    # (rows written by older clients may still hold pending | completed)
    status: str = Field(default="open", index=True)

    # low | medium | high | urgent
    priority: str = Field(default="medium", index=True)

    due_date: date | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class AttendanceComment(SQLModel, table=True):
    """
    Threaded note on an attendance. Immutable once created.
    """

    __tablename__ = "attendance_comments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    attendance_id: uuid.UUID = Field(foreign_key="attendances.id", index=True)
    author_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    content: str

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
