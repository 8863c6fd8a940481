import uuid
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

Role = Literal["admin", "attendant"]

MIN_PASSWORD_LENGTH = 6


def _check_password(v: str | None) -> str | None:
    if v is None:
        return v
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return v


class AttendantCreate(SQLModel):
    """
    Payload for registering a new staff member.

    The password goes to Supabase Auth only; it is never written to the
    users table nor kept in store state.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    email: EmailStr
    role: Role = "attendant"
    password: str
    phone: str | None = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return _check_password(v)

    def profile_fields(self) -> dict:
        """Columns for the users row (no password)."""
        return self.model_dump(mode="json", exclude={"password"})


class AttendantUpdate(SQLModel):
    """
    Partial profile update.

    Email is immutable after creation, so it is not accepted here.
    An optional password is forwarded to Supabase Auth.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    role: Role | None = None
    phone: str | None = Field(default=None, max_length=50)
    password: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str | None) -> str | None:
        return _check_password(v)

    def profile_fields(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True, exclude={"password"})


class AttendantRead(SQLModel):
    """Profile row returned by the users table."""

    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    email: str
    name: str | None = None
    phone: str | None = None
    role: Role
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AttendantSummary(SQLModel):
    """Embedded staff member on attendance/comment rows."""

    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID | None = None
    name: str | None = None
    email: str | None = None
    role: Role | None = None
