import uuid
from datetime import datetime

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def _strip_optional(v: str | None) -> str | None:
    """Blank optional text fields are stored as NULL."""
    if v is None:
        return v
    v = v.strip()
    return v or None


class CustomerBase(SQLModel):
    """
    Shared customer fields.

    Validation rules:
      - name cannot be empty or whitespace
      - email, when given, must be a valid address
    """

    name: str = Field(max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("email", "phone", "address", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return _strip_optional(v)
        return v


class CustomerCreate(CustomerBase):
    """Payload submitted by the customer form."""

    model_config = ConfigDict(extra="forbid")


class CustomerUpdate(SQLModel):
    """Partial update; only fields the caller sets are sent."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("email", "phone", "address", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return _strip_optional(v)
        return v


class CustomerRead(CustomerBase):
    """Row returned by the customers table."""

    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomerSummary(SQLModel):
    """Embedded customer on an attendance row (customer:customers(...))."""

    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID | None = None
    name: str
    email: str | None = None
