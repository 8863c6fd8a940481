import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Staff profile (admin or attendant).

    Identity:
      - id: MUST match Supabase auth.users.id

    This table is *not* responsible for password hashes. Supabase Auth
    stores the password in its own schema. We only mirror identity,
    name, and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase auth.users; immutable",
    )

    name: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=50)

    # admin | attendant
    role: str = Field(
        default="attendant",
        index=True,
        description="Application role: admin | attendant",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
