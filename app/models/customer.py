import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Customer(SQLModel, table=True):
    """
    Customer served by the support team.

    Referenced by Attendance.customer_id; owns no relationships itself.
    """

    __tablename__ = "customers"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=200, index=True)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
