from __future__ import annotations

from sqlmodel import SQLModel

import app.database
from app.database import _with_sslmode
from app.models.attendance import Attendance
from app.models.customer import Customer
from app.models.user import User


def test_database_module_registers_every_mirrored_table():
    assert app.database.open_session is not None
    assert {"customers", "users", "attendances"} <= set(SQLModel.metadata.tables)


def test_attendance_foreign_keys_resolve():
    columns = Attendance.__table__.c

    assert columns.customer_id.references(Customer.__table__.c.id)
    assert columns.attendant_id.references(User.__table__.c.id)


def test_sslmode_is_added_to_postgres_urls_only():
    assert _with_sslmode("postgresql://h/db") == "postgresql://h/db?sslmode=require"
    assert _with_sslmode("postgresql://h/db?a=1") == "postgresql://h/db?a=1&sslmode=require"
    assert _with_sslmode("postgresql://h/db?sslmode=disable").endswith("disable")
    assert _with_sslmode("sqlite://") == "sqlite://"
