from __future__ import annotations

import asyncio
import copy
import os
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

# Settings are read on first use; give them something before app imports.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "anon-test-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine
from supabase import AuthApiError, PostgrestAPIError

from app.core.context import AppContext
from app.core.session import Caller

FOREIGN_KEYS = {
    "customer_id": "customers",
    "attendant_id": "users",
    "author_id": "users",
    "attendance_id": "attendances",
}
UNIQUE_COLUMNS = {"users": ("email",)}


def api_error(code: str, message: str) -> PostgrestAPIError:
    return PostgrestAPIError(
        {"code": code, "message": message, "hint": None, "details": None}
    )


def _split_top_level(columns: str) -> list[str]:
    parts, depth, current = [], 0, ""
    for ch in columns:
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        depth += ch == "("
        depth -= ch == ")"
        current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


class FakeDatabase:
    """Tables as lists of dicts, plus failure injection and gates."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            "customers": [],
            "users": [],
            "attendances": [],
            "attendance_comments": [],
        }
        self.calls: list[tuple[str, str]] = []
        # (table, op, access token or None) per request
        self.tokens: list[tuple[str, str, str | None]] = []
        self.failures: dict[tuple[str, str], list[Exception]] = {}
        self.gates: dict[tuple[str, str], asyncio.Event] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def fail(self, table: str, op: str, exc: Exception) -> None:
        self.failures.setdefault((table, op), []).append(exc)

    def hold(self, table: str, op: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[(table, op)] = gate
        return gate

    def count(self, table: str, op: str) -> int:
        return self.calls.count((table, op))

    def seed(self, table: str, **row: Any) -> dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.now())
        row.setdefault("updated_at", row["created_at"])
        self.tables[table].append(row)
        return row


class FakeQuery:
    """The subset of the PostgREST request builder the repositories use."""

    def __init__(self, db: FakeDatabase, table: str, access_token: str | None = None):
        self.db = db
        self.table = table
        self.access_token = access_token
        self.op = "select"
        self.columns = "*"
        self.filters: list[tuple[str, Any]] = []
        self.ordering: tuple[str, bool] | None = None
        self.row_limit: int | None = None
        self.payload: Any = None

    def select(self, *columns: str):
        self.columns = ",".join(columns) or "*"
        return self

    def insert(self, data):
        self.op, self.payload = "insert", data
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append((column, value))
        return self

    def order(self, column: str, *, desc: bool = False):
        self.ordering = (column, desc)
        return self

    def limit(self, n: int):
        self.row_limit = n
        return self

    def _matches(self, row: dict[str, Any]) -> bool:
        return all(str(row.get(col)) == str(val) for col, val in self.filters)

    def _project(self, row: dict[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for part in _split_top_level(self.columns):
            if part == "*":
                out.update(copy.deepcopy(row))
            elif ":" in part:
                alias, rest = part.split(":", 1)
                table, cols = rest.split("(", 1)
                cols = [c.strip() for c in cols.rstrip(")").split(",")]
                fk = row.get(f"{alias}_id")
                target = next(
                    (r for r in self.db.tables[table] if r["id"] == fk), None
                )
                out[alias] = (
                    None
                    if target is None
                    else {c: copy.deepcopy(target.get(c)) for c in cols}
                )
            else:
                out[part] = copy.deepcopy(row.get(part))
        return out

    def _check_constraints(self, row: dict[str, Any], exclude_id=None) -> None:
        for column, table in FOREIGN_KEYS.items():
            if column in row and row[column] is not None:
                if not any(r["id"] == row[column] for r in self.db.tables[table]):
                    raise api_error("23503", f"{column} violates foreign key")
        for column in UNIQUE_COLUMNS.get(self.table, ()):
            for other in self.db.tables[self.table]:
                if other["id"] != exclude_id and other.get(column) == row.get(column):
                    raise api_error("23505", f"duplicate key value ({column})")

    async def execute(self):
        self.db.calls.append((self.table, self.op))
        self.db.tokens.append((self.table, self.op, self.access_token))
        gate = self.db.gates.get((self.table, self.op))
        if gate is not None:
            await gate.wait()
        pending = self.db.failures.get((self.table, self.op))
        if pending:
            raise pending.pop(0)

        rows = self.db.tables[self.table]
        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for data in payload:
                row = dict(data)
                row.setdefault("id", str(uuid.uuid4()))
                row["created_at"] = row["updated_at"] = self.db.now()
                self._check_constraints(row)
                rows.append(row)
                created.append(copy.deepcopy(row))
            return SimpleNamespace(data=created, count=None)

        matched = [r for r in rows if self._matches(r)]
        if self.op == "update":
            for row in matched:
                candidate = {**row, **self.payload}
                self._check_constraints(candidate, exclude_id=row["id"])
                row.update(self.payload)
                row["updated_at"] = self.db.now()
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)
        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)

        if self.ordering:
            column, desc = self.ordering
            matched = sorted(
                matched, key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc
            )
        if self.row_limit is not None:
            matched = matched[: self.row_limit]
        return SimpleNamespace(data=[self._project(r) for r in matched], count=None)


class FakeAdminAuth:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth
        self.delete_failures: list[Exception] = []
        self.signed_out: list[tuple[str, str]] = []

    async def create_user(self, attributes: dict[str, Any]):
        user = self.auth._create_identity(
            attributes["email"],
            attributes["password"],
            attributes.get("user_metadata") or {},
            AuthApiError(
                "A user with this email address has already been registered",
                422,
                "email_exists",
            ),
        )
        return SimpleNamespace(user=user)

    async def delete_user(self, user_id: str):
        if self.delete_failures:
            raise self.delete_failures.pop(0)
        if user_id not in self.auth.identities:
            raise AuthApiError("User not found", 404, "user_not_found")
        del self.auth.identities[user_id]

    async def update_user_by_id(self, user_id: str, attributes: dict[str, Any]):
        if user_id not in self.auth.identities:
            raise AuthApiError("User not found", 404, "user_not_found")
        self.auth.identities[user_id].update(attributes)
        return SimpleNamespace(user=SimpleNamespace(id=user_id))

    async def sign_out(self, token: str, scope: str = "global"):
        self.signed_out.append((token, scope))


class FakeAuth:
    """Supabase Auth stand-in: identities, one session, change listeners."""

    def __init__(self) -> None:
        self.identities: dict[str, dict[str, Any]] = {}
        self.session = None
        self.listeners: list = []
        self.admin = FakeAdminAuth(self)

    def detached(self) -> "FakeAuth":
        """Same identities and admin API, but its own session and listeners."""
        other = FakeAuth()
        other.identities = self.identities
        other.admin = self.admin
        return other

    def _create_identity(self, email, password, metadata, conflict):
        if any(i["email"] == email for i in self.identities.values()):
            raise conflict
        user_id = str(uuid.uuid4())
        self.identities[user_id] = {
            "email": email,
            "password": password,
            "metadata": metadata,
        }
        return SimpleNamespace(id=user_id, email=email)

    def _emit(self, event: str) -> None:
        for listener in list(self.listeners):
            listener(event, self.session)

    async def get_session(self):
        return self.session

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return SimpleNamespace(unsubscribe=lambda: self.listeners.remove(callback))

    async def sign_in_with_password(self, credentials: dict[str, str]):
        for user_id, identity in self.identities.items():
            if (
                identity["email"] == credentials["email"]
                and identity["password"] == credentials["password"]
            ):
                user = SimpleNamespace(id=user_id, email=identity["email"])
                self.session = SimpleNamespace(
                    access_token=access_token(user_id, identity["email"]),
                    refresh_token="refresh",
                    expires_in=3600,
                    user=user,
                )
                self._emit("SIGNED_IN")
                return SimpleNamespace(user=user, session=self.session)
        raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")

    async def sign_out(self):
        self.session = None
        self._emit("SIGNED_OUT")

    async def sign_up(self, credentials: dict[str, Any]):
        user = self._create_identity(
            credentials["email"],
            credentials["password"],
            {},
            AuthApiError("User already registered", 422, "user_already_exists"),
        )
        return SimpleNamespace(user=user, session=None)

    async def get_user(self, token: str | None = None):
        if token is not None:
            claims = jwt.get_unverified_claims(token)
            return SimpleNamespace(
                user=SimpleNamespace(id=claims["sub"], email=claims["email"])
            )
        if self.session is None:
            return None
        return SimpleNamespace(user=self.session.user)

    async def update_user(self, attributes: dict[str, Any]):
        user_id = self.session.user.id
        self.identities[user_id].update(attributes)
        return SimpleNamespace(user=self.session.user)


class FakeSupabase:
    def __init__(self, db: FakeDatabase, auth: FakeAuth, access_token: str | None = None):
        self.db = db
        self.auth = auth
        self.access_token = access_token

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.db, name, self.access_token)


def access_token(user_id, email: str = "someone@x.com") -> str:
    """HS256 token signed with the test secret, valid for an hour."""
    claims = {
        "sub": str(user_id),
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, "test-jwt-secret", algorithm="HS256")


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def client(db, fake_auth) -> FakeSupabase:
    return FakeSupabase(db, fake_auth)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def caller_db(db, fake_auth):
    @asynccontextmanager
    async def open_for(token: str):
        yield FakeSupabase(db, fake_auth, access_token=token)

    return open_for


@pytest.fixture
def make_caller(db, fake_auth):
    """Caller for a user id, with a PostgREST client carrying their token."""

    def build(user_id, email: str = "someone@x.com") -> Caller:
        token = access_token(user_id, email)
        return Caller(
            id=uuid.UUID(str(user_id)),
            email=email,
            access_token=token,
            db=FakeSupabase(db, fake_auth, access_token=token),
        )

    return build


@pytest.fixture
def context(client, db, fake_auth, engine, caller_db) -> AppContext:
    return AppContext.build(
        client,
        client,
        lambda: Session(engine),
        caller_db=caller_db,
        sign_in_client=FakeSupabase(db, fake_auth.detached()),
    )
