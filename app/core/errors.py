"""
Typed error taxonomy for store operations.

Every failure that reaches a store is converted into one of the
StoreError subclasses below by `classify`, so callers can branch on
`error.kind` instead of parsing messages.
"""

from enum import Enum
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError
from supabase import AuthApiError, AuthRetryableError, PostgrestAPIError


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    AUTHORIZATION = "authorization"
    TRANSPORT = "transport"
    INCONSISTENT = "inconsistent"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class StoreError(Exception):
    """Base class for every failure surfaced by a store or service."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message}


class ValidationError(StoreError):
    """Required field missing or malformed."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field_errors:
            data["fields"] = self.field_errors
        return data


class NotFoundError(StoreError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(StoreError):
    """E.g. registering an identity for an email already in use."""

    kind = ErrorKind.CONFLICT


class AuthorizationError(StoreError):
    kind = ErrorKind.AUTHORIZATION


class TransportError(StoreError):
    kind = ErrorKind.TRANSPORT


class InconsistentStateError(StoreError):
    """
    Remote state left half-done and not repaired.

    Raised when a compensating action itself failed, e.g. an identity
    was registered, its profile insert failed, and deleting the identity
    failed too (orphaned account).
    """

    kind = ErrorKind.INCONSISTENT


class OperationCancelled(StoreError):
    """The consuming view went away before the result arrived."""

    kind = ErrorKind.CANCELLED


# PostgREST / Postgres error codes
_PG_CONFLICT = {"23505"}
_PG_VALIDATION = {"23502", "23503", "23514", "22P02", "22001"}
_PG_NOT_FOUND = {"PGRST116"}
_PG_AUTHORIZATION = {"42501"}

_AUTH_CONFLICT_CODES = {"email_exists", "user_already_exists"}


def _from_pydantic(exc: PydanticValidationError) -> ValidationError:
    field_errors: dict[str, str] = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        field_errors.setdefault(field, err.get("msg", "invalid value"))
    fields = ", ".join(field_errors) or "payload"
    return ValidationError(f"Invalid data: {fields}", field_errors)


def _from_postgrest(exc: PostgrestAPIError) -> StoreError:
    code = str(exc.code or "")
    message = exc.message or str(exc)
    if code in _PG_CONFLICT:
        return ConflictError(message)
    if code in _PG_VALIDATION:
        return ValidationError(message)
    if code in _PG_NOT_FOUND:
        return NotFoundError(message)
    if code in _PG_AUTHORIZATION or code.startswith("PGRST3"):
        return AuthorizationError(message)
    return StoreError(message)


def _from_auth(exc: AuthApiError) -> StoreError:
    message = getattr(exc, "message", None) or str(exc)
    code = getattr(exc, "code", None)
    status = getattr(exc, "status", None)
    if code in _AUTH_CONFLICT_CODES or "already registered" in message.lower():
        return ConflictError(message)
    if status in (401, 403):
        return AuthorizationError(message)
    if status == 404:
        return NotFoundError(message)
    if status in (400, 422):
        return ValidationError(message)
    return StoreError(message)


def classify(exc: BaseException) -> StoreError:
    """
    Map any exception raised below a store into the typed taxonomy.

    Already-typed errors are returned unchanged.
    """
    if isinstance(exc, StoreError):
        return exc
    if isinstance(exc, PydanticValidationError):
        return _from_pydantic(exc)
    if isinstance(exc, PostgrestAPIError):
        return _from_postgrest(exc)
    if isinstance(exc, AuthRetryableError):
        return TransportError(str(exc) or "Auth service unreachable")
    if isinstance(exc, AuthApiError):
        return _from_auth(exc)
    if isinstance(exc, (httpx.TransportError, OSError)):
        return TransportError(str(exc) or exc.__class__.__name__)
    return StoreError(str(exc) or exc.__class__.__name__)
