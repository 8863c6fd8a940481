import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import get_settings
from app.core.context import AppContext, get_context
from app.core.errors import NotFoundError, classify
from app.core.session import Caller
from app.schemas.user import AttendantRead

# auto_error=False: a missing header reaches require_auth, which answers
# with the same 401 body as a bad token.
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


@dataclass(frozen=True)
class TokenUser:
    """Caller identity taken from a verified Supabase JWT."""

    id: uuid.UUID
    email: str
    access_token: str

    @classmethod
    def from_claims(cls, claims: dict[str, Any], access_token: str) -> "TokenUser":
        """401 if 'sub' or 'email' is missing, or 'sub' is not a UUID."""
        sub, email = claims.get("sub"), claims.get("email")
        if not sub or not email:
            raise _unauthorized("Token missing sub/email")
        try:
            return cls(id=uuid.UUID(sub), email=email, access_token=access_token)
        except ValueError:
            raise _unauthorized("Invalid sub in token")


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a Supabase access token and return its claims.

    Signature and expiry are checked with SUPABASE_JWT_SECRET /
    SUPABASE_JWT_ALG. The 'aud' claim is ignored.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def require_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenUser:
    """401 unless the request carries a valid bearer token."""
    if credentials is None:
        raise _unauthorized("Authentication required")
    token = credentials.credentials
    return TokenUser.from_claims(decode_access_token(token), token)


async def get_caller(
    user: TokenUser = Depends(require_auth),
    context: AppContext = Depends(get_context),
) -> AsyncIterator[Caller]:
    """
    The authenticated caller of this request.

    Store operations run with it, so PostgREST sees the caller's token
    and authored rows carry the caller's id. The caller's PostgREST
    client is closed when the request ends.
    """
    async with context.caller_db(user.access_token) as db:
        yield Caller(
            id=user.id,
            email=user.email,
            access_token=user.access_token,
            db=db,
        )


async def require_admin(
    caller: Caller = Depends(get_caller),
    context: AppContext = Depends(get_context),
) -> AttendantRead:
    """
    Enforce admin role.

    Route is accessible only if the caller's profile row exists and
    has role == "admin". The profile is read with the caller's token.

    Raises:
        HTTPException(403): if profile is missing or role is not admin.
        HTTPException(502): if the profile could not be read.
    """
    try:
        profile = await context.users.bind(caller.db).get_by_id(caller.id)
    except Exception as exc:
        error = classify(exc)
        if isinstance(error, NotFoundError):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required",
            )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=error.to_dict(),
        )

    if profile.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return profile
