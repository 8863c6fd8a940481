import logging
import uuid

from supabase import AsyncClient

from app.core.errors import AuthorizationError, NotFoundError, classify
from app.core.session import Caller
from app.repositories.user_repo import UserRepository
from app.schemas.auth import CurrentUser, LoginRequest, RegisterRequest, SessionRead

logger = logging.getLogger(__name__)


class AuthService:
    """
    Sign-in / sign-out / self sign-up against Supabase Auth for HTTP
    callers.

    Credential exchange runs on `sign_in_client`, whose session nothing
    else reads. Everything after sign-in is keyed by the caller's own
    access token, so no caller can see or end another's session.

    Failures are raised as typed StoreErrors so the caller can show
    branch-specific messages (e.g. email already registered).
    """

    def __init__(
        self,
        client: AsyncClient,
        users: UserRepository,
        sign_in_client: AsyncClient | None = None,
    ):
        self.client = client
        self.users = users
        self.sign_in_client = sign_in_client or client

    async def sign_in(self, payload: LoginRequest) -> SessionRead:
        try:
            response = await self.sign_in_client.auth.sign_in_with_password(
                {"email": str(payload.email), "password": payload.password}
            )
        except Exception as exc:
            raise classify(exc) from exc

        session = response.session
        if session is None:
            raise AuthorizationError("Sign-in did not return a session")
        logger.info("Signed in %s", payload.email)
        return SessionRead(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
            user_id=response.user.id,
        )

    async def sign_out(self, caller: Caller) -> None:
        """Revoke the caller's session only."""
        try:
            await self.client.auth.admin.sign_out(caller.access_token, "local")
        except Exception as exc:
            raise classify(exc) from exc
        logger.info("Signed out %s", caller.id)

    async def register(self, payload: RegisterRequest) -> None:
        """Self sign-up; the profile row is created by an admin later."""
        try:
            await self.sign_in_client.auth.sign_up(
                {"email": str(payload.email), "password": payload.password}
            )
        except Exception as exc:
            raise classify(exc) from exc

    async def current_user(self, caller: Caller) -> CurrentUser | None:
        """
        The caller's identity, resolved from their token, joined with
        their profile row.

        Returns None when the profile is missing.
        """
        try:
            response = await self.client.auth.get_user(caller.access_token)
        except Exception as exc:
            raise classify(exc) from exc
        if response is None or response.user is None:
            raise AuthorizationError("Token does not belong to a user")

        try:
            profile = await self.users.bind(caller.db).get_by_id(
                uuid.UUID(str(response.user.id))
            )
        except Exception as exc:
            error = classify(exc)
            if isinstance(error, NotFoundError):
                return None
            raise error from exc
        return CurrentUser(
            id=response.user.id,
            email=response.user.email,
            name=profile.name,
            role=profile.role,
        )
