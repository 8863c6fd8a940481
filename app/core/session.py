import logging
import uuid
from dataclasses import dataclass
from typing import Any

from supabase import AsyncClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    """
    The user a store operation runs for.

    `db` is a PostgREST client that sends the caller's own access
    token, so row-level security judges the caller and not the
    process. Built per HTTP request (see app.core.auth.get_caller).
    """

    id: uuid.UUID
    db: Any
    email: str | None = None
    access_token: str | None = None


class SessionBinding:
    """
    Tracks the current Supabase Auth session for the lifetime of the app.

    Flow:
      1. start(): read any existing session, then subscribe to
         auth state changes (sign-in, sign-out, token refresh).
      2. Every change replaces `current`.
      3. stop(): unsubscribe.

    This is the process's own session, used when a store operation is
    called without a Caller (scripts, background jobs). HTTP requests
    always carry their own Caller and never read or change it.
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        self.current: Any | None = None
        self._subscription = None

    async def start(self) -> None:
        self.current = await self.client.auth.get_session()
        self._subscription = self.client.auth.on_auth_state_change(self._on_change)
        if self.current is not None:
            logger.info("Restored Supabase session for user %s", self.user_id)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_change(self, event, session) -> None:
        logger.info("Auth state change: %s", event)
        self.current = session

    @property
    def user_id(self) -> uuid.UUID | None:
        if self.current is None or getattr(self.current, "user", None) is None:
            return None
        return uuid.UUID(str(self.current.user.id))

    @property
    def access_token(self) -> str | None:
        if self.current is None:
            return None
        return getattr(self.current, "access_token", None)
