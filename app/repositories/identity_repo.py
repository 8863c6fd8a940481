import uuid
from typing import Any

from supabase import AsyncClient

from app.core.errors import AuthorizationError


class IdentityRepository:
    """
    Supabase Auth identities for staff members.

    Registration, deletion and password changes of HTTP callers go
    through the service-role client; no caller's session is ever
    created or replaced here. Only the process's own signed-in user
    changes its password through the session-bound client.
    """

    def __init__(self, client: AsyncClient, admin_client: AsyncClient | None):
        self.client = client
        self.admin_client = admin_client

    def _admin(self):
        if self.admin_client is None:
            raise AuthorizationError(
                "Identity administration requires SUPABASE_SERVICE_ROLE_KEY"
            )
        return self.admin_client.auth.admin

    async def register(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> uuid.UUID:
        """Create a confirmed identity and return its id."""
        response = await self._admin().create_user(
            {
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": metadata or {},
            }
        )
        return uuid.UUID(str(response.user.id))

    async def delete(self, user_id: uuid.UUID) -> None:
        await self._admin().delete_user(str(user_id))

    async def set_password(
        self,
        user_id: uuid.UUID,
        password: str,
        own_session: bool = False,
    ) -> None:
        """
        own_session=True changes the password of the process's signed-in
        user through its Auth session; otherwise the admin API is used.
        """
        if own_session:
            await self.client.auth.update_user({"password": password})
            return
        await self._admin().update_user_by_id(str(user_id), {"password": password})
