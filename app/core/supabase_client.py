from contextlib import asynccontextmanager
from typing import AsyncIterator

from postgrest import AsyncPostgrestClient
from postgrest.constants import DEFAULT_POSTGREST_CLIENT_HEADERS
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from app.core.config import Settings


async def supabase_public(settings: Settings) -> AsyncClient:
    """
    Create a Supabase client with the anon/public key.

    Use cases:
      - the process's own session (SessionBinding)
      - stateless Auth calls that take the caller's JWT explicitly
        (get_user, admin.sign_out)

    Note: This client respects RLS. HTTP requests never use its
    PostgREST session; see caller_postgrest.
    """
    return await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


async def supabase_sign_in(settings: Settings) -> AsyncClient:
    """
    Anon client used only to exchange credentials for tokens.

    Its session is neither persisted nor refreshed and nothing else
    reads it, so one caller's sign-in never becomes another's identity.
    """
    return await acreate_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_KEY,
        options=AsyncClientOptions(auto_refresh_token=False, persist_session=False),
    )


async def supabase_admin(settings: Settings) -> AsyncClient | None:
    """
    Create a Supabase client with the service role key.

    Use cases:
      - registering attendant identities without touching any
        caller's session
      - deleting identities (auth.admin.delete_user)
      - changing another user's password

    WARNING:
      - Never expose service role key to frontend.

    Returns:
        None if SUPABASE_SERVICE_ROLE_KEY is not set; attendant
        administration then fails with an authorization error.
    """
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        return None
    return await acreate_client(
        settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
    )


@asynccontextmanager
async def caller_postgrest(
    settings: Settings, access_token: str
) -> AsyncIterator[AsyncPostgrestClient]:
    """
    PostgREST client for one request, authorized as the caller.

    Closed when the request is done.
    """
    client = AsyncPostgrestClient(
        f"{settings.SUPABASE_URL}/rest/v1",
        headers={**DEFAULT_POSTGREST_CLIENT_HEADERS, "apikey": settings.SUPABASE_KEY},
    )
    client.auth(access_token)
    try:
        yield client
    finally:
        await client.aclose()
