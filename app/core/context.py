import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, AsyncContextManager, Callable

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session
from supabase import AsyncClient

from app.core.config import Settings
from app.core.session import SessionBinding
from app.core.supabase_client import (
    caller_postgrest,
    supabase_admin,
    supabase_public,
    supabase_sign_in,
)
from app.database import check_connection, open_session
from app.repositories.attendance_repo import AttendanceRepository, CommentRepository
from app.repositories.customer_repo import CustomerRepository
from app.repositories.identity_repo import IdentityRepository
from app.repositories.stats_repo import StatsRepository
from app.repositories.user_repo import UserRepository
from app.services.attendant_service import AttendantService
from app.services.auth_service import AuthService
from app.services.dashboard_service import DashboardAggregator
from app.stores.attendance_store import AttendanceStore
from app.stores.attendant_store import AttendantStore
from app.stores.customer_store import CustomerStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """
    Everything the views need, built once per application run.

    Created in the FastAPI lifespan and reached from routers through
    `request.app.state.context`; nothing here is a module-level
    singleton.

    `caller_db(access_token)` opens a PostgREST client that acts as
    the holder of that token; get_caller uses it once per request.
    """

    session: SessionBinding
    users: UserRepository
    auth: AuthService
    customers: CustomerStore
    attendances: AttendanceStore
    attendants: AttendantStore
    caller_db: Callable[[str], AsyncContextManager[Any]]
    check_database: Callable[[], None] | None = None

    @classmethod
    def build(
        cls,
        client: AsyncClient,
        admin_client: AsyncClient | None,
        session_factory: Callable[[], Session],
        caller_db: Callable[[str], AsyncContextManager[Any]],
        recent_limit: int = 5,
        check_database: Callable[[], None] | None = None,
        sign_in_client: AsyncClient | None = None,
    ) -> "AppContext":
        session = SessionBinding(client)
        users = UserRepository(client)
        aggregator = DashboardAggregator(
            StatsRepository(),
            AttendanceRepository(client),
            session_factory,
            recent_limit=recent_limit,
        )
        attendant_service = AttendantService(
            users,
            IdentityRepository(client, admin_client),
            current_user_id=lambda: session.user_id,
        )
        return cls(
            session=session,
            users=users,
            auth=AuthService(client, users, sign_in_client=sign_in_client),
            customers=CustomerStore(CustomerRepository(client)),
            attendances=AttendanceStore(
                AttendanceRepository(client),
                CommentRepository(client),
                aggregator,
                current_user_id=lambda: session.user_id,
            ),
            attendants=AttendantStore(users, attendant_service),
            caller_db=caller_db,
            check_database=check_database,
        )

    @classmethod
    async def from_settings(cls, settings: Settings) -> "AppContext":
        client = await supabase_public(settings)
        admin_client = await supabase_admin(settings)
        if admin_client is None:
            logger.warning(
                "SUPABASE_SERVICE_ROLE_KEY not set: attendant creation/deletion disabled"
            )
        return cls.build(
            client,
            admin_client,
            open_session,
            caller_db=partial(caller_postgrest, settings),
            recent_limit=settings.DASHBOARD_RECENT_LIMIT,
            check_database=check_connection,
            sign_in_client=await supabase_sign_in(settings),
        )

    async def start(self) -> None:
        if self.check_database is not None:
            await run_in_threadpool(self.check_database)
        await self.session.start()

    async def stop(self) -> None:
        self.session.stop()


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the running app's context."""
    return request.app.state.context


def get_customer_store(request: Request) -> CustomerStore:
    return get_context(request).customers


def get_attendance_store(request: Request) -> AttendanceStore:
    return get_context(request).attendances


def get_attendant_store(request: Request) -> AttendantStore:
    return get_context(request).attendants


def get_auth_service(request: Request) -> AuthService:
    return get_context(request).auth
