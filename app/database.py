from functools import lru_cache

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from app.core.config import get_settings

# Import every mirrored table so Attendance's foreign keys resolve
# against one SQLModel metadata.
from app.models import attendance as _attendance_models  # noqa: F401
from app.models import customer as _customer_models  # noqa: F401
from app.models import user as _user_models  # noqa: F401

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# Only the dashboard aggregation talks to Postgres directly; every
# other read/write goes through PostgREST.
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients:
#   "MaxClientsInSessionMode: max clients reached"
# ---------------------------------------------------------


def _with_sslmode(db_url: str) -> str:
    """Append sslmode=require if it is not already present."""
    if "sslmode=" in db_url or not db_url.startswith("postgres"):
        return db_url
    if "?" in db_url:
        return db_url + "&sslmode=require"
    return db_url + "?sslmode=require"


@lru_cache
def get_engine() -> Engine:
    """
    Engine is created on first use, not at import, so modules that
    never aggregate do not need a database driver.
    """
    settings = get_settings()
    return create_engine(
        _with_sslmode(settings.DATABASE_URL),
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


def open_session() -> Session:
    """Session factory used by the dashboard aggregator."""
    return Session(get_engine())


def check_connection() -> None:
    """
    Run a trivial query to verify connectivity.

    Called once on application startup. Tables are owned by the
    Supabase project and are never created from here.
    """
    with open_session() as session:
        session.exec(text("SELECT 1"))
