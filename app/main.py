from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.config import get_settings
from app.core.context import AppContext

# Routers
from app.routers.auth import router as auth_router
from app.routers.customers import router as customers_router
from app.routers.attendances import router as attendances_router
from app.routers.attendants import router as attendants_router
from app.routers.dashboard import router as dashboard_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    `context` is normally None and built from settings at startup;
    tests pass a prebuilt one.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Startup:
          - Build Supabase clients, repositories and stores.
          - Verify DB connectivity, restore the auth session and
            subscribe to auth state changes.

        Shutdown:
          - Unsubscribe from auth state changes.
        """
        logger.info("🔄 Startup: Connecting to Supabase...")
        ctx = context or await AppContext.from_settings(settings)
        try:
            await ctx.start()
            logger.info("✅ Startup: Supabase session binding ready.")
        except Exception as e:
            logger.error(f"❌ Startup: Supabase connection FAILED: {e}")
            raise
        app.state.context = ctx
        yield
        await ctx.stop()
        logger.info("👋 Shutdown: auth subscription closed.")

    app = FastAPI(
        title=settings.PROJECT_NAME or "Attendance Admin API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Versioned API prefix, e.g. /api/v1
    app.include_router(auth_router, prefix=settings.API_V1_STR)
    app.include_router(customers_router, prefix=settings.API_V1_STR)
    app.include_router(attendances_router, prefix=settings.API_V1_STR)
    app.include_router(attendants_router, prefix=settings.API_V1_STR)
    app.include_router(dashboard_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "attendance-admin"}

    return app


app = create_app()
