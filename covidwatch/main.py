"""
CovidWatch — Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from covidwatch.api.api import api_router
from covidwatch.core.config import settings
from covidwatch.core.exceptions import ConflictError, register_exception_handlers
from covidwatch.core.kv import KeyValueStore, create_store
from covidwatch.core.rate_limit import (
    RateLimiter,
    create_limit_storage,
    limits_from_settings,
    storage_uri,
)
from covidwatch.core.security import aget_password_hash
from covidwatch.core.sessions import SessionManager
from covidwatch.db.base import Base
from covidwatch.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from covidwatch.models.check_in import CheckIn  # noqa: F401
from covidwatch.models.map_marker import MapMarker  # noqa: F401
from covidwatch.models.user import User  # noqa: F401
from covidwatch.services.users import create_user, get_user_by_username

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed default admin user on first run (admins cannot sign up)
    async with async_session_factory() as session:
        if await get_user_by_username(session, settings.FIRST_ADMIN_USERNAME) is None:
            try:
                await create_user(
                    session,
                    username=settings.FIRST_ADMIN_USERNAME,
                    email=settings.FIRST_ADMIN_EMAIL,
                    password_hash=await aget_password_hash(settings.FIRST_ADMIN_PASSWORD),
                    given_name="System",
                    family_name="Administrator",
                    role="admin",
                )
                logger.info(
                    "Default admin created: %s (password: <redacted>)",
                    settings.FIRST_ADMIN_USERNAME,
                )
            except ConflictError as exc:
                logger.warning("Default admin not created: %s", exc.detail)

    logger.info("🚀 CovidWatch v%s started (%s)", settings.VERSION, settings.ENVIRONMENT)
    yield
    await app.state.kv.close()
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app(
    store: KeyValueStore | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the app.

    ``store`` and ``rate_limiter`` override the configured session backend
    and rate limiter.
    """
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Venue check-in & contact tracing",
        version=settings.VERSION,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    # Sessions
    kv = store if store is not None else create_store(settings.STORE_BACKEND, settings.REDIS_URL)
    application.state.kv = kv
    application.state.sessions = SessionManager(kv, settings.SESSION_TTL_SECONDS)

    # Rate-limit counters
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            create_limit_storage(storage_uri(settings)),
            limits_from_settings(settings),
            enabled=settings.RATE_LIMIT_ENABLED,
        )
    application.state.rate_limiter = rate_limiter

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router)

    return application


app = create_app()
