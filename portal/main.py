"""
Vendor Portal — Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `policy/`, `services/`, `api/` and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from portal.api import pages
from portal.api.v1.api import api_router
from portal.api.v1.endpoints.auth import limiter
from portal.core.config import settings
from portal.core.exceptions import register_exception_handlers
from portal.core.security import get_password_hash
from portal.db.base import Base
from portal.db.session import async_session_factory, engine
from portal.middleware import register_route_guard
from portal.models.account import Role
from portal.policy.approval import initial_approval
from portal.repository import AccountRepository

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_super_admin() -> None:
    """Create the first super admin if no account has that email yet."""
    async with async_session_factory() as session:
        repo = AccountRepository(session)
        if await repo.find_by_email(settings.FIRST_SUPERADMIN_EMAIL) is not None:
            return
        await repo.create(
            name=settings.FIRST_SUPERADMIN_NAME,
            email=settings.FIRST_SUPERADMIN_EMAIL.lower(),
            hashed_password=get_password_hash(settings.FIRST_SUPERADMIN_PASSWORD),
            role=Role.SUPER_ADMIN.value,
            **initial_approval(Role.SUPER_ADMIN, None),
        )
        logger.info(
            "Default super admin created: %s (password: <redacted>)",
            settings.FIRST_SUPERADMIN_EMAIL,
        )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_super_admin()

    logger.info("🚀 %s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Multi-role vendor portal: vendors, admins and super admins",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Rate limiter state for slowapi decorators
    application.state.limiter = limiter

    # Route guard runs inside CORS so preflights are answered first
    register_route_guard(application)

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Role dashboards
    application.include_router(pages.router)

    # Serve frontend static files (must be last — catch-all mount)
    frontend_dir = Path(__file__).resolve().parent.parent / "frontend"
    if frontend_dir.is_dir():
        application.mount(
            "/",
            StaticFiles(directory=str(frontend_dir), html=True),
            name="frontend",
        )
        logger.info("Frontend mounted from %s", frontend_dir)

    return application


app = create_app()
