"""Taskboard auth service entry point.

Run with ``uvicorn taskboard.main:app``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskboard.api import api_router
from taskboard.api.auth import router as auth_router
from taskboard.api.errors import register_exception_handlers
from taskboard.api.health import router as health_router
from taskboard.core import dispose_engine, get_logger, settings, setup_logging

# Registers every table on Base.metadata for Alembic autogenerate
from taskboard.models import (  # noqa: F401
    BlacklistedAccessToken,
    Comment,
    Permission,
    Project,
    ProjectMember,
    RefreshToken,
    Task,
    User,
)
from taskboard.services.blacklist_cleanup import BlacklistCleanupService

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(
        level=settings.log_level,
        format_type="dev" if settings.debug else "structured",
    )
    logger.info(
        f"Starting {settings.app_name} v{settings.app_version} "
        f"(access TTL {settings.access_token_ttl}, "
        f"max {settings.max_sessions_per_user} sessions per user)"
    )
    for warning in settings.check_security_configuration():
        logger.warning(f"Security configuration: {warning}")

    cleanup = BlacklistCleanupService.get_instance()
    await cleanup.start()
    try:
        yield
    finally:
        logger.info("Shutting down")
        await cleanup.stop()
        await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Session and token lifecycle service for the task board",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    # Bearer tokens travel in the Authorization header, never in cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
    )

    if settings.enable_metrics:
        from prometheus_fastapi_instrumentator import Instrumentator

        # /metrics is registered before the routers and stays unauthenticated
        Instrumentator(
            excluded_handlers=["/health", "/metrics"],
        ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(api_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
        }

    return app


app = create_app()
