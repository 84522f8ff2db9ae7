"""Liveness endpoint for load balancers and container orchestration.

Authentication cannot work without PostgreSQL (every request checks the
blacklist and the session count), so a dead database makes the service
unhealthy. A stopped blacklist cleanup only degrades it.
"""

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from taskboard.core import check_db_connection, settings
from taskboard.services.blacklist_cleanup import BlacklistCleanupService

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    blacklist_cleanup: str


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        status.HTTP_200_OK: {"description": "Service can authenticate requests"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Database unreachable"},
    },
)
async def health_check(response: Response) -> HealthResponse:
    db_healthy = await check_db_connection()
    cleanup_running = BlacklistCleanupService.get_instance().is_running

    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        overall = "unhealthy"
    elif not cleanup_running:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
        blacklist_cleanup="running" if cleanup_running else "stopped",
    )
