"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response model."""

    status: str
    version: str
    environment: str
    database: str
    redis: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Basic health status
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
def detailed_health_check() -> DetailedHealthResponse:
    """
    Detailed health check with storage and ledger status.

    Backends that aren't configured report ``disabled``.

    Returns:
        Detailed health status including dependencies
    """
    checks = {
        "database": check_database_connection() if settings.storage_backend == "sql" else None,
        "redis": check_redis_connection() if settings.idempotency_backend == "redis" else None,
    }
    degraded = any(healthy is False for healthy in checks.values())

    def describe(healthy: bool | None) -> str:
        if healthy is None:
            return "disabled"
        return "healthy" if healthy else "unhealthy"

    return DetailedHealthResponse(
        status="degraded" if degraded else "healthy",
        version=settings.app_version,
        environment=settings.environment,
        database=describe(checks["database"]),
        redis=describe(checks["redis"]),
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """
    Simple ping endpoint.

    Returns:
        Pong response
    """
    return {"message": "pong"}
