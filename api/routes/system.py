"""
System Routes: Health Check and Monitoring Endpoints

Provides system-level endpoints for health monitoring and Prometheus metrics
collection.

Architectural Pattern: System API + Health Check Pattern
"""

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from loguru import logger

from api.schemas import HealthCheckResponse
from config.settings import get_settings
from container import DatabaseManager, MetricsCollector, container

router = APIRouter(prefix="/system", tags=["System"])


# Simple dependency functions for FastAPI
def get_database_dependency() -> DatabaseManager:
    """Get DatabaseManager instance for FastAPI dependency injection."""
    return container.database()


def get_metrics_dependency() -> MetricsCollector:
    """Get MetricsCollector instance for FastAPI dependency injection."""
    return container.metrics()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="System health check with dependency status",
)
async def health_check(
    db: DatabaseManager = Depends(get_database_dependency),
) -> HealthCheckResponse:
    """
    System health check with dependency status.

    Reports "degraded" when the database is unreachable.
    """
    dependencies: Dict[str, str] = {}

    try:
        await db.health_check()
        dependencies["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Health check failed | component=database | error={e}")
        dependencies["database"] = f"unhealthy: {e}"

    overall_status = (
        "healthy" if all(v == "healthy" for v in dependencies.values()) else "degraded"
    )
    return HealthCheckResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=get_settings().app_version,
        dependencies=dependencies,
    )


@router.get(
    "/metrics",
    summary="System metrics (Prometheus format)",
    description="Export metrics in Prometheus format for monitoring systems",
)
async def get_system_metrics(
    metrics: MetricsCollector = Depends(get_metrics_dependency),
) -> Response:
    """
    Export metrics in Prometheus format.

    Includes pipeline outcomes, outline tiers, provider calls, retries
    and latencies.
    """
    return Response(content=metrics.export_metrics(), media_type=metrics.get_content_type())
