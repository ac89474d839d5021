"""
Health check endpoints for monitoring and orchestration.

Provides basic health status and a readiness check that includes Neo4j.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from lorekeeper.core.config import settings
from lorekeeper.services.neo4j import get_neo4j_service


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    version: str
    timestamp: datetime
    neo4j: Optional[dict[str, Any]] = None


# Connection details such as the URI stay out of the public readiness payload
READINESS_FIELDS = ("status", "latency_ms", "error")

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    description="Returns the health status of the service for monitoring and orchestration."
)
async def health_check() -> HealthResponse:
    """
    Perform a basic health check.

    Returns:
        HealthResponse: Current health status of the service
    """
    return HealthResponse(
        status="healthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc)
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check endpoint",
    description="Returns 503 when the graph database cannot be reached."
)
async def readiness_check(response: Response) -> HealthResponse:
    """
    Perform a readiness check against Neo4j.

    Returns:
        HealthResponse: Current readiness status, with the Neo4j health payload
    """
    try:
        service = await get_neo4j_service()
        neo4j_health = await service.health_check()
    except Exception as e:
        neo4j_health = {"status": "unhealthy", "error": type(e).__name__}

    ready = neo4j_health.get("status") == "healthy"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="ready" if ready else "not_ready",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc),
        neo4j={k: v for k, v in neo4j_health.items() if k in READINESS_FIELDS},
    )
