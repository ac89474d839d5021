"""
Shared helpers for story graph routers.
"""

import logging
from typing import Any

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from neo4j.exceptions import DriverError, Neo4jError
from neo4j.time import Date, DateTime, Time

logger = logging.getLogger(__name__)

# Failures raised by the driver or the server. Anything else is a bug and
# reaches the application's generic 500 handler.
GRAPH_ERRORS: tuple[type[Exception], ...] = (Neo4jError, DriverError)

_TEMPORAL_ENCODERS = {
    DateTime: lambda value: value.iso_format(),
    Date: lambda value: value.iso_format(),
    Time: lambda value: value.iso_format(),
}


def to_json(data: Any) -> Any:
    """Encode normalized graph records, including Neo4j temporal values."""
    return jsonable_encoder(data, custom_encoder=_TEMPORAL_ENCODERS)


def graph_failure(route: str, message: str, error: Exception) -> HTTPException:
    """
    Log a graph failure and build the client-facing 500 error.

    Only the fixed ``message`` reaches the client; the driver's error text
    can name labels, properties or other tenants' values.
    """
    logger.error(
        f"{route} failed",
        extra={"error_class": type(error).__name__},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=message,
    )


def not_found(message: str) -> HTTPException:
    """Build a 404 error. Used for both missing and foreign nodes."""
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
