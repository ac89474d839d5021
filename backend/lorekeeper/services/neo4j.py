"""
Neo4j connection management for the story graph.

This module owns the process-wide async driver and hands out sessions.
It knows nothing about tenants; tenant isolation is layered on top by
lorekeeper.services.neo4j_tenant.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession

from lorekeeper.core.config import settings

logger = logging.getLogger(__name__)


class Neo4jService:
    """Async session provider for the Neo4j story graph.

    This service provides:
    - Driver lifecycle management (one connection pool per process)
    - Session acquisition with guaranteed release
    - Health and connectivity checks

    Example:
        service = Neo4jService()
        await service.connect()

        try:
            async with service.session() as session:
                result = await session.run("RETURN 1 AS num")
        finally:
            await service.close()
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        database: Optional[str] = None,
    ):
        """Initialize Neo4j service.

        Args:
            uri: Neo4j URI (defaults to settings)
            user: Neo4j username (defaults to settings)
            password: Neo4j password (defaults to settings)
            database: Neo4j database (defaults to settings)
        """
        self._uri = uri or settings.NEO4J_URI
        self._user = user or settings.NEO4J_USER
        self._password = password or settings.NEO4J_PASSWORD
        self._database = database or settings.NEO4J_DATABASE
        self._driver: Optional[AsyncDriver] = None

    @property
    def is_connected(self) -> bool:
        return self._driver is not None

    async def connect(self) -> None:
        """Establish connection to Neo4j.

        Creates an async driver with connection pooling, acquisition timeout
        and transaction retry budget configured from application settings.
        """
        if self._driver is not None:
            logger.warning("Neo4j driver already connected")
            return

        if not self._uri or not self._user or not self._password:
            raise RuntimeError(
                "Missing Neo4j connection credentials. "
                "Check NEO4J_URI, NEO4J_USER and NEO4J_PASSWORD."
            )

        self._driver = AsyncGraphDatabase.driver(
            self._uri,
            auth=(self._user, self._password),
            max_connection_pool_size=settings.NEO4J_MAX_CONNECTION_POOL_SIZE,
            connection_timeout=settings.NEO4J_CONNECTION_TIMEOUT,
            connection_acquisition_timeout=settings.NEO4J_CONNECTION_ACQUISITION_TIMEOUT,
            max_transaction_retry_time=settings.NEO4J_MAX_TRANSACTION_RETRY_TIME,
        )

        # Verify connectivity
        await self._driver.verify_connectivity()
        logger.info(f"Connected to Neo4j at {self._uri}")

    async def close(self) -> None:
        """Close Neo4j connection and release resources."""
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")

    @asynccontextmanager
    async def session(
        self,
        database: Optional[str] = None,
        access_mode: Optional[str] = None,
    ) -> AsyncIterator[AsyncSession]:
        """Get a Neo4j session.

        The session is closed when the block exits, whether it exits
        normally or with an exception.

        Args:
            database: Database name (defaults to the configured database)
            access_mode: ``neo4j.READ_ACCESS`` lets a cluster route the
                session to a read replica (driver default is write)

        Yields:
            AsyncSession: Neo4j async session

        Raises:
            RuntimeError: If driver not connected
        """
        if self._driver is None:
            raise RuntimeError("Neo4j driver not connected. Call connect() first.")

        options: dict[str, Any] = {"database": database or self._database}
        if access_mode is not None:
            options["default_access_mode"] = access_mode
        session = self._driver.session(**options)
        try:
            yield session
        finally:
            await session.close()

    async def verify_connection(self) -> bool:
        """Run a trivial query and confirm the round trip.

        Returns:
            True if the database answered ``1``, False on any failure
        """
        try:
            async with self.session() as session:
                result = await session.run("RETURN 1 AS num")
                record = await result.single()
                return record is not None and record["num"] == 1
        except Exception as e:
            logger.error(
                "Neo4j connection verification failed",
                extra={"error_class": type(e).__name__},
            )
            return False

    async def health_check(self) -> dict[str, Any]:
        """Check Neo4j connectivity and return status.

        Returns:
            dict with status, latency, and database info
        """
        try:
            start = time.time()
            async with self.session() as session:
                result = await session.run("RETURN 1 AS health")
                await result.consume()
            latency_ms = (time.time() - start) * 1000

            return {
                "status": "healthy",
                "latency_ms": round(latency_ms, 2),
                "uri": self._uri,
                "database": self._database,
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": type(e).__name__,
                "uri": self._uri,
                "database": self._database,
            }


# =========================================================================
# Global Service Instance
# =========================================================================

_neo4j_service: Optional[Neo4jService] = None


async def get_neo4j_service() -> Neo4jService:
    """Get the global Neo4j service instance.

    Creates and connects the service on first call.

    Returns:
        Connected Neo4jService instance
    """
    global _neo4j_service

    if _neo4j_service is None:
        service = Neo4jService()
        await service.connect()
        _neo4j_service = service

    return _neo4j_service


async def close_neo4j_service() -> None:
    """Close the global Neo4j service."""
    global _neo4j_service

    if _neo4j_service is not None:
        await _neo4j_service.close()
        _neo4j_service = None
