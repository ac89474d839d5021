"""
Pytest configuration and fixtures for Neo4j integration tests.

Provides fixtures for:
- Neo4j service connection and availability checking
- Per-test tenant ids and AuthContexts
- Erasure of every test tenant's nodes after each test
"""

import asyncio
import os
from typing import AsyncGenerator
from uuid import uuid4

import pytest

# Configure Neo4j settings for integration tests before application imports
os.environ.setdefault("NEO4J_URI", "bolt://localhost:7687")
os.environ.setdefault("NEO4J_USER", "neo4j")
os.environ.setdefault("NEO4J_PASSWORD", "lorekeeper_neo4j_pass")
os.environ.setdefault("NEO4J_DATABASE", "neo4j")


async def _check_neo4j_available() -> bool:
    """Check if Neo4j is available and connectable.

    Returns:
        True if Neo4j is available, False otherwise.
    """
    from lorekeeper.services.neo4j import Neo4jService

    service = Neo4jService(
        uri=os.environ["NEO4J_URI"],
        user=os.environ["NEO4J_USER"],
        password=os.environ["NEO4J_PASSWORD"],
        database=os.environ["NEO4J_DATABASE"],
    )
    try:
        await service.connect()
        health = await service.health_check()
    except Exception:
        return False
    finally:
        await service.close()
    return health.get("status") == "healthy"


@pytest.fixture(scope="session")
def neo4j_available() -> bool:
    """Check once per session whether Neo4j can be reached."""
    return asyncio.run(_check_neo4j_available())


@pytest.fixture
async def neo4j_service(neo4j_available: bool):
    """Provide a connected Neo4j service instance for tests.

    Yields:
        Connected Neo4jService instance.

    Raises:
        pytest.skip: If Neo4j is not available.
    """
    if not neo4j_available:
        pytest.skip("Neo4j is not available")

    from lorekeeper.services.neo4j import Neo4jService

    service = Neo4jService(
        uri=os.environ["NEO4J_URI"],
        user=os.environ["NEO4J_USER"],
        password=os.environ["NEO4J_PASSWORD"],
        database=os.environ["NEO4J_DATABASE"],
    )
    await service.connect()

    yield service

    await service.close()


@pytest.fixture
async def isolation(neo4j_service, cleanup_tenants):
    """TenantIsolationService over the live connection."""
    from lorekeeper.services.neo4j_tenant import TenantIsolationService

    return TenantIsolationService(neo4j_service)


@pytest.fixture
async def cleanup_tenants(neo4j_service) -> AsyncGenerator[list[str], None]:
    """Collect tenant ids whose nodes are erased after the test.

    Usage:
        async def test_something(cleanup_tenants, isolation):
            cleanup_tenants.append(tenant_id)
    """
    from lorekeeper.services.neo4j_tenant import TenantIsolationService

    tenants: list[str] = []
    yield tenants

    service = TenantIsolationService(neo4j_service)
    for tenant_id in tenants:
        await service.erase_tenant_data(tenant_id)


def _context_for(tenant_id: str):
    from lorekeeper.schemas.auth import AuthContext, SessionUser

    return AuthContext(user=SessionUser(id=tenant_id, email=f"{tenant_id}@example.com"))


@pytest.fixture
def alice(cleanup_tenants):
    """AuthContext for a unique ``alice`` tenant, erased after the test."""
    tenant_id = f"alice-{uuid4()}"
    cleanup_tenants.append(tenant_id)
    return _context_for(tenant_id)


@pytest.fixture
def bob(cleanup_tenants):
    """AuthContext for a unique ``bob`` tenant, erased after the test."""
    tenant_id = f"bob-{uuid4()}"
    cleanup_tenants.append(tenant_id)
    return _context_for(tenant_id)
