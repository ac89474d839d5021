"""
Fixtures for API route tests.

Routes run against the real application with the tenant graph dependency
replaced by a mock, so handlers can be exercised without Neo4j.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from lorekeeper.api.dependencies.auth import CurrentAuthContext
from lorekeeper.api.dependencies.graph import get_tenant_graph
from lorekeeper.main import app
from lorekeeper.services.neo4j_tenant import TenantIsolationService, extract_tenant_id


@pytest.fixture
def graph():
    """Mock TenantIsolationService injected into routes."""
    graph = MagicMock(spec=TenantIsolationService)
    graph.scoped_read = AsyncMock(return_value=[])
    graph.scoped_write = AsyncMock(return_value=[])
    graph.verify_ownership = AsyncMock(return_value=True)
    graph.erase_tenant_data = AsyncMock(return_value=0)
    graph.service = MagicMock()
    graph.service.verify_connection = AsyncMock(return_value=True)
    return graph


@pytest.fixture
def client(graph):
    """Test client whose routes see the mock graph.

    The override keeps the fail-closed identity check of get_tenant_graph.
    """
    async def _override(auth: CurrentAuthContext):
        extract_tenant_id(auth)
        return graph

    app.dependency_overrides[get_tenant_graph] = _override
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(make_session_token):
    """Authorization header for tenant ``alice``."""
    token = make_session_token(sub="alice", email="alice@example.com", name="Alice")
    return {"Authorization": f"Bearer {token}"}
