"""Tenant-scoped graph access dependency."""
from typing import Annotated

from fastapi import Depends

from lorekeeper.api.dependencies.auth import CurrentAuthContext
from lorekeeper.services.neo4j_tenant import (
    TenantIsolationService,
    extract_tenant_id,
    get_tenant_isolation_service,
)


async def get_tenant_graph(auth: CurrentAuthContext) -> TenantIsolationService:
    """
    FastAPI dependency providing the process-wide TenantIsolationService.

    Anonymous requests are rejected with UnauthorizedError before the Neo4j
    driver is touched.
    """
    extract_tenant_id(auth)
    return await get_tenant_isolation_service()


# Type alias for routes that read or write story-graph data
TenantGraph = Annotated[TenantIsolationService, Depends(get_tenant_graph)]
