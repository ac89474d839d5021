"""Application services."""

from lorekeeper.services.neo4j import (
    Neo4jService,
    close_neo4j_service,
    get_neo4j_service,
)
from lorekeeper.services.neo4j_tenant import (
    NodeLabel,
    OwnershipStatus,
    TenantIsolationService,
    UnauthorizedError,
    erase_tenant_data,
    extract_tenant_id,
    get_tenant_isolation_service,
    resolve_current_tenant_id,
    scoped_read,
    scoped_write,
    verify_ownership,
)

__all__ = [
    "Neo4jService",
    "close_neo4j_service",
    "get_neo4j_service",
    "NodeLabel",
    "OwnershipStatus",
    "TenantIsolationService",
    "UnauthorizedError",
    "erase_tenant_data",
    "extract_tenant_id",
    "get_tenant_isolation_service",
    "resolve_current_tenant_id",
    "scoped_read",
    "scoped_write",
    "verify_ownership",
]
