"""
FastAPI dependency injection modules.

This package contains dependency injection functions for FastAPI routes,
including session resolution and tenant-scoped graph access.
"""

from lorekeeper.api.dependencies.auth import CurrentAuthContext, get_auth_context
from lorekeeper.api.dependencies.graph import TenantGraph, get_tenant_graph

__all__ = [
    "CurrentAuthContext",
    "get_auth_context",
    "TenantGraph",
    "get_tenant_graph",
]
