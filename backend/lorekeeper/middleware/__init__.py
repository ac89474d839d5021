"""
Middleware package for FastAPI application.

This package contains middleware components for cross-cutting concerns
such as session resolution.
"""

from lorekeeper.middleware.auth_context import AuthContextMiddleware

__all__ = [
    "AuthContextMiddleware",
]
