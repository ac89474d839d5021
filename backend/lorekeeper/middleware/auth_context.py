"""
AuthContext Resolution Middleware for FastAPI.

This middleware resolves the bearer token of each request into an
AuthContext and makes it available both on ``request.state.auth_context``
and as the ambient context used by the graph data-access layer.

The middleware never rejects a request: an absent or invalid token yields
``None``, and the data-access layer fails closed with UnauthorizedError as
soon as a route tries to touch tenant data.
"""

import logging
from typing import Set

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lorekeeper.core.context import current_auth_context
from lorekeeper.core.security import extract_bearer_token, resolve_auth_context

logger = logging.getLogger(__name__)


class AuthContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware to resolve the AuthContext of authenticated requests.

    Public endpoints (health, docs, metrics) are skipped. The ambient context
    is restored in a finally block so nothing leaks between requests.

    Example:
        >>> # In main.py
        >>> app.add_middleware(AuthContextMiddleware)
        >>>
        >>> # In route handler
        >>> @router.get("/moments")
        >>> async def list_moments(request: Request):
        ...     ctx = request.state.auth_context
    """

    PUBLIC_PATHS: Set[str] = {
        "/",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/metrics",
        "/api/v1/health",
        "/api/v1/ready",
    }

    async def dispatch(self, request: Request, call_next) -> Response:
        """
        Resolve the AuthContext, run the handler, then restore the ambient context.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware or handler in chain

        Returns:
            Response from downstream handler
        """
        if request.url.path in self.PUBLIC_PATHS:
            logger.debug(
                f"AuthContext resolution skipped for public endpoint: {request.url.path}"
            )
            request.state.auth_context = None
            return await call_next(request)

        auth_context = resolve_auth_context(
            extract_bearer_token(request.headers.get("Authorization"))
        )
        request.state.auth_context = auth_context

        token = current_auth_context.set(auth_context)
        try:
            return await call_next(request)
        finally:
            current_auth_context.reset(token)

