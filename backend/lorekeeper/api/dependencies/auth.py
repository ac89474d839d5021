"""Session dependencies for route handlers.

The AuthContext is resolved once per request by AuthContextMiddleware; these
dependencies only hand it to the route. A missing context is passed through
as None so the graph data-access layer can fail closed with its own fixed
Unauthorized message.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends, Request

from lorekeeper.core.security import extract_bearer_token, resolve_auth_context
from lorekeeper.schemas.auth import AuthContext


logger = logging.getLogger(__name__)


async def get_auth_context(request: Request) -> Optional[AuthContext]:
    """
    FastAPI dependency returning the AuthContext of the current request.

    Falls back to resolving the Authorization header directly when the
    middleware did not run (e.g. a router mounted on a bare test app).

    Returns:
        AuthContext, or None for anonymous requests

    Example:
        >>> @router.get("/moments")
        >>> async def list_moments(auth: CurrentAuthContext):
        ...     return await graph.scoped_read(query, {}, auth)
    """
    if hasattr(request.state, "auth_context"):
        return request.state.auth_context

    return resolve_auth_context(extract_bearer_token(request.headers.get("Authorization")))


# Type alias for dependency injection
CurrentAuthContext = Annotated[Optional[AuthContext], Depends(get_auth_context)]
