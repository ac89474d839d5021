"""
Application context variables for async-safe state management.

Holds the AuthContext of the request currently being served so that code
paths without an explicit context (background flows, helpers deep in a call
stack) can still resolve the caller's tenant. Each asyncio task sees its own
value, so concurrent requests never observe each other's context.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

from lorekeeper.schemas.auth import AuthContext

__all__ = [
    "current_auth_context",
    "get_current_auth_context",
    "set_current_auth_context",
    "clear_current_auth_context",
    "auth_context_scope",
]

current_auth_context: ContextVar[Optional[AuthContext]] = ContextVar(
    "current_auth_context", default=None
)


def get_current_auth_context() -> Optional[AuthContext]:
    """Get the AuthContext of the current request, or None."""
    return current_auth_context.get()


def set_current_auth_context(
    auth_context: Optional[AuthContext],
) -> Token[Optional[AuthContext]]:
    """
    Set the AuthContext for the current execution context.

    Args:
        auth_context: Resolved context, or None for anonymous requests

    Returns:
        Token that restores the previous value via ``current_auth_context.reset``
    """
    return current_auth_context.set(auth_context)


def clear_current_auth_context() -> None:
    """Clear the AuthContext from the current execution context."""
    current_auth_context.set(None)


@contextmanager
def auth_context_scope(auth_context: Optional[AuthContext]) -> Iterator[None]:
    """
    Temporarily install an AuthContext, restoring the previous one on exit.

    Example:
        with auth_context_scope(ctx):
            tenant_id = await resolve_current_tenant_id()
    """
    token = current_auth_context.set(auth_context)
    try:
        yield
    finally:
        current_auth_context.reset(token)
