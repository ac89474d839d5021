"""Core application modules."""

from lorekeeper.core.context import (
    auth_context_scope,
    clear_current_auth_context,
    get_current_auth_context,
    set_current_auth_context,
)

__all__ = [
    "auth_context_scope",
    "clear_current_auth_context",
    "get_current_auth_context",
    "set_current_auth_context",
]
