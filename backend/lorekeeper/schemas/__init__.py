# Schemas package

from lorekeeper.schemas.auth import AuthContext, SessionUser, TokenPayload
from lorekeeper.schemas.moments import (
    CharacterCreate,
    MomentCreate,
    MomentUpdate,
)

__all__ = [
    "AuthContext",
    "SessionUser",
    "TokenPayload",
    "CharacterCreate",
    "MomentCreate",
    "MomentUpdate",
]
