"""Authentication schemas for session token resolution."""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TokenPayload(BaseModel):
    """
    Session token payload.

    Tokens are issued by the accounts service after sign-in. Only ``sub`` is
    required; it becomes the user id and therefore the tenant id of every
    graph node the user creates.
    """

    sub: str = Field(..., description="Subject (account user ID)")
    exp: Optional[int] = Field(None, description="Expiration time (Unix timestamp)")
    iat: Optional[int] = Field(None, description="Issued at time (Unix timestamp)")
    iss: Optional[str] = Field(None, description="Issuer")
    aud: Optional[Union[str, List[str]]] = Field(None, description="Audience")
    email: Optional[str] = Field(None, description="User email address")
    name: Optional[str] = Field(None, description="User display name")


class SessionUser(BaseModel):
    """User identity carried by an AuthContext.

    Every field is optional: partially populated sessions are representable
    and must be rejected by the isolation layer, not by parsing.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="User ID (tenant of the user's graph data)")
    email: Optional[str] = Field(None, description="User email address")
    name: Optional[str] = Field(None, description="User display name")


class AuthContext(BaseModel):
    """
    Authenticated session context for one request.

    Supplied by the session resolver (see AuthContextMiddleware) and treated
    as read-only input by the graph data-access layer.
    """

    model_config = ConfigDict(frozen=True)

    user: Optional[SessionUser] = Field(None, description="Signed-in user, if any")
    expires: Optional[datetime] = Field(None, description="Session expiry")

    @classmethod
    def from_token_payload(cls, payload: TokenPayload) -> "AuthContext":
        """Build an AuthContext from validated token claims."""
        expires = (
            datetime.fromtimestamp(payload.exp).astimezone()
            if payload.exp is not None
            else None
        )
        return cls(
            user=SessionUser(id=payload.sub, email=payload.email, name=payload.name),
            expires=expires,
        )
