"""
Session token decoding.

Tokens are signed by the accounts service with a shared secret. This module
turns a bearer token into an AuthContext; it never issues tokens.
"""

import logging
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import ValidationError

from lorekeeper.core.config import settings
from lorekeeper.schemas.auth import AuthContext, TokenPayload

logger = logging.getLogger(__name__)


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Verify a session token's signature and standard claims.

    ``exp`` is enforced when present. Issuer and audience are checked only
    when configured.

    Args:
        token: JWT token string (format: header.payload.signature)

    Returns:
        Decoded claims

    Raises:
        jwt.InvalidTokenError: If the token is malformed, expired or forged
    """
    options = {"require": ["sub"], "verify_aud": settings.AUTH_JWT_AUDIENCE is not None}
    return jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=settings.AUTH_JWT_ALGORITHMS,
        audience=settings.AUTH_JWT_AUDIENCE,
        issuer=settings.AUTH_JWT_ISSUER,
        options=options,
    )


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    The scheme is matched case-insensitively.

    Returns:
        Token string, or None when the header is missing, blank or not a bearer header
    """
    if not header:
        return None

    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_auth_context(token: Optional[str]) -> Optional[AuthContext]:
    """
    Resolve a bearer token into an AuthContext.

    Returns None instead of raising for missing, expired, forged or
    malformed tokens: callers fail closed when they try to extract a tenant.

    Example:
        >>> ctx = resolve_auth_context(token)
        >>> tenant_id = extract_tenant_id(ctx)  # raises UnauthorizedError if ctx is None
    """
    if not token:
        return None

    try:
        claims = decode_session_token(token)
        payload = TokenPayload.model_validate(claims)
    except ExpiredSignatureError:
        logger.info("Session token expired")
        return None
    except InvalidTokenError as e:
        logger.warning(
            "Session token rejected",
            extra={"error_class": type(e).__name__},
        )
        return None
    except ValidationError:
        logger.warning("Session token claims malformed")
        return None

    return AuthContext.from_token_payload(payload)
