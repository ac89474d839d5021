"""
Pytest configuration and fixtures for testing.

Provides session contexts, signed session tokens and Neo4j driver doubles
shared by the unit and API tests.
"""

import os
import time
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest


def pytest_configure(config):
    """
    Pytest hook that runs before test collection.

    This is the earliest point we can modify the environment.
    We load .env.test here to ensure it's available before any
    application modules are imported.
    """
    os.environ.setdefault("TESTING", "true")
    os.environ.setdefault("OTEL_ENABLED", "false")

    from dotenv import load_dotenv

    test_env_path = Path(__file__).parent.parent / ".env.test"
    if test_env_path.exists():
        load_dotenv(test_env_path, override=True)
        print(f"Loaded test environment from {test_env_path}")


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


class MockAsyncIterator:
    """Helper class to create async iterators for mocking Neo4j results."""

    def __init__(self, items):
        self.items = list(items)
        self.index = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.index >= len(self.items):
            raise StopAsyncIteration
        item = self.items[self.index]
        self.index += 1
        return item


def make_result(records: list[Any], single: Any = None) -> MagicMock:
    """Build a driver result double that supports ``async for`` and ``single()``."""
    result = MagicMock()
    result.__aiter__ = lambda self: MockAsyncIterator(records)
    result.single = AsyncMock(return_value=single)
    result.consume = AsyncMock()
    return result


# =============================================================================
# Session Contexts
# =============================================================================


@pytest.fixture
def alice_context():
    """AuthContext for tenant ``alice``."""
    from lorekeeper.schemas.auth import AuthContext, SessionUser

    return AuthContext(user=SessionUser(id="alice", email="alice@example.com", name="Alice"))


@pytest.fixture
def bob_context():
    """AuthContext for tenant ``bob``."""
    from lorekeeper.schemas.auth import AuthContext, SessionUser

    return AuthContext(user=SessionUser(id="bob", email="bob@example.com", name="Bob"))


@pytest.fixture
def make_session_token():
    """Factory signing session tokens with the configured secret."""
    from lorekeeper.core.config import settings

    def _make(
        sub: Optional[str] = "alice",
        expires_in: int = 3600,
        secret: Optional[str] = None,
        **claims: Any,
    ) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {"iat": now, "exp": now + expires_in, **claims}
        if sub is not None:
            payload["sub"] = sub
        return jwt.encode(
            payload,
            secret or settings.AUTH_JWT_SECRET,
            algorithm=settings.AUTH_JWT_ALGORITHMS[0],
        )

    return _make


# =============================================================================
# Neo4j Doubles
# =============================================================================


@pytest.fixture
def make_neo4j_result():
    """Factory for driver result doubles (see make_result)."""
    return make_result


@pytest.fixture
def mock_neo4j_service():
    """Create a mock Neo4j service with session context manager.

    Returns the service, the session yielded by ``service.session()``, and the
    transaction that ``execute_write`` hands to its work function.
    """
    service = MagicMock()
    session = AsyncMock()
    tx = AsyncMock()

    async_session_cm = AsyncMock()
    async_session_cm.__aenter__ = AsyncMock(return_value=session)
    async_session_cm.__aexit__ = AsyncMock(return_value=None)
    service.session = MagicMock(return_value=async_session_cm)

    async def _execute_write(work, *args, **kwargs):
        return await work(tx, *args, **kwargs)

    session.execute_write = AsyncMock(side_effect=_execute_write)

    return service, session, tx
