"""
Tenant-scoped Neo4j query execution.

Neo4j has no row-level security, so every read and write of story-graph data
goes through this module. It guarantees that:

- the ``tenant_id`` query parameter (and its ``userId`` alias) always equals
  the caller's own user id, whatever the caller passed in ``params``;
- ownership checks report "belongs to someone else" and "does not exist"
  identically;
- exactly one session is acquired per call and always released.

Query templates must filter (and, when creating, stamp) nodes with
``tenant_id: $tenant_id``.

Example:
    from lorekeeper.services.neo4j_tenant import scoped_read, scoped_write

    await scoped_write(
        "CREATE (c:Character {id: $id, tenant_id: $tenant_id, name: $name}) RETURN c",
        {"id": "c1", "name": "Hero"},
        auth_context,
    )
    characters = await scoped_read(
        "MATCH (c:Character {tenant_id: $tenant_id}) RETURN c",
        {},
        auth_context,
    )
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional, Union

from neo4j import READ_ACCESS, AsyncManagedTransaction
from neo4j.graph import Entity

from lorekeeper.core.context import get_current_auth_context
from lorekeeper.schemas.auth import AuthContext
from lorekeeper.services.neo4j import Neo4jService, get_neo4j_service

logger = logging.getLogger(__name__)

TENANT_PARAM = "tenant_id"

# Every parameter name a template may use to bind the caller's tenant. All of
# them are overwritten, so no spelling can carry a caller-supplied value.
RESERVED_TENANT_PARAMS = (TENANT_PARAM, "userId")

UNAUTHORIZED_MESSAGE = "Unauthorized: no valid session or user id"

OWNERSHIP_QUERY = """
MATCH (n:{label} {{id: $node_id, tenant_id: $tenant_id}})
RETURN count(n) > 0 AS exists
"""

ERASE_TENANT_QUERY = """
MATCH (n {tenant_id: $tenant_id})
DETACH DELETE n
RETURN count(n) AS deleted_count
"""

# A normalized value is either the property map of a graph entity or the raw
# scalar/collection the driver returned. A normalized record is one such value
# (single-column results) or a mapping of column name to value.
NormalizedValue = Any
NormalizedRecord = Union[NormalizedValue, dict[str, NormalizedValue]]

AuthContextLike = Union[AuthContext, Mapping[str, Any], None]


class UnauthorizedError(Exception):
    """Raised when no tenant identity can be resolved.

    The message never varies, so callers cannot tell a missing session from
    a malformed or partially populated one.
    """

    def __init__(self) -> None:
        super().__init__(UNAUTHORIZED_MESSAGE)


class NodeLabel(str, Enum):
    """Node labels that may be spliced into ownership queries."""

    CHARACTER = "Character"
    LOCATION = "Location"
    MOMENT = "Moment"
    TEST_NODE = "TestNode"


class OwnershipStatus(str, Enum):
    """Outcome of an ownership check.

    UNKNOWN means the database could not answer; callers that only need a
    yes/no gate use verify_ownership, which treats it as not owned.
    """

    OWNED = "owned"
    NOT_OWNED = "not_owned"
    UNKNOWN = "unknown"


# =============================================================================
# Identity extraction
# =============================================================================


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_tenant_id(auth_context: AuthContextLike) -> str:
    """Return the tenant id carried by an AuthContext.

    Args:
        auth_context: Resolved session context, a mapping of the same shape,
            or None

    Returns:
        The non-empty user id, which is the caller's tenant id

    Raises:
        UnauthorizedError: If the context, its user, or the user id is missing
    """
    user_id = _field(_field(auth_context, "user"), "id")
    if not isinstance(user_id, str) or not user_id.strip():
        raise UnauthorizedError()
    return user_id


async def resolve_current_tenant_id() -> str:
    """Return the tenant id of the request currently being served.

    Raises:
        UnauthorizedError: If the ambient AuthContext has no usable user id
    """
    return extract_tenant_id(get_current_auth_context())


async def _resolve_tenant_id(auth_context: AuthContextLike) -> str:
    if auth_context is None:
        return await resolve_current_tenant_id()
    return extract_tenant_id(auth_context)


def build_scoped_params(
    params: Optional[Mapping[str, Any]],
    tenant_id: str,
) -> dict[str, Any]:
    """Copy caller parameters, then force every reserved tenant parameter.

    The copy must happen before the assignment: reversing the two steps
    would let a caller-supplied ``tenant_id`` or ``userId`` win.
    """
    effective: dict[str, Any] = dict(params or {})
    for name in RESERVED_TENANT_PARAMS:
        if name in effective and effective[name] != tenant_id:
            logger.warning(
                "Discarded caller-supplied tenant query parameter",
                extra={"param": name},
            )
        effective[name] = tenant_id
    return effective


def coerce_label(label: Union[NodeLabel, str]) -> NodeLabel:
    """Map a label name onto the closed NodeLabel set.

    Raises:
        ValueError: If the label is not a known node label
    """
    try:
        return NodeLabel(label)
    except ValueError:
        raise ValueError(f"Unsupported node label: {label!r}") from None


# =============================================================================
# Record normalization
# =============================================================================


def normalize_value(value: Any) -> NormalizedValue:
    """Unwrap a graph entity to its properties; pass anything else through."""
    if isinstance(value, Entity):
        return dict(value.items())
    return value


def normalize_record(record: Any) -> NormalizedRecord:
    """Flatten a driver record.

    A single column unwraps to its value; several columns become a mapping
    of column name to value.
    """
    keys = list(record.keys())
    if len(keys) == 1:
        return normalize_value(record[keys[0]])
    return {key: normalize_value(record[key]) for key in keys}


# =============================================================================
# Service
# =============================================================================


class TenantIsolationService:
    """Executes Cypher with the caller's tenant id forced into parameters.

    Wraps a Neo4jService. Holds no per-call state, so one instance can be
    shared by concurrent requests.
    """

    def __init__(self, service: Neo4jService):
        self._service = service

    @property
    def service(self) -> Neo4jService:
        """Get the underlying Neo4jService instance."""
        return self._service

    async def scoped_read(
        self,
        query: str,
        params: Optional[Mapping[str, Any]] = None,
        auth_context: AuthContextLike = None,
    ) -> list[NormalizedRecord]:
        """Run a read query within the caller's tenant.

        Args:
            query: Cypher template filtering on ``$tenant_id``
            params: Additional parameters; ``tenant_id`` and ``userId`` are overwritten
            auth_context: Explicit context; the ambient one is used when omitted

        Returns:
            Normalized records

        Raises:
            UnauthorizedError: Before any database contact, if no tenant resolves
            neo4j.exceptions.Neo4jError: Database failures, re-raised unchanged
        """
        tenant_id = await _resolve_tenant_id(auth_context)
        effective = build_scoped_params(params, tenant_id)

        try:
            async with self._service.session(access_mode=READ_ACCESS) as session:
                result = await session.run(query, effective)
                records = [record async for record in result]
        except Exception as e:
            logger.error(
                "Neo4j query execution failed",
                extra={"error_class": type(e).__name__},
            )
            raise

        return [normalize_record(record) for record in records]

    async def scoped_write(
        self,
        query: str,
        params: Optional[Mapping[str, Any]] = None,
        auth_context: AuthContextLike = None,
    ) -> list[NormalizedRecord]:
        """Run a write query within the caller's tenant in a managed transaction.

        The transaction commits as a whole or not at all; transient failures
        are retried by the driver within its configured retry budget.

        Args:
            query: Cypher template filtering on or stamping ``$tenant_id``
            params: Additional parameters; ``tenant_id`` and ``userId`` are overwritten
            auth_context: Explicit context; the ambient one is used when omitted

        Returns:
            Normalized records returned by the query

        Raises:
            UnauthorizedError: Before any database contact, if no tenant resolves
            neo4j.exceptions.Neo4jError: Database failures, re-raised unchanged
        """
        tenant_id = await _resolve_tenant_id(auth_context)
        effective = build_scoped_params(params, tenant_id)

        async def _work(tx: AsyncManagedTransaction) -> list[Any]:
            result = await tx.run(query, effective)
            return [record async for record in result]

        try:
            async with self._service.session() as session:
                records = await session.execute_write(_work)
        except Exception as e:
            logger.error(
                "Neo4j write transaction failed",
                extra={"error_class": type(e).__name__},
            )
            raise

        return [normalize_record(record) for record in records]

    async def check_ownership(
        self,
        label: Union[NodeLabel, str],
        node_id: str,
        auth_context: AuthContextLike = None,
    ) -> OwnershipStatus:
        """Check whether the caller's tenant owns a node.

        Args:
            label: Node label, restricted to NodeLabel
            node_id: Value of the node's ``id`` property
            auth_context: Explicit context; the ambient one is used when omitted

        Returns:
            OWNED, NOT_OWNED (missing or foreign node), or UNKNOWN when the
            query failed

        Raises:
            ValueError: For labels outside NodeLabel
            UnauthorizedError: If no tenant resolves
        """
        node_label = coerce_label(label)
        tenant_id = await _resolve_tenant_id(auth_context)
        query = OWNERSHIP_QUERY.format(label=node_label.value)

        try:
            async with self._service.session(access_mode=READ_ACCESS) as session:
                result = await session.run(
                    query, {"node_id": node_id, TENANT_PARAM: tenant_id}
                )
                record = await result.single()
        except Exception as e:
            logger.error(
                "Node ownership verification failed",
                extra={"label": node_label.value, "error_class": type(e).__name__},
            )
            return OwnershipStatus.UNKNOWN

        if record is not None and record["exists"]:
            return OwnershipStatus.OWNED
        return OwnershipStatus.NOT_OWNED

    async def verify_ownership(
        self,
        label: Union[NodeLabel, str],
        node_id: str,
        auth_context: AuthContextLike = None,
    ) -> bool:
        """Return True only if the caller's tenant owns the node.

        Query failures yield False rather than raising.
        """
        status = await self.check_ownership(label, node_id, auth_context)
        return status is OwnershipStatus.OWNED

    async def erase_tenant_data(self, tenant_id: str) -> int:
        """Delete every node (and attached relationship) of a tenant.

        WARNING: This is destructive and cannot be undone.

        The tenant id is taken as given; account-deletion flows may run
        outside a request, so no AuthContext is consulted.

        Args:
            tenant_id: Tenant whose nodes are removed, across all labels

        Returns:
            Count of deleted nodes

        Raises:
            ValueError: If tenant_id is empty
            neo4j.exceptions.Neo4jError: Database failures, re-raised unchanged
        """
        if not isinstance(tenant_id, str) or not tenant_id.strip():
            raise ValueError("tenant_id must be a non-empty string")

        async def _work(tx: AsyncManagedTransaction) -> int:
            result = await tx.run(ERASE_TENANT_QUERY, {TENANT_PARAM: tenant_id})
            record = await result.single()
            return record["deleted_count"] if record else 0

        try:
            async with self._service.session() as session:
                deleted = await session.execute_write(_work)
        except Exception as e:
            logger.error(
                "Tenant data erasure failed",
                extra={"error_class": type(e).__name__},
            )
            raise

        logger.info("Tenant graph data erased", extra={"deleted_count": deleted})
        return deleted


# =============================================================================
# Process-wide API
# =============================================================================


async def get_tenant_isolation_service() -> TenantIsolationService:
    """Get a TenantIsolationService wrapping the global Neo4jService."""
    service = await get_neo4j_service()
    return TenantIsolationService(service)


async def scoped_read(
    query: str,
    params: Optional[Mapping[str, Any]] = None,
    auth_context: AuthContextLike = None,
) -> list[NormalizedRecord]:
    """Run a tenant-scoped read on the global Neo4j service."""
    # Fail closed before the driver is touched
    await _resolve_tenant_id(auth_context)
    service = await get_tenant_isolation_service()
    return await service.scoped_read(query, params, auth_context)


async def scoped_write(
    query: str,
    params: Optional[Mapping[str, Any]] = None,
    auth_context: AuthContextLike = None,
) -> list[NormalizedRecord]:
    """Run a tenant-scoped write on the global Neo4j service."""
    await _resolve_tenant_id(auth_context)
    service = await get_tenant_isolation_service()
    return await service.scoped_write(query, params, auth_context)


async def verify_ownership(
    label: Union[NodeLabel, str],
    node_id: str,
    auth_context: AuthContextLike = None,
) -> bool:
    """Check node ownership on the global Neo4j service."""
    coerce_label(label)
    await _resolve_tenant_id(auth_context)
    try:
        service = await get_tenant_isolation_service()
    except Exception as e:
        logger.error(
            "Node ownership verification failed",
            extra={"error_class": type(e).__name__},
        )
        return False
    return await service.verify_ownership(label, node_id, auth_context)


async def erase_tenant_data(tenant_id: str) -> int:
    """Erase a tenant's graph data on the global Neo4j service."""
    service = await get_tenant_isolation_service()
    return await service.erase_tenant_data(tenant_id)
