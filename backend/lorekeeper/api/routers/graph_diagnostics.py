"""
Graph connectivity and isolation diagnostics.

``GET /neo4j/test`` exercises the whole tenant-scoped path: it checks the
connection, creates a TestNode for the caller, reads the caller's TestNodes
back and deletes the node again.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, HTTPException, status

from lorekeeper.api.dependencies.auth import CurrentAuthContext
from lorekeeper.api.dependencies.graph import TenantGraph
from lorekeeper.api.routers.helpers import GRAPH_ERRORS, graph_failure, to_json
from lorekeeper.graph import queries
from lorekeeper.schemas.moments import CharacterCreate
from lorekeeper.services.neo4j_tenant import extract_tenant_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/neo4j", tags=["diagnostics"])


@router.get(
    "/test",
    summary="Run graph isolation self-test",
    description="Creates, lists and deletes a TestNode owned by the caller.",
)
async def run_graph_test(
    auth: CurrentAuthContext,
    graph: TenantGraph,
) -> dict[str, Any]:
    if not await graph.service.verify_connection():
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Neo4j connection failed",
        )

    user = auth.user
    test_id = str(uuid4())

    try:
        created = await graph.scoped_write(
            queries.CREATE_TEST_NODE,
            {"test_id": test_id, "name": f"Test Node for {user.email}"},
            auth,
        )
        own_nodes = await graph.scoped_read(queries.LIST_TEST_NODES, {}, auth)
        await graph.scoped_write(queries.DELETE_TEST_NODE, {"test_id": test_id}, auth)
    except GRAPH_ERRORS as e:
        raise graph_failure("GET /neo4j/test", "Neo4j test failed", e)

    return {
        "success": True,
        "message": "Neo4j integration test passed",
        "data": {
            "user": {
                "id": extract_tenant_id(auth),
                "email": user.email,
                "name": user.name,
            },
            "neo4j_connection": "success",
            "test_node_created": to_json(created[0]) if created else None,
            "user_nodes_count": len(own_nodes),
            "test_completed_at": datetime.now(timezone.utc).isoformat(),
        },
    }


@router.post(
    "/test",
    status_code=status.HTTP_201_CREATED,
    summary="Create a test character",
)
async def create_test_character(
    body: CharacterCreate,
    auth: CurrentAuthContext,
    graph: TenantGraph,
) -> dict[str, Any]:
    params = {
        "id": str(uuid4()),
        "name": body.name,
        "description": body.description or "",
    }

    try:
        result = await graph.scoped_write(queries.CREATE_CHARACTER, params, auth)
    except GRAPH_ERRORS as e:
        raise graph_failure("POST /neo4j/test", "Character creation failed", e)

    return {
        "success": True,
        "message": "Test character created",
        "character": to_json(result[0]) if result else None,
    }


@router.delete(
    "/test",
    summary="Delete the caller's test nodes",
)
async def delete_test_nodes(
    auth: CurrentAuthContext,
    graph: TenantGraph,
) -> dict[str, Any]:
    try:
        result = await graph.scoped_write(queries.DELETE_ALL_TEST_NODES, {}, auth)
    except GRAPH_ERRORS as e:
        raise graph_failure("DELETE /neo4j/test", "Deletion failed", e)

    # Single-column result, so each record is already the bare count
    return {
        "success": True,
        "message": "Test nodes deleted",
        "deleted_count": result[0] if result else 0,
    }
