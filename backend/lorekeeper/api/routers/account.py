"""
Account-level graph data endpoints.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from lorekeeper.api.dependencies.auth import CurrentAuthContext
from lorekeeper.api.dependencies.graph import TenantGraph
from lorekeeper.api.routers.helpers import GRAPH_ERRORS, graph_failure
from lorekeeper.services.neo4j_tenant import extract_tenant_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account", tags=["account"])


class GraphErasureResponse(BaseModel):
    """Result of erasing the caller's story graph."""

    deleted_count: int


@router.delete(
    "/graph-data",
    response_model=GraphErasureResponse,
    summary="Erase all of the caller's graph data",
    description=(
        "Detach-deletes every node owned by the caller, across all labels. "
        "This cannot be undone."
    ),
)
async def erase_graph_data(
    auth: CurrentAuthContext,
    graph: TenantGraph,
) -> GraphErasureResponse:
    tenant_id = extract_tenant_id(auth)

    try:
        deleted = await graph.erase_tenant_data(tenant_id)
    except GRAPH_ERRORS as e:
        raise graph_failure("DELETE /account/graph-data", "Failed to erase graph data", e)

    return GraphErasureResponse(deleted_count=deleted)
