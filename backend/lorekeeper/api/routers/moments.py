"""
Moment API endpoints.

This router provides endpoints for:
- Listing the caller's moments (lightweight, paginated)
- Creating, reading, updating and deleting a moment

Every query runs through the tenant isolation layer. A moment owned by
another user is reported exactly like a moment that does not exist.
"""

import logging
from typing import Any, Literal
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Query, status

from lorekeeper.api.dependencies.auth import CurrentAuthContext
from lorekeeper.api.dependencies.graph import TenantGraph
from lorekeeper.api.routers.helpers import GRAPH_ERRORS, graph_failure, not_found, to_json
from lorekeeper.core.config import settings
from lorekeeper.graph import queries
from lorekeeper.schemas.moments import MOMENT_UPDATABLE_FIELDS, MomentCreate, MomentUpdate
from lorekeeper.services.neo4j_tenant import NodeLabel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/moments", tags=["moments"])


def generate_preview(content: str) -> str:
    """Preview text shown in lists: the start of the content."""
    return content[: settings.MOMENT_PREVIEW_LENGTH]


def _merge_relations(record: dict[str, Any]) -> dict[str, Any]:
    """Fold the collected characters and locations into the moment.

    OPTIONAL MATCH yields ``{id: null, name: null}`` when nothing is linked,
    so entries without an id are dropped.
    """
    moment = dict(record.get("m") or {})
    characters = [c for c in record.get("characters") or [] if c.get("id")]
    locations = [loc for loc in record.get("locations") or [] if loc.get("id")]
    if characters:
        moment["characters"] = characters
    if locations:
        moment["locations"] = locations
    return moment


@router.get(
    "",
    summary="List moments",
    description="Lightweight list of the caller's moments, newest first (content excluded).",
)
async def list_moments(
    auth: CurrentAuthContext,
    graph: TenantGraph,
    limit: int = Query(settings.MOMENT_PAGE_SIZE_DEFAULT, ge=1, le=100, description="Page size"),
    skip: int = Query(0, ge=0, description="Number of moments to skip"),
) -> dict[str, Any]:
    try:
        moments = await graph.scoped_read(
            queries.LIST_MOMENTS, {"limit": limit, "skip": skip}, auth
        )
    except GRAPH_ERRORS as e:
        raise graph_failure("GET /moments", "Failed to fetch moments", e)

    return {"data": to_json(moments)}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create moment",
)
async def create_moment(
    body: MomentCreate,
    auth: CurrentAuthContext,
    graph: TenantGraph,
) -> dict[str, Any]:
    """
    Create a moment owned by the caller.

    Either title or content must be non-blank. When no preview is given it
    is derived from the content.
    """
    if body.is_blank:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either title or content is required",
        )

    content = body.content or ""
    preview = body.preview or (generate_preview(content) if content else "")

    params = {
        "id": str(uuid4()),
        "title": (body.title or "").strip(),
        "content": content,
        "summary": body.summary,
        "preview": preview,
        "timestamp": body.timestamp,
    }

    try:
        result = await graph.scoped_write(queries.CREATE_MOMENT, params, auth)
    except GRAPH_ERRORS as e:
        raise graph_failure("POST /moments", "Failed to create moment", e)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create moment",
        )

    return {"data": to_json(result[0])}


@router.get(
    "/{moment_id}",
    summary="Get moment",
    description="Full mode includes content and linked characters and locations.",
)
async def get_moment(
    moment_id: str,
    auth: CurrentAuthContext,
    graph: TenantGraph,
    fields: Literal["full", "lightweight"] = Query("full", description="Response shape"),
) -> dict[str, Any]:
    try:
        if fields == "lightweight":
            result = await graph.scoped_read(
                queries.GET_MOMENT_LIGHTWEIGHT, {"id": moment_id}, auth
            )
        else:
            records = await graph.scoped_read(
                queries.GET_MOMENT_FULL, {"id": moment_id}, auth
            )
            result = [_merge_relations(record) for record in records]
    except GRAPH_ERRORS as e:
        raise graph_failure("GET /moments/{id}", "Failed to fetch moment", e)

    if not result:
        raise not_found("Moment not found")

    return {"data": to_json(result[0])}


@router.patch(
    "/{moment_id}",
    summary="Update moment",
)
async def update_moment(
    moment_id: str,
    body: MomentUpdate,
    auth: CurrentAuthContext,
    graph: TenantGraph,
) -> dict[str, Any]:
    """
    Update the fields present in the body.

    Ownership is checked first. When content changes without an explicit
    preview, the preview is regenerated. ``updated_at`` is always bumped.
    """
    if not await graph.verify_ownership(NodeLabel.MOMENT, moment_id, auth):
        raise not_found("Moment not found or unauthorized")

    provided = body.model_dump(exclude_unset=True)
    if "content" in provided and "preview" not in provided:
        provided["preview"] = generate_preview(provided["content"] or "")

    assignments = [
        f"m.{name} = ${name}" for name in MOMENT_UPDATABLE_FIELDS if name in provided
    ]
    if not assignments:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update",
        )
    assignments.append("m.updated_at = datetime()")

    params = {name: provided[name] for name in MOMENT_UPDATABLE_FIELDS if name in provided}
    params["id"] = moment_id
    query = queries.UPDATE_MOMENT.format(assignments=", ".join(assignments))

    try:
        result = await graph.scoped_write(query, params, auth)
    except GRAPH_ERRORS as e:
        raise graph_failure("PATCH /moments/{id}", "Failed to update moment", e)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update moment",
        )

    return {"data": to_json(result[0])}


@router.delete(
    "/{moment_id}",
    summary="Delete moment",
    description="Deletes the moment and all of its relationships.",
)
async def delete_moment(
    moment_id: str,
    auth: CurrentAuthContext,
    graph: TenantGraph,
) -> dict[str, Any]:
    if not await graph.verify_ownership(NodeLabel.MOMENT, moment_id, auth):
        raise not_found("Moment not found or unauthorized")

    try:
        await graph.scoped_write(queries.DELETE_MOMENT, {"id": moment_id}, auth)
    except GRAPH_ERRORS as e:
        raise graph_failure("DELETE /moments/{id}", "Failed to delete moment", e)

    return {"success": True, "message": "Moment deleted"}
