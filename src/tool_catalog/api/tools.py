"""Tool catalog endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from tool_catalog.api.deps import current_actor, get_container, request_context
from tool_catalog.api.models import RatingPayload, ToolPayload
from tool_catalog.api.serializers import serialize_tool, serialize_tool_page
from tool_catalog.domain.audit import RequestContext  # noqa: TC001
from tool_catalog.domain.roles import Actor  # noqa: TC001
from tool_catalog.domain.tools import ToolFilters

router = APIRouter(prefix="/tools", tags=["tools"])


@router.get("")
def list_tools(  # noqa: PLR0913
    request: Request,
    search: str | None = None,
    role: str | None = None,
    category: str | None = None,
    tag: str | None = None,
    status: str | None = None,
    page: int = 1,
    actor: Actor | None = Depends(current_actor),
) -> dict[str, object]:
    """Return a page of tools visible to the caller."""
    filters = ToolFilters(
        search=search,
        role=role,
        category=category,
        tag=tag,
        status=status,
        page=page,
    )
    result = get_container(request).catalog_service.list_tools(actor, filters)
    return serialize_tool_page(result)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_tool(
    payload: ToolPayload,
    request: Request,
    actor: Actor | None = Depends(current_actor),
    context: RequestContext = Depends(request_context),
) -> dict[str, object]:
    """Submit a new tool."""
    tool = get_container(request).catalog_service.create(
        actor, payload.scalar_fields(), payload.relations(), request=context
    )
    return {"data": serialize_tool(tool)}


@router.get("/{tool_id}")
def show_tool(
    tool_id: int, request: Request, actor: Actor | None = Depends(current_actor)
) -> dict[str, object]:
    """Return one tool."""
    tool = get_container(request).catalog_service.get_tool(actor, tool_id)
    return {"data": serialize_tool(tool)}


@router.patch("/{tool_id}")
def update_tool(
    tool_id: int,
    payload: ToolPayload,
    request: Request,
    actor: Actor | None = Depends(current_actor),
    context: RequestContext = Depends(request_context),
) -> dict[str, object]:
    """Edit a tool's fields and relations."""
    tool = get_container(request).catalog_service.update(
        actor,
        tool_id,
        fields=payload.scalar_fields(),
        relations=payload.relations(),
        request=context,
    )
    return {"data": serialize_tool(tool)}


@router.delete("/{tool_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tool(
    tool_id: int,
    request: Request,
    actor: Actor | None = Depends(current_actor),
    context: RequestContext = Depends(request_context),
) -> Response:
    """Delete a tool."""
    get_container(request).catalog_service.delete(actor, tool_id, request=context)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{tool_id}/approve")
def approve_tool(
    tool_id: int,
    request: Request,
    actor: Actor | None = Depends(current_actor),
    context: RequestContext = Depends(request_context),
) -> dict[str, object]:
    """Approve a pending tool."""
    tool = get_container(request).catalog_service.approve(
        actor, tool_id, request=context
    )
    return {"data": serialize_tool(tool)}


@router.post("/{tool_id}/reject")
def reject_tool(
    tool_id: int,
    request: Request,
    actor: Actor | None = Depends(current_actor),
    context: RequestContext = Depends(request_context),
) -> dict[str, object]:
    """Reject a pending tool."""
    tool = get_container(request).catalog_service.reject(
        actor, tool_id, request=context
    )
    return {"data": serialize_tool(tool)}


@router.post("/{tool_id}/rate")
def rate_tool(
    tool_id: int,
    payload: RatingPayload,
    request: Request,
    actor: Actor | None = Depends(current_actor),
) -> dict[str, object]:
    """Upsert the caller's rating and return the refreshed aggregate."""
    result = get_container(request).catalog_service.rate(
        actor, tool_id, payload.rating
    )
    return {
        "average": result.average,
        "count": result.count,
        "user_rating": result.user_rating,
    }
