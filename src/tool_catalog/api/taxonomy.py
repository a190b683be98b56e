"""Category and tag endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from tool_catalog.api.deps import current_actor, get_container
from tool_catalog.api.models import CategoryPayload, TagPayload
from tool_catalog.api.serializers import serialize_category, serialize_tag
from tool_catalog.domain.errors import Unauthenticated
from tool_catalog.domain.roles import Actor  # noqa: TC001

router = APIRouter(tags=["taxonomy"])


@router.get("/categories")
def list_categories(
    request: Request, actor: Actor | None = Depends(current_actor)
) -> dict[str, object]:
    """Return all categories."""
    if actor is None:
        raise Unauthenticated()
    categories = get_container(request).taxonomy_service.list_categories()
    return {"data": [serialize_category(category) for category in categories]}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryPayload,
    request: Request,
    actor: Actor | None = Depends(current_actor),
) -> dict[str, object]:
    """Create a category."""
    category = get_container(request).taxonomy_service.create_category(
        actor, payload.name, payload.description
    )
    return {"data": serialize_category(category)}


@router.get("/tags")
def list_tags(
    request: Request, actor: Actor | None = Depends(current_actor)
) -> dict[str, object]:
    """Return all tags."""
    if actor is None:
        raise Unauthenticated()
    tags = get_container(request).taxonomy_service.list_tags()
    return {"data": [serialize_tag(tag) for tag in tags]}


@router.post("/tags", status_code=status.HTTP_201_CREATED)
def create_tag(
    payload: TagPayload,
    request: Request,
    actor: Actor | None = Depends(current_actor),
) -> dict[str, object]:
    """Find or create a tag by slug."""
    tag = get_container(request).taxonomy_service.create_tag(actor, payload.name)
    return {"data": serialize_tag(tag)}
