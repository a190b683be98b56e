"""Request-scoped dependencies: the acting principal and request provenance."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Header, Request

from tool_catalog.domain.audit import RequestContext
from tool_catalog.domain.roles import Actor  # noqa: TC001

if TYPE_CHECKING:
    from tool_catalog.containers import AppContainer


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def current_actor(
    request: Request, x_actor_id: int | None = Header(default=None)
) -> Actor | None:
    """Resolve the principal forwarded by the authenticating proxy."""
    container = get_container(request)
    return container.actor_service.resolve(x_actor_id)


async def request_context(
    request: Request, user_agent: str | None = Header(default=None)
) -> RequestContext:
    """Capture caller address and agent for the audit trail."""
    host = request.client.host if request.client else None
    return RequestContext(ip_address=host, user_agent=user_agent)
