"""Owner-only audit trail endpoints."""

from __future__ import annotations

from datetime import date  # noqa: TC003

from fastapi import APIRouter, Depends, Query, Request

from tool_catalog.api.deps import current_actor, get_container
from tool_catalog.api.serializers import serialize_audit_page
from tool_catalog.domain.audit import AuditAction, AuditQuery
from tool_catalog.domain.roles import Actor  # noqa: TC001

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("")
def list_audit_logs(  # noqa: PLR0913
    request: Request,
    action: AuditAction | None = None,
    search: str | None = None,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    user_id: int | None = None,
    page: int = 1,
    actor: Actor | None = Depends(current_actor),
) -> dict[str, object]:
    """Browse the audit trail, newest first."""
    query = AuditQuery(
        action=action,
        search=search,
        date_from=date_from,
        date_to=date_to,
        user_id=user_id,
        page=page,
    )
    result = get_container(request).catalog_service.list_audit(actor, query)
    return serialize_audit_page(result)


@router.delete("/{record_id}")
def delete_audit_log(
    record_id: int, request: Request, actor: Actor | None = Depends(current_actor)
) -> dict[str, str]:
    """Permanently remove one audit record."""
    get_container(request).catalog_service.delete_audit(actor, record_id)
    return {"message": "Audit log entry deleted."}
