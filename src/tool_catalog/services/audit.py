"""Append-only audit trail for tool mutations."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from tool_catalog.domain.audit import (
    ActorSnapshot,
    AuditAction,
    AuditEntry,
    AuditPage,
    AuditQuery,
    AuditRecord,
    RequestContext,
    SubjectSnapshot,
)
from tool_catalog.domain.errors import NotFound
from tool_catalog.domain.roles import Actor
from tool_catalog.domain.tools import TRACKED_FIELDS, Tool, ToolFields
from tool_catalog.services.authorization import Action, authorize

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_PAGE_SIZE = 30


class AuditRepository(Protocol):
    """Persistence interface for audit records."""

    def create_record(self, entry: AuditEntry) -> AuditRecord:
        """Insert a record and return it with its id."""

    def list_records(
        self, query: AuditQuery, limit: int, offset: int
    ) -> tuple[list[AuditRecord], int]:
        """Return one page of matching records newest first, and the total."""

    def get_record(self, record_id: int) -> AuditRecord | None:
        """Return a record by id, if present."""

    def delete_record(self, record_id: int) -> None:
        """Remove a record entirely."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def snapshot_actor(actor: Actor) -> ActorSnapshot:
    return ActorSnapshot(
        user_id=actor.id, user_name=actor.name, user_role=actor.role.value
    )


def snapshot_subject(tool: Tool) -> SubjectSnapshot:
    return SubjectSnapshot(tool_id=tool.id, tool_name=tool.name, tool_url=tool.url)


def _render(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def diff_fields(
    before: ToolFields, after: ToolFields
) -> dict[str, dict[str, str | None]]:
    """Return ``{field: {"old", "new"}}`` for tracked fields that changed."""
    old_values = before.as_dict()
    new_values = after.as_dict()
    changes: dict[str, dict[str, str | None]] = {}
    for name in TRACKED_FIELDS:
        if old_values[name] != new_values[name]:
            changes[name] = {
                "old": _render(old_values[name]),
                "new": _render(new_values[name]),
            }
    return changes


@dataclass
class AuditService:
    """Service for recording and browsing audit records."""

    repository: AuditRepository
    clock: Callable[[], datetime] = _utcnow
    page_size: int = DEFAULT_AUDIT_PAGE_SIZE

    def record(  # noqa: PLR0913
        self,
        actor: Actor,
        action: AuditAction,
        subject: SubjectSnapshot,
        metadata: dict[str, object] | None = None,
        request: RequestContext | None = None,
    ) -> AuditRecord:
        """Persist an audit record with actor and subject captured by value."""
        entry = AuditEntry(
            actor=snapshot_actor(actor),
            action=action,
            subject=subject,
            metadata=metadata or None,
            request=request or RequestContext(),
            created_at=self.clock(),
        )
        record = self.repository.create_record(entry)
        logger.info(
            "Audit %s tool=%s by user=%s", action, subject.tool_name, actor.id
        )
        return record

    def record_update(  # noqa: PLR0913
        self,
        actor: Actor,
        before: ToolFields,
        written: dict[str, str | None],
        subject: SubjectSnapshot,
        request: RequestContext | None = None,
    ) -> AuditRecord:
        """Record an update with the columns this write changed.

        Columns changed concurrently by someone else are not attributed here.
        """
        changes = diff_fields(before, replace(before, **written))
        return self.record(
            actor,
            AuditAction.UPDATED,
            subject,
            metadata=dict(changes),
            request=request,
        )

    def record_deletion(
        self,
        actor: Actor,
        subject: SubjectSnapshot,
        request: RequestContext | None = None,
    ) -> AuditRecord:
        """Record a deletion as a dead reference that keeps the snapshot name."""
        dead = SubjectSnapshot(
            tool_id=None, tool_name=subject.tool_name, tool_url=subject.tool_url
        )
        return self.record(
            actor,
            AuditAction.DELETED,
            dead,
            metadata={"deleted_tool_id": subject.tool_id},
            request=request,
        )

    def list_records(self, actor: Actor | None, query: AuditQuery) -> AuditPage:
        """Return a page of records for owners, newest first."""
        authorize(actor, Action.AUDIT)
        page = max(query.page, 1)
        records, total = self.repository.list_records(
            query, limit=self.page_size, offset=(page - 1) * self.page_size
        )
        last_page = max(math.ceil(total / self.page_size), 1)
        return AuditPage(records=records, total=total, page=page, last_page=last_page)

    def purge(self, actor: Actor | None, record_id: int) -> None:
        """Delete a record. The purge itself is intentionally not audited."""
        authorize(actor, Action.AUDIT)
        if self.repository.get_record(record_id) is None:
            raise NotFound("Audit record", record_id)
        self.repository.delete_record(record_id)
        logger.info("Purged audit record %s", record_id)

    def discard(self, record_id: int) -> None:
        """Drop a record written by a mutation that was rolled back."""
        self.repository.delete_record(record_id)
