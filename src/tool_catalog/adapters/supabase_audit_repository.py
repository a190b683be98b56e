"""Supabase repository for audit records."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from supabase import Client

from tool_catalog.domain.audit import (
    ActorSnapshot,
    AuditAction,
    AuditEntry,
    AuditQuery,
    AuditRecord,
    RequestContext,
    SubjectSnapshot,
)
from tool_catalog.services.audit import AuditRepository

# Characters with meaning inside a PostgREST or() filter.
_FILTER_SYNTAX = str.maketrans("", "", ",()")


@dataclass
class SupabaseAuditRepository(AuditRepository):
    """Supabase-backed audit repository. Rows are only inserted or deleted."""

    client: Client

    def create_record(self, entry: AuditEntry) -> AuditRecord:
        """Insert an audit row and return it."""
        response = (
            self.client.table("audit_logs")
            .insert(
                {
                    "user_id": entry.actor.user_id,
                    "user_name": entry.actor.user_name,
                    "user_role": entry.actor.user_role,
                    "action": entry.action.value,
                    "tool_id": entry.subject.tool_id,
                    "tool_name": entry.subject.tool_name,
                    "tool_url": entry.subject.tool_url,
                    "metadata": entry.metadata,
                    "ip_address": entry.request.ip_address,
                    "user_agent": entry.request.user_agent,
                    "created_at": entry.created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create audit record")
        return _parse_record(response.data[0])

    def list_records(
        self, query: AuditQuery, limit: int, offset: int
    ) -> tuple[list[AuditRecord], int]:
        """Return a page of matching records newest first, and the total."""
        request = self.client.table("audit_logs").select("*", count="exact")
        if query.action is not None:
            request = request.eq("action", query.action.value)
        if query.user_id is not None:
            request = request.eq("user_id", query.user_id)
        if query.search:
            needle = query.search.translate(_FILTER_SYNTAX)
            request = request.or_(
                f"user_name.ilike.%{needle}%,tool_name.ilike.%{needle}%"
            )
        if query.date_from is not None:
            request = request.gte("created_at", query.date_from.isoformat())
        if query.date_to is not None:
            request = request.lt(
                "created_at", (query.date_to + timedelta(days=1)).isoformat()
            )
        response = (
            request.order("created_at", desc=True)
            .order("id", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        records = [_parse_record(row) for row in response.data or []]
        total = response.count if response.count is not None else len(records)
        return records, total

    def get_record(self, record_id: int) -> AuditRecord | None:
        """Return an audit record by id, if present."""
        response = (
            self.client.table("audit_logs")
            .select("*")
            .eq("id", record_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_record(response.data[0])

    def delete_record(self, record_id: int) -> None:
        """Remove an audit row."""
        self.client.table("audit_logs").delete().eq("id", record_id).execute()


def _parse_record(row: dict[str, object]) -> AuditRecord:
    """Parse an audit row into a domain model."""
    tool_id = row.get("tool_id")
    user_id = row.get("user_id")
    return AuditRecord(
        id=int(row["id"]),
        actor=ActorSnapshot(
            user_id=int(user_id) if user_id is not None else None,
            user_name=str(row.get("user_name", "")),
            user_role=str(row.get("user_role") or ""),
        ),
        action=AuditAction(row["action"]),
        subject=SubjectSnapshot(
            tool_id=int(tool_id) if tool_id is not None else None,
            tool_name=str(row.get("tool_name", "")),
            tool_url=row.get("tool_url"),
        ),
        metadata=row.get("metadata"),
        request=RequestContext(
            ip_address=row.get("ip_address"),
            user_agent=row.get("user_agent"),
        ),
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
