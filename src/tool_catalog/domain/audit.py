"""Audit trail domain models."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum


class AuditAction(StrEnum):
    """Kinds of actions recorded in the audit trail."""

    CREATED = "created"
    UPDATED = "updated"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"


@dataclass(frozen=True)
class ActorSnapshot:
    """Actor identity captured by value at write time."""

    user_id: int | None
    user_name: str
    user_role: str


@dataclass(frozen=True)
class SubjectSnapshot:
    """Tool identity captured by value; ``tool_id`` is None once deleted."""

    tool_id: int | None
    tool_name: str
    tool_url: str | None = None


@dataclass(frozen=True)
class RequestContext:
    """Provenance of the request that produced a record."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class AuditEntry:
    """A record that has not been persisted yet."""

    actor: ActorSnapshot
    action: AuditAction
    subject: SubjectSnapshot
    metadata: dict[str, object] | None
    request: RequestContext
    created_at: datetime


@dataclass(frozen=True)
class AuditRecord:
    """Persisted, immutable audit record."""

    id: int
    actor: ActorSnapshot
    action: AuditAction
    subject: SubjectSnapshot
    metadata: dict[str, object] | None
    request: RequestContext
    created_at: datetime


@dataclass(frozen=True)
class AuditQuery:
    """Filters for browsing the audit trail."""

    action: AuditAction | None = None
    search: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    user_id: int | None = None
    page: int = 1


@dataclass(frozen=True)
class AuditPage:
    """A page of audit records, newest first."""

    records: list[AuditRecord]
    total: int
    page: int
    last_page: int
