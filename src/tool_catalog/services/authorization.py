"""Authorization decisions for catalog operations."""

from dataclasses import dataclass
from enum import StrEnum

from tool_catalog.domain.errors import Forbidden, Unauthenticated, ValidationFailed
from tool_catalog.domain.roles import Actor
from tool_catalog.domain.tools import Tool, ToolStatus

STATUS_ALL = "all"


class Action(StrEnum):
    """Operations the guard can be asked about."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    MODERATE = "moderate"
    DELETE = "delete"
    RATE = "rate"
    AUDIT = "audit"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


_AUTHENTICATED_ACTIONS = {Action.CREATE, Action.UPDATE, Action.RATE}
_ELEVATED_ACTIONS = {Action.MODERATE, Action.AUDIT}


def decide(
    actor: Actor | None, action: Action, subject: Tool | None = None
) -> Decision:
    """Decide whether ``actor`` may perform ``action`` on ``subject``.

    Rules are evaluated in order and the first match wins. ``subject`` is
    only consulted for reads and deletes; a read without a subject is a
    listing, which is always narrowed to the statuses the actor may see.
    """
    if actor is None:
        if action is Action.READ and (
            subject is None or subject.status is ToolStatus.APPROVED
        ):
            return Decision.allow()
        return Decision.deny("authentication required")

    if action in _ELEVATED_ACTIONS:
        if actor.is_elevated():
            return Decision.allow()
        return Decision.deny(f"{action} requires the owner role")

    if action is Action.DELETE:
        if actor.is_elevated():
            return Decision.allow()
        if subject is not None and subject.created_by == actor.id:
            return Decision.allow()
        return Decision.deny("only the author or an owner can delete this tool")

    if action in _AUTHENTICATED_ACTIONS:
        return Decision.allow()

    if action is Action.READ:
        if subject is None or subject.status is ToolStatus.APPROVED:
            return Decision.allow()
        if actor.is_elevated():
            return Decision.allow()
        return Decision.deny("tool is not approved")

    return Decision.deny(f"unknown action {action}")


def authorize(
    actor: Actor | None, action: Action, subject: Tool | None = None
) -> None:
    """Raise ``Unauthenticated`` or ``Forbidden`` unless the action is allowed."""
    decision = decide(actor, action, subject)
    if decision.allowed:
        return
    if actor is None:
        raise Unauthenticated()
    raise Forbidden(decision.reason or "Forbidden.")


def visible_statuses(actor: Actor | None, requested: str | None) -> set[ToolStatus]:
    """Resolve which lifecycle states a listing may include."""
    if not requested or actor is None or not actor.is_elevated():
        return {ToolStatus.APPROVED}
    if requested == STATUS_ALL:
        return set(ToolStatus)
    try:
        return {ToolStatus(requested)}
    except ValueError as exc:
        raise ValidationFailed({"status": f"unknown status {requested!r}"}) from exc
