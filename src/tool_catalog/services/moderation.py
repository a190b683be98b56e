"""Moderation state machine for the tool lifecycle."""

from dataclasses import dataclass

from tool_catalog.domain.errors import Forbidden, InvalidTransition
from tool_catalog.domain.roles import Actor
from tool_catalog.domain.tools import Tool, ToolStatus

MODERATION_TARGETS = frozenset({ToolStatus.APPROVED, ToolStatus.REJECTED})


@dataclass(frozen=True)
class Transition:
    """Result of a moderation request."""

    previous: ToolStatus
    current: ToolStatus

    @property
    def changed(self) -> bool:
        return self.previous is not self.current


class ModerationStateMachine:
    """Lifecycle rules: pending -> approved | rejected, nothing else."""

    def initial_status(self, actor: Actor) -> ToolStatus:
        """Owners publish directly; everyone else waits for review."""
        if actor.is_elevated():
            return ToolStatus.APPROVED
        return ToolStatus.PENDING

    def transition(self, actor: Actor, tool: Tool, target: ToolStatus) -> Transition:
        """Validate a moderation transition.

        The privilege check runs before any state check, so a non-owner gets
        ``Forbidden`` even when the tool is already in the target state.
        """
        if target not in MODERATION_TARGETS:
            raise InvalidTransition(tool.status, target)
        if not actor.is_elevated():
            raise Forbidden("moderation requires the owner role")
        if tool.status is target:
            return Transition(previous=tool.status, current=tool.status)
        if tool.status is not ToolStatus.PENDING:
            raise InvalidTransition(tool.status, target)
        return Transition(previous=tool.status, current=target)
