"""Catalog orchestration: authorize, mutate, audit, invalidate."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from tool_catalog.domain.audit import AuditAction, AuditPage, AuditQuery, RequestContext
from tool_catalog.domain.errors import (
    Conflict,
    InvalidTransition,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)
from tool_catalog.domain.roles import Actor, Role
from tool_catalog.domain.tools import (
    Example,
    RatingResult,
    RatingSummary,
    Screenshot,
    Tool,
    ToolFields,
    ToolFilters,
    ToolPage,
    ToolRelations,
    ToolStatus,
    round_average,
)
from tool_catalog.services.audit import AuditService, snapshot_subject
from tool_catalog.services.authorization import Action, authorize, visible_statuses
from tool_catalog.services.cache import CacheCoordinator, CatalogEvent, View
from tool_catalog.services.moderation import ModerationStateMachine
from tool_catalog.services.taxonomy import TaxonomyService
from tool_catalog.services.validation import (
    validate_field_changes,
    validate_new_fields,
    validate_rating,
    validate_relations,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 15
MAX_WRITE_ATTEMPTS = 3


class ToolRepository(Protocol):
    """Persistence interface for tools and the sub-records they own."""

    def create_tool(
        self,
        fields: ToolFields,
        status: ToolStatus,
        created_by: int,
        created_at: datetime,
    ) -> int:
        """Insert a tool row and return its id."""

    def get_tool(self, tool_id: int) -> Tool | None:
        """Return a fully hydrated tool, if present."""

    def list_tools(
        self,
        statuses: set[ToolStatus],
        filters: ToolFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[Tool], int]:
        """Return one page of hydrated tools newest first, and the total."""

    def update_fields(
        self,
        tool_id: int,
        changes: dict[str, str | None],
        expected: dict[str, str | None],
    ) -> bool:
        """Write ``changes`` only while each ``expected`` column still matches.

        Returns False when the row is gone or a column moved on.
        """

    def set_status(
        self, tool_id: int, status: ToolStatus, expected: ToolStatus | None = None
    ) -> bool:
        """Change the lifecycle state, optionally only from ``expected``."""

    def delete_tool(self, tool_id: int) -> None:
        """Delete a tool with its owned sub-records and ratings."""

    def replace_categories(self, tool_id: int, category_ids: list[int]) -> None:
        """Replace the category links of a tool."""

    def replace_tags(self, tool_id: int, tag_ids: list[int]) -> None:
        """Replace the tag links of a tool."""

    def replace_roles(self, tool_id: int, roles: list[Role]) -> None:
        """Replace the recommended roles of a tool."""

    def replace_screenshots(self, tool_id: int, screenshots: list[Screenshot]) -> None:
        """Delete all screenshots of a tool and insert the given ones."""

    def replace_examples(self, tool_id: int, examples: list[Example]) -> None:
        """Delete all examples of a tool and insert the given ones."""


class RatingRepository(Protocol):
    """Persistence interface for per-rater ratings."""

    def upsert_rating(self, tool_id: int, user_id: int, rating: int) -> None:
        """Insert or replace the rating keyed by (tool_id, user_id)."""

    def summarize(self, tool_id: int) -> RatingSummary:
        """Return the rating average and count for a tool."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CatalogService:
    """Application service for every catalog mutation and read.

    Each mutation runs authorize -> validate -> mutate -> audit -> invalidate.
    State and audit succeed together or the mutation is undone; cache
    invalidation is best-effort and never undoes anything.
    """

    repository: ToolRepository
    ratings: RatingRepository
    taxonomy: TaxonomyService
    audit: AuditService
    cache: CacheCoordinator
    moderation: ModerationStateMachine
    clock: Callable[[], datetime] = _utcnow
    page_size: int = DEFAULT_PAGE_SIZE

    def create(
        self,
        actor: Actor | None,
        fields: dict[str, object],
        relations: ToolRelations | None = None,
        request: RequestContext | None = None,
    ) -> Tool:
        """Create a tool; owners publish directly, others await moderation."""
        authorize(actor, Action.CREATE)
        relations = relations or ToolRelations()
        tool_fields = validate_new_fields(fields)
        self._validate_relations(relations)
        tool_id = self.repository.create_tool(
            fields=tool_fields,
            status=self.moderation.initial_status(actor),
            created_by=actor.id,
            created_at=self.clock(),
        )
        try:
            tags_created = self._apply_relations(tool_id, relations)
            tool = self._require(tool_id)
            self.audit.record(
                actor, AuditAction.CREATED, snapshot_subject(tool), request=request
            )
        except Exception:
            logger.exception("Rolling back creation of tool %s", tool_id)
            self.repository.delete_tool(tool_id)
            raise
        logger.info("Tool %s created as %s by user=%s", tool_id, tool.status, actor.id)
        events = [CatalogEvent.TOOL_CREATED]
        if tags_created:
            events.append(CatalogEvent.TAG_CREATED)
        self.cache.notify(*events)
        return tool

    def update(
        self,
        actor: Actor | None,
        tool_id: int,
        fields: dict[str, object] | None = None,
        relations: ToolRelations | None = None,
        request: RequestContext | None = None,
    ) -> Tool:
        """Edit scalar fields and relations; the lifecycle state is kept."""
        authorize(actor, Action.UPDATE)
        relations = relations or ToolRelations()
        changes = validate_field_changes(fields or {})
        self._validate_relations(relations)
        before, written = self._write_fields(tool_id, changes)
        try:
            tags_created = self._apply_relations(tool_id, relations)
            after = self._require(tool_id)
            self.audit.record_update(
                actor,
                before.fields,
                written,
                snapshot_subject(after),
                request=request,
            )
        except Exception:
            logger.exception("Restoring tool %s after failed update", tool_id)
            self._restore(before, written, relations)
            raise
        logger.info("Tool %s updated by user=%s", tool_id, actor.id)
        events = [CatalogEvent.TOOL_UPDATED]
        if tags_created:
            events.append(CatalogEvent.TAG_CREATED)
        self.cache.notify(*events)
        return after

    def approve(
        self,
        actor: Actor | None,
        tool_id: int,
        request: RequestContext | None = None,
    ) -> Tool:
        """Move a pending tool to approved."""
        return self._moderate(actor, tool_id, ToolStatus.APPROVED, request)

    def reject(
        self,
        actor: Actor | None,
        tool_id: int,
        request: RequestContext | None = None,
    ) -> Tool:
        """Move a pending tool to rejected."""
        return self._moderate(actor, tool_id, ToolStatus.REJECTED, request)

    def delete(
        self,
        actor: Actor | None,
        tool_id: int,
        request: RequestContext | None = None,
    ) -> None:
        """Delete a tool, leaving a dead-reference audit record behind."""
        if actor is None:
            raise Unauthenticated()
        tool = self._require(tool_id)
        authorize(actor, Action.DELETE, tool)
        subject = snapshot_subject(tool)
        record = self.audit.record_deletion(actor, subject, request=request)
        try:
            self.repository.delete_tool(tool_id)
        except Exception:
            logger.exception("Deletion of tool %s failed, discarding audit", tool_id)
            self.audit.discard(record.id)
            raise
        logger.info("Tool %s deleted by user=%s", tool_id, actor.id)
        self.cache.notify(CatalogEvent.TOOL_DELETED)

    def rate(self, actor: Actor | None, tool_id: int, rating: object) -> RatingResult:
        """Record the actor's rating, replacing any earlier one."""
        authorize(actor, Action.RATE)
        value = validate_rating(rating)
        self._require(tool_id)
        self.ratings.upsert_rating(tool_id, actor.id, value)
        summary = self.ratings.summarize(tool_id)
        self.cache.notify(CatalogEvent.TOOL_RATED)
        return RatingResult(
            average=round_average(summary.average),
            count=summary.count,
            user_rating=value,
        )

    def get_tool(self, actor: Actor | None, tool_id: int) -> Tool:
        """Return a single tool the actor may see."""
        tool = self._require(tool_id)
        authorize(actor, Action.READ, tool)
        return tool

    def list_tools(self, actor: Actor | None, filters: ToolFilters) -> ToolPage:
        """List tools; only the unfiltered first page is served from cache."""
        authorize(actor, Action.READ)
        statuses = visible_statuses(actor, filters.status)
        if filters.is_canonical():
            return self.cache.remember(
                View.APPROVED_LISTING,
                lambda: self._load_page({ToolStatus.APPROVED}, filters),
            )
        return self._load_page(statuses, filters)

    def list_audit(self, actor: Actor | None, query: AuditQuery) -> AuditPage:
        return self.audit.list_records(actor, query)

    def delete_audit(self, actor: Actor | None, record_id: int) -> None:
        self.audit.purge(actor, record_id)

    def _moderate(
        self,
        actor: Actor | None,
        tool_id: int,
        target: ToolStatus,
        request: RequestContext | None,
    ) -> Tool:
        authorize(actor, Action.MODERATE)
        tool = self._require(tool_id)
        transition = self.moderation.transition(actor, tool, target)
        if not transition.changed:
            return tool
        action = (
            AuditAction.APPROVED
            if target is ToolStatus.APPROVED
            else AuditAction.REJECTED
        )
        if not self.repository.set_status(
            tool_id, transition.current, expected=transition.previous
        ):
            latest = self._require(tool_id)
            if latest.status is target:
                return latest
            raise InvalidTransition(latest.status, target)
        try:
            after = self._require(tool_id)
            self.audit.record(actor, action, snapshot_subject(after), request=request)
        except Exception:
            logger.exception("Restoring status of tool %s", tool_id)
            self.repository.set_status(
                tool_id, transition.previous, expected=transition.current
            )
            raise
        logger.info("Tool %s %s by user=%s", tool_id, action, actor.id)
        event = (
            CatalogEvent.TOOL_APPROVED
            if target is ToolStatus.APPROVED
            else CatalogEvent.TOOL_REJECTED
        )
        self.cache.notify(event)
        return after

    def _load_page(self, statuses: set[ToolStatus], filters: ToolFilters) -> ToolPage:
        page = max(filters.page, 1)
        items, total = self.repository.list_tools(
            statuses,
            filters,
            limit=self.page_size,
            offset=(page - 1) * self.page_size,
        )
        last_page = max(math.ceil(total / self.page_size), 1)
        return ToolPage(items=items, total=total, page=page, last_page=last_page)

    def _require(self, tool_id: int) -> Tool:
        tool = self.repository.get_tool(tool_id)
        if tool is None:
            raise NotFound("Tool", tool_id)
        return tool

    def _validate_relations(self, relations: ToolRelations) -> None:
        validate_relations(relations)
        if relations.categories:
            missing = self.taxonomy.missing_categories(relations.categories)
            if missing:
                raise ValidationFailed(
                    {"categories": f"unknown ids: {', '.join(map(str, missing))}"}
                )

    def _apply_relations(self, tool_id: int, relations: ToolRelations) -> bool:
        """Apply supplied relation collections; return whether tags were created."""
        tags_created = False
        if relations.categories is not None:
            self.repository.replace_categories(
                tool_id, list(dict.fromkeys(relations.categories))
            )
        if relations.tags is not None:
            tags, tags_created = self.taxonomy.resolve_tags(relations.tags)
            self.repository.replace_tags(tool_id, [tag.id for tag in tags])
        if relations.roles is not None:
            roles = [Role(role) for role in dict.fromkeys(relations.roles)]
            self.repository.replace_roles(tool_id, roles)
        if relations.screenshots is not None:
            screenshots = [
                replace(shot, sort_order=index)
                for index, shot in enumerate(relations.screenshots)
            ]
            self.repository.replace_screenshots(tool_id, screenshots)
        if relations.examples is not None:
            self.repository.replace_examples(tool_id, relations.examples)
        return tags_created

    def _write_fields(
        self, tool_id: int, changes: dict[str, str | None]
    ) -> tuple[Tool, dict[str, str | None]]:
        """Write the columns that differ, guarded on the values they replace.

        Returns the pre-image the write was based on and the columns written.
        A guard miss means someone else wrote one of those columns first, so
        the pre-image is re-read and the write retried.
        """
        for _ in range(MAX_WRITE_ATTEMPTS):
            before = self._require(tool_id)
            current = before.fields.as_dict()
            written = {
                name: value
                for name, value in changes.items()
                if current[name] != value
            }
            if not written:
                return before, written
            expected = {name: current[name] for name in written}
            if self.repository.update_fields(tool_id, written, expected):
                return before, written
            logger.warning("Tool %s changed during update, retrying", tool_id)
        raise Conflict(f"Tool {tool_id} is being edited concurrently; try again.")

    def _restore(
        self,
        before: Tool,
        written: dict[str, str | None],
        relations: ToolRelations,
    ) -> None:
        """Undo a failed update, touching only what the update wrote."""
        if written:
            previous = before.fields.as_dict()
            self.repository.update_fields(
                before.id, {name: previous[name] for name in written}, written
            )
        if relations.categories is not None:
            self.repository.replace_categories(
                before.id, [category.id for category in before.categories]
            )
        if relations.tags is not None:
            self.repository.replace_tags(before.id, [tag.id for tag in before.tags])
        if relations.roles is not None:
            self.repository.replace_roles(before.id, before.roles)
        if relations.screenshots is not None:
            self.repository.replace_screenshots(before.id, before.screenshots)
        if relations.examples is not None:
            self.repository.replace_examples(before.id, before.examples)
