"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

import pytest

from tool_catalog.config import Settings
from tool_catalog.containers import AppContainer
from tool_catalog.domain.audit import AuditEntry, AuditQuery, AuditRecord
from tool_catalog.domain.roles import Actor, Role
from tool_catalog.domain.tools import (
    Author,
    Category,
    Example,
    RatingSummary,
    Screenshot,
    Tag,
    Tool,
    ToolFields,
    ToolFilters,
    ToolStatus,
    round_average,
)
from tool_catalog.services.actors import ActorRepository, ActorService
from tool_catalog.services.audit import AuditRepository, AuditService
from tool_catalog.services.cache import Cache, CacheCoordinator, InMemoryCache
from tool_catalog.services.catalog import (
    CatalogService,
    RatingRepository,
    ToolRepository,
)
from tool_catalog.services.moderation import ModerationStateMachine
from tool_catalog.services.taxonomy import TaxonomyRepository, TaxonomyService

OWNER = Actor(id=1, name="Olivia Owner", role=Role.OWNER)
ALICE = Actor(id=2, name="Alice Backend", role=Role.BACKEND)
CAROL = Actor(id=3, name="Carol QA", role=Role.QA)


@dataclass
class FakeClock:
    """Deterministic clock that only moves when told to."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class InMemoryActorRepository(ActorRepository):
    """In-memory principals for tests."""

    actors: dict[int, Actor] = field(default_factory=dict)

    def add(self, *actors: Actor) -> None:
        for actor in actors:
            self.actors[actor.id] = actor

    def get_actor(self, actor_id: int) -> Actor | None:
        return self.actors.get(actor_id)


@dataclass
class InMemoryTaxonomyRepository(TaxonomyRepository):
    """In-memory categories and tags for tests."""

    categories: dict[int, Category] = field(default_factory=dict)
    tags: dict[int, Tag] = field(default_factory=dict)
    category_loads: int = 0
    tag_loads: int = 0

    def list_categories(self) -> list[Category]:
        self.category_loads += 1
        return sorted(self.categories.values(), key=lambda item: item.name)

    def get_categories(self, category_ids: list[int]) -> list[Category]:
        return [self.categories[cid] for cid in category_ids if cid in self.categories]

    def find_category_by_name(self, name: str) -> Category | None:
        for category in self.categories.values():
            if category.name == name:
                return category
        return None

    def create_category(
        self, name: str, slug: str, description: str | None, created_by: int
    ) -> Category:
        category = Category(
            id=len(self.categories) + 1, name=name, slug=slug, description=description
        )
        self.categories[category.id] = category
        return category

    def list_tags(self) -> list[Tag]:
        self.tag_loads += 1
        return sorted(self.tags.values(), key=lambda item: item.name)

    def find_tag_by_slug(self, slug: str) -> Tag | None:
        for tag in self.tags.values():
            if tag.slug == slug:
                return tag
        return None

    def create_tag(self, name: str, slug: str) -> Tag:
        tag = Tag(id=len(self.tags) + 1, name=name, slug=slug)
        self.tags[tag.id] = tag
        return tag


@dataclass
class InMemoryRatingRepository(RatingRepository):
    """Ratings keyed by (tool_id, user_id), so re-rating overwrites."""

    ratings: dict[tuple[int, int], int] = field(default_factory=dict)

    def upsert_rating(self, tool_id: int, user_id: int, rating: int) -> None:
        self.ratings[(tool_id, user_id)] = rating

    def summarize(self, tool_id: int) -> RatingSummary:
        values = [v for (tid, _), v in self.ratings.items() if tid == tool_id]
        if not values:
            return RatingSummary(average=0.0, count=0)
        return RatingSummary(average=sum(values) / len(values), count=len(values))

    def delete_for_tool(self, tool_id: int) -> None:
        for key in [key for key in self.ratings if key[0] == tool_id]:
            del self.ratings[key]


@dataclass
class _ToolRow:
    fields: ToolFields
    status: ToolStatus
    created_by: int
    created_at: datetime
    category_ids: list[int] = field(default_factory=list)
    tag_ids: list[int] = field(default_factory=list)
    roles: list[Role] = field(default_factory=list)
    screenshots: list[Screenshot] = field(default_factory=list)
    examples: list[Example] = field(default_factory=list)


@dataclass
class InMemoryToolRepository(ToolRepository):
    """In-memory tool store that hydrates relations like the real adapter.

    ``interleave`` maps an operation name to a callback that runs once inside
    that operation, standing in for a concurrent request.
    """

    actors: InMemoryActorRepository
    taxonomy: InMemoryTaxonomyRepository
    ratings: InMemoryRatingRepository
    rows: dict[int, _ToolRow] = field(default_factory=dict)
    list_calls: int = 0
    fail_delete: bool = False
    interleave: dict[str, Callable[[], object]] = field(default_factory=dict)
    _next_id: int = 1

    def create_tool(
        self,
        fields: ToolFields,
        status: ToolStatus,
        created_by: int,
        created_at: datetime,
    ) -> int:
        tool_id = self._next_id
        self._next_id += 1
        self.rows[tool_id] = _ToolRow(
            fields=fields, status=status, created_by=created_by, created_at=created_at
        )
        return tool_id

    def get_tool(self, tool_id: int) -> Tool | None:
        row = self.rows.get(tool_id)
        if row is None:
            return None
        return self._hydrate(tool_id, row)

    def list_tools(
        self,
        statuses: set[ToolStatus],
        filters: ToolFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[Tool], int]:
        self.list_calls += 1
        tools = [
            self._hydrate(tool_id, row)
            for tool_id, row in self.rows.items()
            if row.status in statuses
        ]
        if filters.search:
            needle = filters.search.lower()
            tools = [tool for tool in tools if needle in tool.name.lower()]
        if filters.role:
            tools = [tool for tool in tools if filters.role in tool.roles]
        if filters.category:
            tools = [
                tool
                for tool in tools
                if any(c.slug == filters.category for c in tool.categories)
            ]
        if filters.tag:
            tools = [
                tool for tool in tools if any(t.slug == filters.tag for t in tool.tags)
            ]
        tools.sort(key=lambda tool: (tool.created_at, tool.id), reverse=True)
        self._interleave("list_tools")
        return tools[offset : offset + limit], len(tools)

    def update_fields(
        self,
        tool_id: int,
        changes: dict[str, str | None],
        expected: dict[str, str | None],
    ) -> bool:
        self._interleave("update_fields")
        row = self.rows.get(tool_id)
        if row is None:
            return False
        current = row.fields.as_dict()
        if any(current[name] != value for name, value in expected.items()):
            return False
        row.fields = replace(row.fields, **changes)
        return True

    def set_status(
        self, tool_id: int, status: ToolStatus, expected: ToolStatus | None = None
    ) -> bool:
        self._interleave("set_status")
        row = self.rows.get(tool_id)
        if row is None or (expected is not None and row.status is not expected):
            return False
        row.status = status
        return True

    def delete_tool(self, tool_id: int) -> None:
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        self.rows.pop(tool_id, None)
        self.ratings.delete_for_tool(tool_id)

    def replace_categories(self, tool_id: int, category_ids: list[int]) -> None:
        self.rows[tool_id].category_ids = list(category_ids)

    def replace_tags(self, tool_id: int, tag_ids: list[int]) -> None:
        self.rows[tool_id].tag_ids = list(tag_ids)

    def replace_roles(self, tool_id: int, roles: list[Role]) -> None:
        self.rows[tool_id].roles = list(roles)

    def replace_screenshots(self, tool_id: int, screenshots: list[Screenshot]) -> None:
        self.rows[tool_id].screenshots = [
            replace(shot, id=index + 1) for index, shot in enumerate(screenshots)
        ]

    def replace_examples(self, tool_id: int, examples: list[Example]) -> None:
        self.rows[tool_id].examples = [
            replace(example, id=index + 1) for index, example in enumerate(examples)
        ]

    def _hydrate(self, tool_id: int, row: _ToolRow) -> Tool:
        author = self.actors.get_actor(row.created_by)
        return Tool(
            id=tool_id,
            fields=row.fields,
            status=row.status,
            author=Author(id=row.created_by, name=author.name if author else ""),
            created_at=row.created_at,
            categories=self.taxonomy.get_categories(row.category_ids),
            tags=[self.taxonomy.tags[tid] for tid in row.tag_ids],
            roles=list(row.roles),
            screenshots=sorted(row.screenshots, key=lambda shot: shot.sort_order),
            examples=list(row.examples),
            rating=self._rating(tool_id),
        )

    def _rating(self, tool_id: int) -> RatingSummary:
        summary = self.ratings.summarize(tool_id)
        return RatingSummary(
            average=round_average(summary.average), count=summary.count
        )

    def _interleave(self, operation: str) -> None:
        callback = self.interleave.pop(operation, None)
        if callback is not None:
            callback()


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit store with the same filtering as the real adapter."""

    records: list[AuditRecord] = field(default_factory=list)
    fail_next: bool = False
    _next_id: int = 1

    def create_record(self, entry: AuditEntry) -> AuditRecord:
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("audit store unavailable")
        record = AuditRecord(
            id=self._next_id,
            actor=entry.actor,
            action=entry.action,
            subject=entry.subject,
            metadata=entry.metadata,
            request=entry.request,
            created_at=entry.created_at,
        )
        self._next_id += 1
        self.records.append(record)
        return record

    def list_records(
        self, query: AuditQuery, limit: int, offset: int
    ) -> tuple[list[AuditRecord], int]:
        matched = [record for record in self.records if _matches(record, query)]
        matched.sort(key=lambda record: (record.created_at, record.id), reverse=True)
        return matched[offset : offset + limit], len(matched)

    def get_record(self, record_id: int) -> AuditRecord | None:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def delete_record(self, record_id: int) -> None:
        self.records = [record for record in self.records if record.id != record_id]


def _matches(record: AuditRecord, query: AuditQuery) -> bool:
    if query.action is not None and record.action is not query.action:
        return False
    if query.user_id is not None and record.actor.user_id != query.user_id:
        return False
    if query.search:
        needle = query.search.lower()
        if (
            needle not in record.actor.user_name.lower()
            and needle not in record.subject.tool_name.lower()
        ):
            return False
    created_on = record.created_at.date()
    if query.date_from is not None and created_on < query.date_from:
        return False
    return query.date_to is None or created_on <= query.date_to


@dataclass
class RecordingCache(Cache):
    """Cache wrapper that records deletions and can be told to fail them."""

    inner: InMemoryCache = field(default_factory=InMemoryCache)
    deleted: list[str] = field(default_factory=list)
    fail_deletes: bool = False

    def get(self, key: str) -> object | None:
        return self.inner.get(key)

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        self.inner.set(key, value, ttl_seconds)

    def delete(self, key: str) -> None:
        if self.fail_deletes:
            raise ConnectionError("cache backend unreachable")
        self.deleted.append(key)
        self.inner.delete(key)


@dataclass
class CatalogFixture:
    """Everything a catalog test needs, wired with in-memory collaborators."""

    service: CatalogService
    taxonomy_service: TaxonomyService
    tools: InMemoryToolRepository
    audit: InMemoryAuditRepository
    taxonomy: InMemoryTaxonomyRepository
    ratings: InMemoryRatingRepository
    actors: InMemoryActorRepository
    cache: RecordingCache
    clock: FakeClock


def build_catalog() -> CatalogFixture:
    clock = FakeClock()
    actors = InMemoryActorRepository()
    actors.add(OWNER, ALICE, CAROL)
    taxonomy = InMemoryTaxonomyRepository()
    ratings = InMemoryRatingRepository()
    tools = InMemoryToolRepository(actors=actors, taxonomy=taxonomy, ratings=ratings)
    audit = InMemoryAuditRepository()
    cache = RecordingCache(inner=InMemoryCache(clock=clock))
    coordinator = CacheCoordinator(cache=cache)
    taxonomy_service = TaxonomyService(repository=taxonomy, cache=coordinator)
    service = CatalogService(
        repository=tools,
        ratings=ratings,
        taxonomy=taxonomy_service,
        audit=AuditService(audit, clock=clock),
        cache=coordinator,
        moderation=ModerationStateMachine(),
        clock=clock,
    )
    return CatalogFixture(
        service=service,
        taxonomy_service=taxonomy_service,
        tools=tools,
        audit=audit,
        taxonomy=taxonomy,
        ratings=ratings,
        actors=actors,
        cache=cache,
        clock=clock,
    )


def make_tool(
    status: ToolStatus = ToolStatus.PENDING, created_by: int = ALICE.id
) -> Tool:
    return Tool(
        id=10,
        fields=ToolFields(name="Foo", url="https://foo.example.com", description="d"),
        status=status,
        author=Author(id=created_by, name="Author"),
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


TOOL_FIELDS = {
    "name": "Foo",
    "url": "https://foo.example.com",
    "description": "Formats things",
}


@pytest.fixture
def catalog() -> CatalogFixture:
    return build_catalog()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
    )


@pytest.fixture
def container(settings: Settings, catalog: CatalogFixture) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        actor_service=ActorService(catalog.actors),
        catalog_service=catalog.service,
        taxonomy_service=catalog.taxonomy_service,
        audit_service=catalog.service.audit,
        cache=catalog.service.cache,
        close_resources=close_resources,
    )
