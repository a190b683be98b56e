"""Domain models for catalog tools."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

from tool_catalog.domain.roles import Role

TRACKED_FIELDS = ("name", "url", "description", "how_to_use", "documentation_url")


def round_average(value: float) -> float:
    """Round a rating average to one decimal, halves away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class ToolStatus(StrEnum):
    """Moderation lifecycle state of a tool."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Author:
    """Creator reference shown alongside a tool."""

    id: int
    name: str


@dataclass(frozen=True)
class Category:
    """Shared category a tool can belong to."""

    id: int
    name: str
    slug: str
    description: str | None = None


@dataclass(frozen=True)
class Tag:
    """Shared free-text tag, identified by its slug."""

    id: int
    name: str
    slug: str


@dataclass(frozen=True)
class Screenshot:
    """Screenshot owned by a tool."""

    url: str
    caption: str | None = None
    sort_order: int = 0
    id: int | None = None


@dataclass(frozen=True)
class Example:
    """Usage example owned by a tool."""

    title: str
    description: str | None = None
    url: str | None = None
    id: int | None = None


@dataclass(frozen=True)
class RatingSummary:
    """Aggregate of individual ratings for a tool."""

    average: float
    count: int


@dataclass(frozen=True)
class ToolFields:
    """Mutable scalar fields of a tool."""

    name: str
    url: str
    description: str
    how_to_use: str | None = None
    documentation_url: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for name in TRACKED_FIELDS}


@dataclass(frozen=True)
class ToolRelations:
    """Relation payload for create/update.

    ``None`` on an update means "leave as is"; an empty list clears the set.
    """

    categories: list[int] | None = None
    tags: list[str] | None = None
    roles: list[str] | None = None
    screenshots: list[Screenshot] | None = None
    examples: list[Example] | None = None


@dataclass(frozen=True)
class Tool:
    """Fully hydrated catalog entry."""

    id: int
    fields: ToolFields
    status: ToolStatus
    author: Author
    created_at: datetime
    categories: list[Category] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    roles: list[Role] = field(default_factory=list)
    screenshots: list[Screenshot] = field(default_factory=list)
    examples: list[Example] = field(default_factory=list)
    rating: RatingSummary = field(default_factory=lambda: RatingSummary(0.0, 0))

    @property
    def name(self) -> str:
        return self.fields.name

    @property
    def url(self) -> str:
        return self.fields.url

    @property
    def created_by(self) -> int:
        return self.author.id


@dataclass(frozen=True)
class ToolFilters:
    """Listing filters accepted by the catalog."""

    search: str | None = None
    role: str | None = None
    category: str | None = None
    tag: str | None = None
    status: str | None = None
    page: int = 1

    def is_canonical(self) -> bool:
        """True for the unfiltered first page, the only cached listing."""
        return (
            not self.search
            and not self.role
            and not self.category
            and not self.tag
            and not self.status
            and self.page == 1
        )


@dataclass(frozen=True)
class ToolPage:
    """A page of tools with pagination metadata."""

    items: list[Tool]
    total: int
    page: int
    last_page: int


@dataclass(frozen=True)
class RatingResult:
    """Outcome of a rating upsert."""

    average: float
    count: int
    user_rating: int
