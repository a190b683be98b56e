"""Supabase implementation for tools and their owned sub-records."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from tool_catalog.domain.roles import Role
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
from tool_catalog.services.catalog import ToolRepository

TOOL_SELECT = (
    "id, name, url, description, how_to_use, documentation_url, status, "
    "created_at, author:users!created_by(id, name), "
    "categories(id, name, slug, description), tags(id, name, slug), "
    "tool_roles(role), tool_screenshots(id, url, caption, sort_order), "
    "tool_examples(id, title, description, url), tool_ratings(rating)"
)

# Rows owned by a tool, removed before the tool itself.
_OWNED_TABLES = (
    "tool_screenshots",
    "tool_examples",
    "tool_roles",
    "tool_ratings",
    "tool_categories",
    "tool_tags",
)


@dataclass
class SupabaseToolRepository(ToolRepository):
    """Supabase-backed tool repository."""

    client: Client

    def create_tool(
        self,
        fields: ToolFields,
        status: ToolStatus,
        created_by: int,
        created_at: datetime,
    ) -> int:
        """Insert a tool row and return its id."""
        response = (
            self.client.table("tools")
            .insert(
                {
                    **fields.as_dict(),
                    "status": status.value,
                    "created_by": created_by,
                    "created_at": created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create tool")
        return int(response.data[0]["id"])

    def get_tool(self, tool_id: int) -> Tool | None:
        """Return a fully hydrated tool, if present."""
        response = (
            self.client.table("tools")
            .select(TOOL_SELECT)
            .eq("id", tool_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_tool(response.data[0])

    def list_tools(
        self,
        statuses: set[ToolStatus],
        filters: ToolFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[Tool], int]:
        """Return a page of tools newest first, and the total match count."""
        candidate_ids = self._candidate_ids(filters)
        if candidate_ids is not None and not candidate_ids:
            return [], 0
        query = (
            self.client.table("tools")
            .select(TOOL_SELECT, count="exact")
            .in_("status", sorted(status.value for status in statuses))
        )
        if filters.search:
            query = query.ilike("name", f"%{filters.search}%")
        if candidate_ids is not None:
            query = query.in_("id", sorted(candidate_ids))
        response = (
            query.order("created_at", desc=True)
            .order("id", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        tools = [_parse_tool(row) for row in response.data or []]
        total = response.count if response.count is not None else len(tools)
        return tools, total

    def update_fields(
        self,
        tool_id: int,
        changes: dict[str, str | None],
        expected: dict[str, str | None],
    ) -> bool:
        """Write ``changes`` only while each ``expected`` column still matches."""
        query = self.client.table("tools").update(changes).eq("id", tool_id)
        for column, value in expected.items():
            if value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, value)
        response = query.execute()
        return bool(response.data)

    def set_status(
        self, tool_id: int, status: ToolStatus, expected: ToolStatus | None = None
    ) -> bool:
        """Change the lifecycle state, optionally only from ``expected``."""
        query = (
            self.client.table("tools")
            .update({"status": status.value})
            .eq("id", tool_id)
        )
        if expected is not None:
            query = query.eq("status", expected.value)
        response = query.execute()
        return bool(response.data)

    def delete_tool(self, tool_id: int) -> None:
        """Delete a tool together with the rows it owns."""
        for table in _OWNED_TABLES:
            self.client.table(table).delete().eq("tool_id", tool_id).execute()
        self.client.table("tools").delete().eq("id", tool_id).execute()

    def replace_categories(self, tool_id: int, category_ids: list[int]) -> None:
        """Replace the category links of a tool."""
        self._replace(
            "tool_categories",
            tool_id,
            [{"tool_id": tool_id, "category_id": cid} for cid in category_ids],
        )

    def replace_tags(self, tool_id: int, tag_ids: list[int]) -> None:
        """Replace the tag links of a tool."""
        self._replace(
            "tool_tags",
            tool_id,
            [{"tool_id": tool_id, "tag_id": tag_id} for tag_id in tag_ids],
        )

    def replace_roles(self, tool_id: int, roles: list[Role]) -> None:
        """Replace the recommended roles of a tool."""
        self._replace(
            "tool_roles",
            tool_id,
            [{"tool_id": tool_id, "role": role.value} for role in roles],
        )

    def replace_screenshots(self, tool_id: int, screenshots: list[Screenshot]) -> None:
        """Delete all screenshots of a tool and insert the given ones."""
        self._replace(
            "tool_screenshots",
            tool_id,
            [
                {
                    "tool_id": tool_id,
                    "url": shot.url,
                    "caption": shot.caption,
                    "sort_order": shot.sort_order,
                }
                for shot in screenshots
            ],
        )

    def replace_examples(self, tool_id: int, examples: list[Example]) -> None:
        """Delete all examples of a tool and insert the given ones."""
        self._replace(
            "tool_examples",
            tool_id,
            [
                {
                    "tool_id": tool_id,
                    "title": example.title,
                    "description": example.description,
                    "url": example.url,
                }
                for example in examples
            ],
        )

    def _replace(self, table: str, tool_id: int, rows: list[dict[str, object]]) -> None:
        self.client.table(table).delete().eq("tool_id", tool_id).execute()
        if rows:
            self.client.table(table).insert(rows).execute()

    def _candidate_ids(self, filters: ToolFilters) -> set[int] | None:
        """Resolve relation filters to tool ids; None when no filter applies."""
        candidates: set[int] | None = None
        if filters.role:
            response = (
                self.client.table("tool_roles")
                .select("tool_id")
                .eq("role", filters.role)
                .execute()
            )
            candidates = _intersect(candidates, response.data)
        if filters.category:
            candidates = _intersect(
                candidates,
                self._linked_ids(
                    "categories", "tool_categories", "category_id", filters.category
                ),
            )
        if filters.tag:
            candidates = _intersect(
                candidates,
                self._linked_ids("tags", "tool_tags", "tag_id", filters.tag),
            )
        return candidates

    def _linked_ids(
        self, table: str, link_table: str, link_column: str, slug: str
    ) -> list[dict[str, object]]:
        response = self.client.table(table).select("id").eq("slug", slug).execute()
        ids = [row["id"] for row in response.data or []]
        if not ids:
            return []
        links = (
            self.client.table(link_table)
            .select("tool_id")
            .in_(link_column, ids)
            .execute()
        )
        return links.data or []


def _intersect(
    current: set[int] | None, rows: list[dict[str, object]] | None
) -> set[int]:
    ids = {int(row["tool_id"]) for row in rows or []}
    return ids if current is None else current & ids


def _parse_tool(row: dict[str, object]) -> Tool:
    """Parse a tool row with embedded relations into a domain model."""
    author = row.get("author") or {}
    ratings = [int(item["rating"]) for item in row.get("tool_ratings") or []]
    screenshots = sorted(
        (
            Screenshot(
                id=item.get("id"),
                url=str(item["url"]),
                caption=item.get("caption"),
                sort_order=int(item.get("sort_order") or 0),
            )
            for item in row.get("tool_screenshots") or []
        ),
        key=lambda shot: shot.sort_order,
    )
    return Tool(
        id=int(row["id"]),
        fields=ToolFields(
            name=str(row.get("name", "")),
            url=str(row.get("url", "")),
            description=str(row.get("description", "")),
            how_to_use=row.get("how_to_use"),
            documentation_url=row.get("documentation_url"),
        ),
        status=ToolStatus(row["status"]),
        author=Author(id=int(author.get("id", 0)), name=str(author.get("name", ""))),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        categories=[
            Category(
                id=int(item["id"]),
                name=str(item["name"]),
                slug=str(item["slug"]),
                description=item.get("description"),
            )
            for item in row.get("categories") or []
        ],
        tags=[
            Tag(id=int(item["id"]), name=str(item["name"]), slug=str(item["slug"]))
            for item in row.get("tags") or []
        ],
        roles=[Role(item["role"]) for item in row.get("tool_roles") or []],
        screenshots=screenshots,
        examples=[
            Example(
                id=item.get("id"),
                title=str(item["title"]),
                description=item.get("description"),
                url=item.get("url"),
            )
            for item in row.get("tool_examples") or []
        ],
        rating=RatingSummary(
            average=round_average(sum(ratings) / len(ratings)) if ratings else 0.0,
            count=len(ratings),
        ),
    )
