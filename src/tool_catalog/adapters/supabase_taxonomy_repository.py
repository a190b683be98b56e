"""Supabase repository for categories and tags."""

from dataclasses import dataclass

from supabase import Client

from tool_catalog.domain.tools import Category, Tag
from tool_catalog.services.taxonomy import TaxonomyRepository


@dataclass
class SupabaseTaxonomyRepository(TaxonomyRepository):
    """Supabase-backed categories and tags."""

    client: Client

    def list_categories(self) -> list[Category]:
        """Return all categories ordered by name."""
        response = self.client.table("categories").select("*").order("name").execute()
        return [_parse_category(row) for row in response.data or []]

    def get_categories(self, category_ids: list[int]) -> list[Category]:
        """Return the categories that exist among the given ids."""
        if not category_ids:
            return []
        response = (
            self.client.table("categories")
            .select("*")
            .in_("id", category_ids)
            .execute()
        )
        return [_parse_category(row) for row in response.data or []]

    def find_category_by_name(self, name: str) -> Category | None:
        """Return a category with exactly this name, if present."""
        response = (
            self.client.table("categories")
            .select("*")
            .eq("name", name)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_category(response.data[0])

    def create_category(
        self, name: str, slug: str, description: str | None, created_by: int
    ) -> Category:
        """Create and return a category."""
        response = (
            self.client.table("categories")
            .insert(
                {
                    "name": name,
                    "slug": slug,
                    "description": description,
                    "created_by": created_by,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create category")
        return _parse_category(response.data[0])

    def list_tags(self) -> list[Tag]:
        """Return all tags ordered by name."""
        response = self.client.table("tags").select("*").order("name").execute()
        return [_parse_tag(row) for row in response.data or []]

    def find_tag_by_slug(self, slug: str) -> Tag | None:
        """Return the tag for a slug, if present."""
        response = (
            self.client.table("tags").select("*").eq("slug", slug).limit(1).execute()
        )
        if not response.data:
            return None
        return _parse_tag(response.data[0])

    def create_tag(self, name: str, slug: str) -> Tag:
        """Create a tag, reusing the existing row if the slug was taken meanwhile."""
        response = (
            self.client.table("tags")
            .upsert({"name": name, "slug": slug}, on_conflict="slug")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create tag")
        return _parse_tag(response.data[0])


def _parse_category(row: dict[str, object]) -> Category:
    return Category(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        slug=str(row.get("slug", "")),
        description=row.get("description"),
    )


def _parse_tag(row: dict[str, object]) -> Tag:
    return Tag(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        slug=str(row.get("slug", "")),
    )
