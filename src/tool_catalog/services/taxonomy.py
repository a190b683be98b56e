"""Categories and tags shared between tools."""

import logging
from dataclasses import dataclass
from typing import Protocol

from tool_catalog.domain.errors import ValidationFailed
from tool_catalog.domain.roles import Actor
from tool_catalog.domain.tools import Category, Tag
from tool_catalog.services.authorization import Action, authorize
from tool_catalog.services.cache import CacheCoordinator, CatalogEvent, View
from tool_catalog.services.validation import MAX_TAG_LENGTH, slugify

logger = logging.getLogger(__name__)

MAX_CATEGORY_NAME_LENGTH = 100
MAX_CATEGORY_DESCRIPTION_LENGTH = 500


class TaxonomyRepository(Protocol):
    """Persistence interface for categories and tags."""

    def list_categories(self) -> list[Category]:
        """Return all categories ordered by name."""

    def get_categories(self, category_ids: list[int]) -> list[Category]:
        """Return the categories that exist among the given ids."""

    def find_category_by_name(self, name: str) -> Category | None:
        """Return a category with exactly this name, if present."""

    def create_category(
        self, name: str, slug: str, description: str | None, created_by: int
    ) -> Category:
        """Create and return a category."""

    def list_tags(self) -> list[Tag]:
        """Return all tags ordered by name."""

    def find_tag_by_slug(self, slug: str) -> Tag | None:
        """Return the tag for a slug, if present."""

    def create_tag(self, name: str, slug: str) -> Tag:
        """Create and return a tag."""


@dataclass
class TaxonomyService:
    """Application service for categories and tags."""

    repository: TaxonomyRepository
    cache: CacheCoordinator

    def list_categories(self) -> list[Category]:
        return self.cache.remember(View.CATEGORIES, self.repository.list_categories)

    def list_tags(self) -> list[Tag]:
        return self.cache.remember(View.TAGS, self.repository.list_tags)

    def create_category(
        self, actor: Actor | None, name: str, description: str | None = None
    ) -> Category:
        """Create a uniquely named category."""
        authorize(actor, Action.CREATE)
        errors: dict[str, str] = {}
        cleaned = name.strip()
        if not cleaned:
            errors["name"] = "is required"
        elif len(cleaned) > MAX_CATEGORY_NAME_LENGTH:
            errors["name"] = f"must be at most {MAX_CATEGORY_NAME_LENGTH} characters"
        elif self.repository.find_category_by_name(cleaned) is not None:
            errors["name"] = "has already been taken"
        if description and len(description) > MAX_CATEGORY_DESCRIPTION_LENGTH:
            errors["description"] = (
                f"must be at most {MAX_CATEGORY_DESCRIPTION_LENGTH} characters"
            )
        if errors:
            raise ValidationFailed(errors)
        category = self.repository.create_category(
            name=cleaned,
            slug=slugify(cleaned),
            description=description or None,
            created_by=actor.id,
        )
        logger.info("Category %s created by user=%s", category.slug, actor.id)
        self.cache.notify(CatalogEvent.CATEGORY_CREATED)
        return category

    def create_tag(self, actor: Actor | None, name: str) -> Tag:
        """Find or create a tag by slug."""
        authorize(actor, Action.CREATE)
        cleaned = name.strip()
        if not cleaned:
            raise ValidationFailed({"name": "is required"})
        if len(cleaned) > MAX_TAG_LENGTH:
            raise ValidationFailed(
                {"name": f"must be at most {MAX_TAG_LENGTH} characters"}
            )
        if not slugify(cleaned):
            raise ValidationFailed({"name": "must contain latin letters or digits"})
        tags, created = self.resolve_tags([cleaned])
        if created:
            self.cache.notify(CatalogEvent.TAG_CREATED)
        return tags[0]

    def resolve_tags(self, names: list[str]) -> tuple[list[Tag], bool]:
        """Find or create tags by slug; report whether any tag was created.

        The caller decides when to invalidate the tags view.
        """
        tags: list[Tag] = []
        created = False
        for name in names:
            slug = slugify(name)
            if not slug or any(tag.slug == slug for tag in tags):
                continue
            tag = self.repository.find_tag_by_slug(slug)
            if tag is None:
                tag = self.repository.create_tag(name=name.strip(), slug=slug)
                created = True
            tags.append(tag)
        return tags, created

    def missing_categories(self, category_ids: list[int]) -> list[int]:
        """Return the ids that do not resolve to a category."""
        existing = self.repository.get_categories(category_ids)
        found = {category.id for category in existing}
        return [category_id for category_id in category_ids if category_id not in found]
