"""Pydantic models for request payloads."""

from pydantic import BaseModel

from tool_catalog.domain.tools import (
    TRACKED_FIELDS,
    Example,
    Screenshot,
    ToolRelations,
)


class ScreenshotPayload(BaseModel):
    """Screenshot attached to a tool."""

    url: str
    caption: str | None = None


class ExamplePayload(BaseModel):
    """Usage example attached to a tool."""

    title: str
    description: str | None = None
    url: str | None = None


class ToolPayload(BaseModel):
    """Create or update payload; unset keys are left untouched on update."""

    name: str | None = None
    url: str | None = None
    description: str | None = None
    how_to_use: str | None = None
    documentation_url: str | None = None
    categories: list[int] | None = None
    tags: list[str] | None = None
    roles: list[str] | None = None
    screenshots: list[ScreenshotPayload] | None = None
    examples: list[ExamplePayload] | None = None

    def scalar_fields(self) -> dict[str, object]:
        """Return only the scalar fields the client actually sent."""
        return self.model_dump(include=set(TRACKED_FIELDS), exclude_unset=True)

    def relations(self) -> ToolRelations:
        return ToolRelations(
            categories=self.categories,
            tags=self.tags,
            roles=self.roles,
            screenshots=(
                [Screenshot(url=s.url, caption=s.caption) for s in self.screenshots]
                if self.screenshots is not None
                else None
            ),
            examples=(
                [
                    Example(title=e.title, description=e.description, url=e.url)
                    for e in self.examples
                ]
                if self.examples is not None
                else None
            ),
        )


class RatingPayload(BaseModel):
    """A rating from 1 to 5."""

    rating: int | None = None


class CategoryPayload(BaseModel):
    """New category."""

    name: str
    description: str | None = None


class TagPayload(BaseModel):
    """New tag."""

    name: str
