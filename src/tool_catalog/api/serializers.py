"""JSON shapes returned by the HTTP layer."""

from tool_catalog.domain.audit import AuditPage, AuditRecord
from tool_catalog.domain.roles import Actor
from tool_catalog.domain.tools import Category, Tag, Tool, ToolPage


def serialize_actor(actor: Actor) -> dict[str, object]:
    return {
        "id": actor.id,
        "name": actor.name,
        "role": actor.role.value,
        "role_label": actor.role.label,
    }


def serialize_category(category: Category) -> dict[str, object]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
    }


def serialize_tag(tag: Tag) -> dict[str, object]:
    return {"id": tag.id, "name": tag.name, "slug": tag.slug}


def serialize_tool(tool: Tool) -> dict[str, object]:
    """Serialize a hydrated tool with its relations and rating."""
    return {
        "id": tool.id,
        **tool.fields.as_dict(),
        "status": tool.status.value,
        "created_by": {"id": tool.author.id, "name": tool.author.name},
        "categories": [serialize_category(item) for item in tool.categories],
        "tags": [serialize_tag(item) for item in tool.tags],
        "roles": [role.value for role in tool.roles],
        "screenshots": [
            {"id": shot.id, "url": shot.url, "caption": shot.caption}
            for shot in tool.screenshots
        ],
        "examples": [
            {
                "id": example.id,
                "title": example.title,
                "description": example.description,
                "url": example.url,
            }
            for example in tool.examples
        ],
        "rating": {"average": tool.rating.average, "count": tool.rating.count},
        "created_at": tool.created_at.isoformat(),
    }


def serialize_tool_page(page: ToolPage) -> dict[str, object]:
    return {
        "data": [serialize_tool(tool) for tool in page.items],
        "meta": {"total": page.total, "page": page.page, "last_page": page.last_page},
    }


def serialize_audit_record(record: AuditRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "user_id": record.actor.user_id,
        "user_name": record.actor.user_name,
        "user_role": record.actor.user_role,
        "action": record.action.value,
        "tool_id": record.subject.tool_id,
        "tool_name": record.subject.tool_name,
        "tool_url": record.subject.tool_url,
        "metadata": record.metadata,
        "ip_address": record.request.ip_address,
        "user_agent": record.request.user_agent,
        "created_at": record.created_at.isoformat(),
    }


def serialize_audit_page(page: AuditPage) -> dict[str, object]:
    return {
        "data": [serialize_audit_record(record) for record in page.records],
        "meta": {"total": page.total, "page": page.page, "last_page": page.last_page},
    }
