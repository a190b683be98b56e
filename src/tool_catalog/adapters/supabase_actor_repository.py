"""Supabase lookup of principals."""

from dataclasses import dataclass

from supabase import Client

from tool_catalog.domain.roles import Actor, Role
from tool_catalog.services.actors import ActorRepository


@dataclass
class SupabaseActorRepository(ActorRepository):
    """Reads principals from the users table."""

    client: Client

    def get_actor(self, actor_id: int) -> Actor | None:
        """Return the principal for an id, if present."""
        response = (
            self.client.table("users")
            .select("id, name, role")
            .eq("id", actor_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        raw_role = row.get("role")
        return Actor(
            id=int(row["id"]),
            name=str(row.get("name", "")),
            role=Role(raw_role) if raw_role else Role.default(),
        )
