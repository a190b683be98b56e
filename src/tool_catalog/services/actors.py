"""Resolution of the acting principal."""

from dataclasses import dataclass
from typing import Protocol

from tool_catalog.domain.roles import Actor


class ActorRepository(Protocol):
    """Read access to principals issued by the identity provider."""

    def get_actor(self, actor_id: int) -> Actor | None:
        """Return the principal for an id, if present."""


@dataclass
class ActorService:
    """Maps the authenticated principal id to an ``Actor``."""

    repository: ActorRepository

    def resolve(self, actor_id: int | None) -> Actor | None:
        """Return the actor, or None when the request is unauthenticated."""
        if actor_id is None:
            return None
        return self.repository.get_actor(actor_id)
