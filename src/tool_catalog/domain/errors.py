"""Domain error taxonomy.

Every error carries a stable ``kind`` tag that the HTTP layer exposes as-is,
so callers never have to parse messages.
"""


class CatalogError(Exception):
    """Base class for errors surfaced to callers."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, object]:
        """Serialize into the structured error envelope."""
        return {"kind": self.kind, "message": self.message, "fields": {}}


class Unauthenticated(CatalogError):
    """No actor context is attached to the request."""

    kind = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Log in to continue.") -> None:
        super().__init__(message)


class Forbidden(CatalogError):
    """The actor is authenticated but not permitted to act."""

    kind = "forbidden"
    status_code = 403


class NotFound(CatalogError):
    """A tool or audit record id does not resolve."""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found.")
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailed(CatalogError):
    """Malformed input; ``fields`` maps each offending field to its problem."""

    kind = "validation_failed"
    status_code = 422

    def __init__(self, fields: dict[str, str]) -> None:
        names = ", ".join(sorted(fields))
        super().__init__(f"Invalid input: {names}.")
        self.fields = dict(fields)

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["fields"] = self.fields
        return payload


class InvalidTransition(ValidationFailed):
    """A lifecycle transition was requested from a state that forbids it."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__({"status": f"cannot move from {current} to {target}"})
        self.current = current
        self.target = target


class CacheInvalidationFailed(CatalogError):
    """A derived view could not be forgotten. Logged, never surfaced."""

    kind = "cache_invalidation_failed"


class Conflict(CatalogError):
    """The record kept changing underneath a write; the caller should retry."""

    kind = "conflict"
    status_code = 409
