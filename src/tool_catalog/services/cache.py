"""Derived read views and their invalidation."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol, TypeVar

from tool_catalog.domain.errors import CacheInvalidationFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL in seconds."""

    def delete(self, key: str) -> None:
        """Forget a cached value."""


@dataclass
class _CacheEntry:
    value: object
    expires_at: datetime


class InMemoryCache(Cache):
    """Process-local cache with per-entry expiry."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                self._entries.pop(key, None)
                return None
            return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL."""
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class View(StrEnum):
    """Named derived views, valued by their cache key."""

    APPROVED_LISTING = "tools:approved:page1"
    TAGS = "tags:all"
    CATEGORIES = "categories:all"


class CatalogEvent(StrEnum):
    """Mutations that can make a view stale."""

    TOOL_CREATED = "tool_created"
    TOOL_UPDATED = "tool_updated"
    TOOL_APPROVED = "tool_approved"
    TOOL_REJECTED = "tool_rejected"
    TOOL_DELETED = "tool_deleted"
    TOOL_RATED = "tool_rated"
    TAG_CREATED = "tag_created"
    CATEGORY_CREATED = "category_created"


_INVALIDATION_POLICY: dict[CatalogEvent, tuple[View, ...]] = {
    CatalogEvent.TOOL_CREATED: (View.APPROVED_LISTING,),
    CatalogEvent.TOOL_UPDATED: (View.APPROVED_LISTING,),
    CatalogEvent.TOOL_APPROVED: (View.APPROVED_LISTING,),
    CatalogEvent.TOOL_REJECTED: (View.APPROVED_LISTING,),
    CatalogEvent.TOOL_DELETED: (View.APPROVED_LISTING,),
    CatalogEvent.TOOL_RATED: (View.APPROVED_LISTING,),
    CatalogEvent.TAG_CREATED: (View.TAGS,),
    CatalogEvent.CATEGORY_CREATED: (View.CATEGORIES,),
}

DEFAULT_TTLS = {
    View.APPROVED_LISTING: 300,
    View.TAGS: 3600,
    View.CATEGORIES: 3600,
}


def views_for(*events: CatalogEvent) -> tuple[View, ...]:
    """Return the views affected by the given events, without duplicates."""
    views: list[View] = []
    for event in events:
        for view in _INVALIDATION_POLICY[event]:
            if view not in views:
                views.append(view)
    return tuple(views)


@dataclass
class CacheCoordinator:
    """Keeps derived views in a cache and forgets them on mutation.

    Invalidation is the consistency mechanism; TTLs only bound the damage of
    a missed invalidation. Failures to forget are logged and swallowed.

    Each view carries a generation that every invalidation bumps. A value
    computed on a miss is only stored if no invalidation happened while it
    was being loaded.
    """

    cache: Cache
    ttls: dict[View, int]

    def __init__(self, cache: Cache, ttls: dict[View, int] | None = None) -> None:
        self.cache = cache
        self.ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._generations: dict[View, int] = {}
        self._lock = threading.Lock()

    def remember(self, view: View, loader: Callable[[], T]) -> T:
        """Return the cached view, computing and storing it on a miss."""
        cached = self.cache.get(view.value)
        if cached is not None:
            return cached  # type: ignore[return-value]
        with self._lock:
            generation = self._generations.get(view, 0)
        value = loader()
        with self._lock:
            if self._generations.get(view, 0) == generation:
                self.cache.set(view.value, value, self.ttls[view])
            else:
                logger.debug("View %s invalidated while loading, not stored", view)
        return value

    def invalidate(self, *views: View) -> bool:
        """Forget each view; return False if any of them could not be dropped."""
        ok = True
        for view in views:
            with self._lock:
                self._generations[view] = self._generations.get(view, 0) + 1
            try:
                self.cache.delete(view.value)
            except Exception:
                logger.exception(
                    "%s: could not forget view %s", CacheInvalidationFailed.kind, view
                )
                ok = False
        return ok

    def notify(self, *events: CatalogEvent) -> bool:
        """Invalidate every view the events can affect."""
        return self.invalidate(*views_for(*events))
