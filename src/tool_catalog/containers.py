"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from tool_catalog.adapters.supabase_actor_repository import SupabaseActorRepository
from tool_catalog.adapters.supabase_audit_repository import SupabaseAuditRepository
from tool_catalog.adapters.supabase_rating_repository import (
    SupabaseRatingRepository,
)
from tool_catalog.adapters.supabase_taxonomy_repository import (
    SupabaseTaxonomyRepository,
)
from tool_catalog.adapters.supabase_tool_repository import SupabaseToolRepository
from tool_catalog.config import Settings
from tool_catalog.services.actors import ActorService
from tool_catalog.services.audit import AuditService
from tool_catalog.services.cache import CacheCoordinator, InMemoryCache, View
from tool_catalog.services.catalog import CatalogService
from tool_catalog.services.moderation import ModerationStateMachine
from tool_catalog.services.taxonomy import TaxonomyService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    actor_service: ActorService
    catalog_service: CatalogService
    taxonomy_service: TaxonomyService
    audit_service: AuditService
    cache: CacheCoordinator
    close_resources: Callable[[], Awaitable[None]]


def build_cache(settings: Settings) -> CacheCoordinator:
    """Create the view cache with TTLs from settings."""
    return CacheCoordinator(
        cache=InMemoryCache(),
        ttls={
            View.APPROVED_LISTING: settings.listing_cache_ttl_seconds,
            View.TAGS: settings.tags_cache_ttl_seconds,
            View.CATEGORIES: settings.categories_cache_ttl_seconds,
        },
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    cache = build_cache(resolved_settings)
    audit_service = AuditService(
        repository=SupabaseAuditRepository(supabase_client),
        page_size=resolved_settings.audit_page_size,
    )
    taxonomy_service = TaxonomyService(
        repository=SupabaseTaxonomyRepository(supabase_client),
        cache=cache,
    )
    catalog_service = CatalogService(
        repository=SupabaseToolRepository(supabase_client),
        ratings=SupabaseRatingRepository(supabase_client),
        taxonomy=taxonomy_service,
        audit=audit_service,
        cache=cache,
        moderation=ModerationStateMachine(),
        page_size=resolved_settings.tools_page_size,
    )
    actor_service = ActorService(SupabaseActorRepository(supabase_client))

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        actor_service=actor_service,
        catalog_service=catalog_service,
        taxonomy_service=taxonomy_service,
        audit_service=audit_service,
        cache=cache,
        close_resources=close_resources,
    )
