"""Shared state container for the Catalog API."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.engine import Engine

from .db import create_engine_from_settings, init_database
from .services.actors import ActorDirectory
from .services.banner import BannerService
from .services.catalog_service import CatalogService
from .services.credits import CreditsProvider
from .services.discovery import DiscoveryService
from .services.enrichment import MetadataEnrichmentCache
from .services.latest_new import LatestNewService
from .services.omdb_client import OmdbClient
from .services.ordering import CatalogOrderIndex
from .services.ratings import RatingsProvider
from .services.reorder import PageReorderer, PagesMover
from .services.slugs import SlugAssigner
from .services.tmdb_client import TmdbClient
from .settings import CatalogSettings
from .stores.catalog_store import CatalogStore


def build_tmdb_client(settings: CatalogSettings) -> TmdbClient | None:
    """Return a TMDb client, or ``None`` when no credentials are configured."""

    client = TmdbClient(
        api_key=settings.tmdb_api_key or "",
        bearer_token=settings.tmdb_bearer_token or "",
        base_url=settings.tmdb_base_url,
        timeout=settings.provider_timeout_seconds,
    )
    return client if client.enabled else None


def build_omdb_client(settings: CatalogSettings) -> OmdbClient | None:
    client = OmdbClient(
        api_key=settings.omdb_api_key or "",
        base_url=settings.omdb_base_url,
        timeout=settings.provider_timeout_seconds,
    )
    return client if client.enabled else None


@dataclass(slots=True)
class AppState:
    """Encapsulates the store and services shared across routers."""

    settings: CatalogSettings
    engine: Engine
    catalog_store: CatalogStore
    order_index: CatalogOrderIndex
    enrichment: MetadataEnrichmentCache
    catalog_service: CatalogService
    reorderer: PageReorderer
    mover: PagesMover
    slugs: SlugAssigner
    latest_new: LatestNewService
    banner: BannerService
    discovery: DiscoveryService
    actors: ActorDirectory

    def __init__(
        self,
        settings: CatalogSettings,
        *,
        credits_provider: CreditsProvider | None = None,
        ratings_provider: RatingsProvider | None = None,
    ) -> None:
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        init_database(self.engine)
        self.catalog_store = CatalogStore(self.engine)
        self.order_index = CatalogOrderIndex(self.catalog_store)
        self.slugs = SlugAssigner(self.catalog_store)
        self.enrichment = MetadataEnrichmentCache(
            self.catalog_store,
            credits_provider=credits_provider or build_tmdb_client(settings),
            ratings_provider=ratings_provider or build_omdb_client(settings),
            credits_ttl=timedelta(days=settings.credits_ttl_days),
            ratings_ttl=timedelta(days=settings.ratings_ttl_days),
            cast_limit_default=settings.cast_limit_default,
            cast_limit_max=settings.cast_limit_max,
            sync_default_limit=settings.sync_default_limit,
            sync_max_limit=settings.sync_max_limit,
            image_base=settings.tmdb_image_base,
            profile_size=settings.tmdb_profile_size,
        )
        self.catalog_service = CatalogService(
            self.catalog_store,
            slugs=self.slugs,
            order_index=self.order_index,
            enrichment=self.enrichment,
            page_size=settings.page_size,
            slug_conflict_retries=settings.slug_conflict_retries,
        )
        self.reorderer = PageReorderer(
            self.catalog_store, self.order_index, page_size=settings.page_size
        )
        self.mover = PagesMover(self.catalog_store, self.order_index, page_size=settings.page_size)
        self.latest_new = LatestNewService(
            self.catalog_store, default_limit=settings.latest_new_limit
        )
        self.banner = BannerService(self.catalog_store, default_limit=settings.banner_limit)
        self.discovery = DiscoveryService(self.catalog_store)
        self.actors = ActorDirectory(self.catalog_store)
