"""FastAPI dependencies for the Catalog API."""
from fastapi import Depends, Request

from .services.actors import ActorDirectory
from .services.banner import BannerService
from .services.catalog_service import CatalogService
from .services.discovery import DiscoveryService
from .services.enrichment import MetadataEnrichmentCache
from .services.latest_new import LatestNewService
from .services.reorder import PageReorderer, PagesMover
from .services.slugs import SlugAssigner
from .state import AppState


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_catalog_service(app_state: AppState = Depends(get_app_state)) -> CatalogService:
    """Return the catalog service dependency."""
    return app_state.catalog_service


def get_reorderer(app_state: AppState = Depends(get_app_state)) -> PageReorderer:
    return app_state.reorderer


def get_mover(app_state: AppState = Depends(get_app_state)) -> PagesMover:
    return app_state.mover


def get_slug_assigner(app_state: AppState = Depends(get_app_state)) -> SlugAssigner:
    return app_state.slugs


def get_enrichment(app_state: AppState = Depends(get_app_state)) -> MetadataEnrichmentCache:
    return app_state.enrichment


def get_latest_new(app_state: AppState = Depends(get_app_state)) -> LatestNewService:
    return app_state.latest_new


def get_banner(app_state: AppState = Depends(get_app_state)) -> BannerService:
    return app_state.banner


def get_discovery(app_state: AppState = Depends(get_app_state)) -> DiscoveryService:
    return app_state.discovery


def get_actors(app_state: AppState = Depends(get_app_state)) -> ActorDirectory:
    return app_state.actors
