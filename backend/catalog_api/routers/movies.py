"""Public catalog endpoints (published items only)."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_banner, get_catalog_service, get_discovery, get_latest_new
from ..errors import CatalogError
from ..schemas import CatalogItemModel, CatalogPage
from ..services.banner import BannerService
from ..services.catalog_service import CatalogService
from ..services.discovery import DiscoveryService
from ..services.latest_new import LatestNewService

router = APIRouter(prefix="/movies", tags=["movies"])


def listing_query(
    category: str | None = Query(default=None, description="Exact category match."),
    time: str | None = Query(default=None, description="Exact runtime in minutes."),
    language: str | None = Query(default=None),
    rate: str | None = Query(default=None),
    year: str | None = Query(default=None),
    browse_by: str | None = Query(
        default=None,
        alias="browseBy",
        description="Comma separated browse tags; any of them matches.",
    ),
    search: str | None = Query(default=None, description="Case-insensitive name prefix."),
    item_type: str | None = Query(default=None, alias="type"),
) -> dict[str, Any]:
    """Collect raw listing filters; blank or malformed values are ignored."""

    return {
        "category": category,
        "time": time,
        "language": language,
        "rate": rate,
        "year": year,
        "browseBy": browse_by,
        "search": search,
        "type": item_type,
    }


@router.get("", response_model=CatalogPage)
def list_movies(
    page_number: str | None = Query(default=None, alias="pageNumber"),
    query: dict[str, Any] = Depends(listing_query),
    service: CatalogService = Depends(get_catalog_service),
) -> CatalogPage:
    """Return one page of the published catalog in display order."""

    return service.list_page(query, published_only=True, page=page_number)


@router.get("/rated/top", response_model=list[CatalogItemModel])
def top_rated(service: CatalogService = Depends(get_catalog_service)) -> list[CatalogItemModel]:
    return service.top_rated()


@router.get("/latest", response_model=list[CatalogItemModel])
def latest(service: CatalogService = Depends(get_catalog_service)) -> list[CatalogItemModel]:
    return service.latest()


@router.get("/latest-new", response_model=list[CatalogItemModel])
def latest_new(
    limit: str | None = Query(default=None),
    curation: LatestNewService = Depends(get_latest_new),
) -> list[CatalogItemModel]:
    """Return the curated Latest New list, newest curation first."""

    return curation.entries(published_only=True, limit=limit)


@router.get("/browse-by-distinct", response_model=list[str])
def browse_by_distinct(service: CatalogService = Depends(get_catalog_service)) -> list[str]:
    return service.browse_by_values()


@router.get("/banner", response_model=list[CatalogItemModel])
def banner(
    limit: str | None = Query(default=None),
    curation: BannerService = Depends(get_banner),
) -> list[CatalogItemModel]:
    """Return the published banner titles, most recently featured first."""

    return curation.entries(published_only=True, limit=limit)


@router.get("/random/all", response_model=list[CatalogItemModel])
def random_movies(
    discovery: DiscoveryService = Depends(get_discovery),
) -> list[CatalogItemModel]:
    return discovery.random_picks()


@router.get("/related/{id_or_slug}", response_model=list[CatalogItemModel])
def related_movies(
    id_or_slug: str,
    limit: str | None = Query(default=None),
    discovery: DiscoveryService = Depends(get_discovery),
) -> list[CatalogItemModel]:
    """Return published titles sharing a category with the given one."""

    try:
        return discovery.related(id_or_slug, published_only=True, limit=limit)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.get("/{id_or_slug}", response_model=CatalogItemModel)
def get_movie(
    id_or_slug: str, service: CatalogService = Depends(get_catalog_service)
) -> CatalogItemModel:
    """Return a published item by id or slug, refreshing stale metadata."""

    try:
        return service.get_public(id_or_slug)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
