"""Admin catalog endpoints: writes, ordering, slugs and enrichment sync.

Authentication is handled by an upstream gateway and is not enforced here.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..dependencies import (
    get_banner,
    get_catalog_service,
    get_discovery,
    get_enrichment,
    get_latest_new,
    get_mover,
    get_reorderer,
    get_slug_assigner,
)
from ..errors import CatalogError
from ..schemas import (
    BulkCreateResponse,
    BulkDeleteResponse,
    BulkRequest,
    BulkUpdateResponse,
    CatalogItemCreate,
    CatalogItemModel,
    CatalogItemUpdate,
    CatalogPage,
    EnrichmentSyncRequest,
    EnrichmentSyncResponse,
    FindByNamesRequest,
    FindByNamesResponse,
    LatestNewReorderRequest,
    LatestNewReorderResponse,
    CurationSetRequest,
    CurationSetResponse,
    MessageResponse,
    MoveRequest,
    MoveResponse,
    ReorderRequest,
    ReorderResponse,
    SlugRegenerationResponse,
)
from ..services.banner import BannerService
from ..services.catalog_service import CatalogService
from ..services.discovery import DiscoveryService
from ..services.enrichment import MetadataEnrichmentCache
from ..services.latest_new import LatestNewService
from ..services.reorder import PageReorderer, PagesMover
from ..services.slugs import SlugAssigner
from .movies import listing_query

router = APIRouter(prefix="/movies", tags=["admin"])


@router.get("/admin", response_model=CatalogPage)
def list_movies_admin(
    page_number: str | None = Query(default=None, alias="pageNumber"),
    query: dict[str, Any] = Depends(listing_query),
    service: CatalogService = Depends(get_catalog_service),
) -> CatalogPage:
    """Return one page of the catalog including unpublished drafts."""

    return service.list_page(query, published_only=False, page=page_number)


@router.get("/admin/latest-new", response_model=list[CatalogItemModel])
def latest_new_admin(
    limit: str | None = Query(default=None),
    curation: LatestNewService = Depends(get_latest_new),
) -> list[CatalogItemModel]:
    return curation.entries(published_only=False, limit=limit)


@router.get("/admin/banner", response_model=list[CatalogItemModel])
def banner_admin(
    limit: str | None = Query(default=None),
    curation: BannerService = Depends(get_banner),
) -> list[CatalogItemModel]:
    return curation.entries(published_only=False, limit=limit)


@router.get("/admin/related/{id_or_slug}", response_model=list[CatalogItemModel])
def related_movies_admin(
    id_or_slug: str,
    limit: str | None = Query(default=None),
    discovery: DiscoveryService = Depends(get_discovery),
) -> list[CatalogItemModel]:
    """Related titles including drafts."""

    try:
        return discovery.related(id_or_slug, published_only=False, limit=limit)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.get("/admin/{id_or_slug}", response_model=CatalogItemModel)
def get_movie_admin(
    id_or_slug: str, service: CatalogService = Depends(get_catalog_service)
) -> CatalogItemModel:
    try:
        return service.get_admin(id_or_slug)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("", response_model=CatalogItemModel, status_code=status.HTTP_201_CREATED)
def create_movie(
    payload: CatalogItemCreate, service: CatalogService = Depends(get_catalog_service)
) -> CatalogItemModel:
    """Create a catalog item with a unique slug and an initial rank."""

    try:
        return service.create(payload)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/bulk", response_model=BulkCreateResponse, status_code=status.HTTP_201_CREATED)
def bulk_create(
    payload: BulkRequest,
    response: Response,
    service: CatalogService = Depends(get_catalog_service),
) -> BulkCreateResponse:
    """Insert many items; rows that fail validation are reported individually."""

    try:
        result = service.bulk_create(payload.movies)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    if not result.inserted_count:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.put("/bulk-exact", response_model=BulkUpdateResponse)
def bulk_exact_update(
    payload: BulkRequest,
    response: Response,
    service: CatalogService = Depends(get_catalog_service),
) -> BulkUpdateResponse:
    try:
        result = service.bulk_exact_update(payload.movies)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    if result.errors_count and not result.matched:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete(
    payload: BulkRequest,
    response: Response,
    service: CatalogService = Depends(get_catalog_service),
) -> BulkDeleteResponse:
    try:
        result = service.bulk_delete(payload.movies)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    if result.errors_count and not result.deleted_count:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.put("/{item_id}", response_model=CatalogItemModel)
def update_movie(
    item_id: str,
    payload: CatalogItemUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> CatalogItemModel:
    try:
        return service.update(item_id, payload)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.delete("/{item_id}", response_model=MessageResponse)
def delete_movie(
    item_id: str, service: CatalogService = Depends(get_catalog_service)
) -> MessageResponse:
    try:
        return service.delete(item_id)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/find-by-names", response_model=FindByNamesResponse)
def find_by_names(
    payload: FindByNamesRequest, service: CatalogService = Depends(get_catalog_service)
) -> FindByNamesResponse:
    try:
        return service.find_by_names(payload)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/reorder-page", response_model=ReorderResponse)
def reorder_page(
    payload: ReorderRequest, reorderer: PageReorderer = Depends(get_reorderer)
) -> ReorderResponse:
    """Permute rank values among exactly the items shown on one page."""

    try:
        return reorderer.reorder_page(payload.page_number, payload.ordered_ids, payload.query)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/move-to-page", response_model=MoveResponse)
def move_to_page(payload: MoveRequest, mover: PagesMover = Depends(get_mover)) -> MoveResponse:
    """Move items to the start of a target page and renumber the catalog."""

    try:
        return mover.move_to_page(payload.target_page, payload.movie_ids)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/generate-slugs", response_model=SlugRegenerationResponse)
def generate_slugs(slugs: SlugAssigner = Depends(get_slug_assigner)) -> SlugRegenerationResponse:
    return slugs.regenerate_all()


@router.post("/admin/tmdb/sync-credits", response_model=EnrichmentSyncResponse)
def sync_credits(
    payload: EnrichmentSyncRequest,
    enrichment: MetadataEnrichmentCache = Depends(get_enrichment),
) -> EnrichmentSyncResponse:
    try:
        return enrichment.sync("credits", payload)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/ratings/sync", response_model=EnrichmentSyncResponse)
def sync_ratings(
    payload: EnrichmentSyncRequest,
    enrichment: MetadataEnrichmentCache = Depends(get_enrichment),
) -> EnrichmentSyncResponse:
    try:
        return enrichment.sync("ratings", payload)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/latest-new", response_model=CurationSetResponse)
def set_latest_new(
    payload: CurationSetRequest, curation: LatestNewService = Depends(get_latest_new)
) -> CurationSetResponse:
    try:
        return curation.set_flag(payload.movie_ids, payload.value)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/latest-new/reorder", response_model=LatestNewReorderResponse)
def reorder_latest_new(
    payload: LatestNewReorderRequest, curation: LatestNewService = Depends(get_latest_new)
) -> LatestNewReorderResponse:
    try:
        return curation.reorder(payload.ordered_ids)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/admin/banner", response_model=CurationSetResponse)
def set_banner(
    payload: CurationSetRequest, curation: BannerService = Depends(get_banner)
) -> CurationSetResponse:
    """Add titles to the banner (``value`` true) or take them off it."""

    try:
        return curation.set_flag(payload.movie_ids, payload.value)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
