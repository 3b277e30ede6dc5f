"""Public filmography pages keyed by person slug."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_actors
from ..errors import CatalogError
from ..schemas import ActorPage
from ..services.actors import ActorDirectory

router = APIRouter(prefix="/actors", tags=["actors"])


@router.get("/{slug}", response_model=ActorPage)
def filmography(
    slug: str,
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    directory: ActorDirectory = Depends(get_actors),
) -> ActorPage:
    """Published titles crediting the person as cast or director, in display order."""

    try:
        return directory.filmography(slug, page=page, limit=limit)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
