"""Filmography pages built from the cached cast and director credits."""
from __future__ import annotations

from typing import Any, Iterable

from ..errors import NotFoundError, ValidationError
from ..schemas import ActorPage, ActorProfile, CatalogFilter, CatalogItemModel
from ..stores.catalog_store import CatalogStore
from ..utils.tokens import slugify
from .discovery import clamp_limit
from .listing import normalize_page, page_slice

ACTOR_DEFAULT_LIMIT = 24
ACTOR_MAX_LIMIT = 60


def describe_person(slug: str, items: Iterable[CatalogItemModel]) -> ActorProfile:
    """Best-effort display name, portrait and roles for ``slug``."""

    name = slug.replace("-", " ")
    image = ""
    roles: set[str] = set()
    for item in items:
        if item.director and slugify(item.director) == slug:
            name = item.director
            roles.add("director")
        for cast in item.casts:
            if slugify(cast.name) == slug:
                name = cast.name
                image = image or cast.image
                roles.add("actor")
                break
    return ActorProfile(name=name, slug=slug, image=image, roles=sorted(roles))


class ActorDirectory:
    """Looks people up by slug across every published title's credits."""

    def __init__(
        self,
        store: CatalogStore,
        *,
        default_limit: int = ACTOR_DEFAULT_LIMIT,
        max_limit: int = ACTOR_MAX_LIMIT,
    ) -> None:
        self._store = store
        self._default_limit = default_limit
        self._max_limit = max_limit

    def filmography(self, slug: str, *, page: Any = None, limit: Any = None) -> ActorPage:
        key = slugify(slug)
        if not key:
            raise ValidationError("Actor slug is required")
        current = normalize_page(page)
        size = clamp_limit(limit, default=self._default_limit, maximum=self._max_limit)
        filters = CatalogFilter(credited=key, published_only=True)

        result = page_slice(self._store, filters, current, size)
        if not result.total:
            raise NotFoundError("Actor not found")
        sample = result.items or page_slice(self._store, filters, 1, size).items
        return ActorPage(
            actor=describe_person(key, sample),
            page=current,
            pages=result.pages,
            total=result.total,
            items=result.items,
        )
