"""Related titles and random picks for the public catalog pages."""
from __future__ import annotations

from typing import Any

from ..errors import NotFoundError
from ..schemas import CatalogFilter, CatalogItemModel
from ..stores.catalog_store import CatalogStore
from ..utils.tokens import category_tokens
from .listing import page_slice

RELATED_DEFAULT_LIMIT = 20
RELATED_MAX_LIMIT = 50
RANDOM_SAMPLE_SIZE = 8


def clamp_limit(value: Any, *, default: int, maximum: int) -> int:
    """Parse a ``limit`` query value; junk or non-positive values use ``default``."""

    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    if limit <= 0:
        return default
    return min(limit, maximum)


class DiscoveryService:
    def __init__(self, store: CatalogStore, *, random_size: int = RANDOM_SAMPLE_SIZE) -> None:
        self._store = store
        self._random_size = random_size

    def related(
        self, key: str, *, published_only: bool, limit: Any = None
    ) -> list[CatalogItemModel]:
        """Titles sharing at least one category token with ``key``, in display order.

        Tokens match whole delimited entries, so ``Crime`` never matches
        ``Crimean``. A title without any category has no related titles.
        """

        current = self._store.find_by_id_or_slug(key, published_only=published_only)
        if current is None:
            raise NotFoundError("Movie not found")
        tokens = category_tokens(current.category)
        if not tokens:
            return []
        filters = CatalogFilter(
            category_any=tokens, exclude_id=current.id, published_only=published_only
        )
        size = clamp_limit(limit, default=RELATED_DEFAULT_LIMIT, maximum=RELATED_MAX_LIMIT)
        return page_slice(self._store, filters, 1, size).items

    def random_picks(self) -> list[CatalogItemModel]:
        return self._store.sample(self._random_size, published_only=True)
