"""In-page reorders and cross-page moves of the display order."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..errors import NotFoundError, OrderIndexMissingError, PageRangeError, ValidationError
from ..schemas import CatalogFilter, MoveResponse, Placement, ReorderResponse
from ..stores.catalog_store import CatalogStore, FieldUpdate
from .listing import normalize_page, page_count, page_slice
from .ordering import CatalogOrderIndex

logger = logging.getLogger(__name__)


def _clean_ids(values: Sequence[Any] | None) -> list[str]:
    return [str(value).strip() for value in values or [] if str(value or "").strip()]


class PageReorderer:
    """Permutes ``order_index`` values among exactly the items of one page."""

    def __init__(self, store: CatalogStore, order_index: CatalogOrderIndex, *, page_size: int) -> None:
        self._store = store
        self._order_index = order_index
        self._page_size = page_size

    def reorder_page(
        self,
        page_number: Any,
        ordered_ids: Sequence[Any] | None,
        query: Mapping[str, Any] | None = None,
    ) -> ReorderResponse:
        ids = _clean_ids(ordered_ids)
        if not ids:
            raise ValidationError("orderedIds array is required")
        if len(set(ids)) != len(ids):
            raise ValidationError("orderedIds must not contain duplicates")

        page = normalize_page(page_number)
        self._order_index.ensure_order_indexes()
        filters = CatalogFilter.from_query(query, published_only=False)
        occupants = page_slice(self._store, filters, page, self._page_size).items
        if not occupants:
            raise PageRangeError("Page number out of range")

        page_ids = [item.id for item in occupants]
        if len(page_ids) != len(ids) or set(page_ids) != set(ids):
            raise PageRangeError("orderedIds must contain exactly the IDs of this page")

        slots = [item.order_index for item in occupants]
        if any(slot is None for slot in slots):
            raise OrderIndexMissingError("Some movies are missing orderIndex. Try again.")
        slots.sort()

        updates = [
            FieldUpdate(item_id, {"order_index": slot}) for item_id, slot in zip(ids, slots)
        ]
        self._store.bulk_write(updates)
        logger.info("Reordered %s items on page %s", len(updates), page)
        return ReorderResponse(page=page, reordered_count=len(updates))


class PagesMover:
    """Relocates a set of items to a target page and renumbers the catalog."""

    def __init__(self, store: CatalogStore, order_index: CatalogOrderIndex, *, page_size: int) -> None:
        self._store = store
        self._order_index = order_index
        self._page_size = page_size

    def move_to_page(self, target_page: Any, movie_ids: Sequence[Any] | None) -> MoveResponse:
        ids = _clean_ids(movie_ids)
        if not ids:
            raise ValidationError("movieIds array is required")

        self._order_index.ensure_order_indexes()
        ordering = self._order_index.global_order()
        wanted = set(ids)
        moved = [item for item in ordering if item.id in wanted]
        remaining = [item for item in ordering if item.id not in wanted]
        if not moved:
            raise NotFoundError("Selected movies not found")

        total = len(ordering)
        last_page = page_count(total, self._page_size)
        page = min(max(normalize_page(target_page), 1), last_page)
        offset = min((page - 1) * self._page_size, len(remaining))
        new_order = remaining[:offset] + moved + remaining[offset:]

        moved_ids = {item.id for item in moved}
        updates = []
        for position, item in enumerate(new_order, start=1):
            fields: dict[str, Any] = {"order_index": position}
            if page == 1 and item.id in moved_ids:
                fields["placement"] = Placement.PROMOTED
            updates.append(FieldUpdate(item.id, fields))
        self._store.bulk_write(updates)
        logger.info("Moved %s items to page %s (%s renumbered)", len(moved), page, total)
        return MoveResponse(total=total, target_page=page, moved_count=len(moved))
