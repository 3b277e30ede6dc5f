"""Rank assignment for the admin-curated display order."""
from __future__ import annotations

import logging

from ..schemas import CatalogFilter, CatalogItemModel, Placement
from ..stores.catalog_store import CatalogStore, FieldUpdate

logger = logging.getLogger(__name__)


class CatalogOrderIndex:
    """Hands out ``order_index`` values and repairs legacy gaps."""

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def initial_index(self, placement: Placement) -> int:
        """Rank for a newly created item given its placement."""

        if placement is Placement.PINNED:
            _, high = self._store.order_index_bounds(partition="pinned")
            if high is None:
                _, high = self._store.order_index_bounds()
            return (high or 0) + 1
        if placement is Placement.PROMOTED:
            low, _ = self._store.order_index_bounds(partition="normal")
            return low if low is not None else 1
        _, high = self._store.order_index_bounds(partition="normal")
        return (high or 0) + 1

    def tail_index(self) -> int:
        """Rank just past every existing item, used by bulk creates."""

        _, high = self._store.order_index_bounds()
        return (high or 0) + 1

    def index_for_partition_change(
        self, previous: Placement, current: Placement
    ) -> int | None:
        """Return a new rank when an update moves an item across partitions."""

        was_pinned = previous is Placement.PINNED
        is_pinned = current is Placement.PINNED
        if was_pinned == is_pinned:
            return None
        partition = "pinned" if is_pinned else "normal"
        _, high = self._store.order_index_bounds(partition=partition)
        if high is None:
            _, high = self._store.order_index_bounds()
        return (high or 0) + 1

    def global_order(self) -> list[CatalogItemModel]:
        """Every item in display order: normal partition, then pinned."""

        everything = CatalogFilter()
        return self._store.find(everything, partition="normal") + self._store.find(
            everything, partition="pinned"
        )

    def ensure_order_indexes(self) -> bool:
        """Renumber the catalog ``1..n`` if any item lacks a rank.

        Returns ``True`` when a repair was written.
        """

        missing = self._store.count_missing_order_index()
        if not missing:
            return False
        ordering = self.global_order()
        updates = [
            FieldUpdate(item.id, {"order_index": position})
            for position, item in enumerate(ordering, start=1)
        ]
        self._store.bulk_write(updates)
        logger.info("Repaired order indexes (%s missing, %s renumbered)", missing, len(updates))
        return True
