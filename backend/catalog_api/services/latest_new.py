"""Curated "Latest New" list, ordered by its curation timestamps."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Sequence

from ..errors import NotFoundError, ValidationError
from ..schemas import LatestNewReorderResponse
from ..stores.catalog_store import FieldUpdate
from .curation import CuratedListService, clean_ids

logger = logging.getLogger(__name__)

LATEST_NEW_MAX_LIMIT = 200
LATEST_NEW_REORDER_MAX = 500


class LatestNewService(CuratedListService):
    """Maintains the Latest New list without touching the catalog order."""

    kind = "latest_new"
    flag_field = "latest_new"
    stamp_field = "latest_new_at"
    label = "Latest New"
    max_limit = LATEST_NEW_MAX_LIMIT

    def reorder(self, ordered_ids: Sequence[Any]) -> LatestNewReorderResponse:
        """Put ``ordered_ids`` first and keep the rest in their current order.

        Timestamps are rewritten one second apart so the newest-first sort
        reproduces the requested order.
        """

        ids = list(dict.fromkeys(clean_ids(ordered_ids)))
        if not ids:
            raise ValidationError("orderedIds array is required")

        current = self._store.curated(self.kind, published_only=False)
        if not current:
            raise NotFoundError("No Latest New titles found to reorder")
        if len(current) > LATEST_NEW_REORDER_MAX:
            raise ValidationError(
                f"Too many Latest New titles ({len(current)}). Reduce before reordering."
            )

        all_ids = [item.id for item in current]
        members = set(all_ids)
        in_list = [item_id for item_id in ids if item_id in members]
        if not in_list:
            raise ValidationError("None of the provided IDs belong to the Latest New list")

        chosen = set(in_list)
        final_order = in_list + [item_id for item_id in all_ids if item_id not in chosen]
        now = self._clock()
        self._store.bulk_write(
            [
                FieldUpdate(item_id, {self.stamp_field: now - timedelta(seconds=index)})
                for index, item_id in enumerate(final_order)
            ]
        )
        logger.info("Reordered Latest New list (%s of %s pinned first)", len(in_list), len(all_ids))
        return LatestNewReorderResponse(
            total_latest_new=len(all_ids), reordered_count=len(in_list)
        )
