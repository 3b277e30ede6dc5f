"""Admin-curated title lists driven by a flag and a curation timestamp."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, ClassVar, Sequence

from ..errors import ValidationError
from ..models import utcnow
from ..schemas import CatalogItemModel, CurationSetResponse
from ..stores.catalog_store import CatalogStore, CuratedList, FieldUpdate

logger = logging.getLogger(__name__)


def clean_ids(values: Sequence[Any] | None) -> list[str]:
    return [str(value).strip() for value in values or [] if str(value or "").strip()]


class CuratedListService:
    """Flags titles into a list ordered newest curation first.

    Subclasses name the list, its flag and timestamp fields and the messages
    returned when titles are added or removed.
    """

    kind: ClassVar[CuratedList]
    flag_field: ClassVar[str]
    stamp_field: ClassVar[str]
    label: ClassVar[str]
    max_limit: ClassVar[int]

    def __init__(
        self,
        store: CatalogStore,
        *,
        default_limit: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._default_limit = default_limit
        self._clock = clock

    def _limit(self, value: Any) -> int:
        try:
            limit = int(value)
        except (TypeError, ValueError):
            return self._default_limit
        if limit <= 0:
            return self._default_limit
        return min(limit, self.max_limit)

    def entries(self, *, published_only: bool, limit: Any = None) -> list[CatalogItemModel]:
        return self._store.curated(
            self.kind, published_only=published_only, limit=self._limit(limit)
        )

    def set_flag(self, movie_ids: Sequence[Any], value: bool = True) -> CurationSetResponse:
        ids = clean_ids(movie_ids)
        if not ids:
            raise ValidationError("movieIds array is required")
        existing = self._store.get_many(ids)
        if not existing:
            raise ValidationError("No valid movieIds provided")

        fields = (
            {self.flag_field: True, self.stamp_field: self._clock()}
            if value
            else {self.flag_field: False, self.stamp_field: None}
        )
        modified = self._store.bulk_write([FieldUpdate(item.id, dict(fields)) for item in existing])
        logger.info("%s: %s %s titles", self.label, "added" if value else "removed", len(existing))
        return CurationSetResponse(
            message=f"Added to {self.label}" if value else f"Removed from {self.label}",
            matched=len(existing),
            modified=modified,
        )
