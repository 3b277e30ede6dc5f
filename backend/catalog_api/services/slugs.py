"""URL slug derivation and deduplication for catalog items."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from ..schemas import BulkItemError, SlugRegenerationResponse
from ..utils.tokens import slugify

if TYPE_CHECKING:  # pragma: no cover
    from ..stores.catalog_store import CatalogStore

logger = logging.getLogger(__name__)

__all__ = ["SlugAssigner", "needs_new_slug", "slugify"]


def needs_new_slug(
    *,
    current_slug: str | None,
    old_name: str,
    new_name: str,
    old_year: int | None,
    new_year: int | None,
) -> bool:
    """Slugs are regenerated only when missing or when name or year change."""

    return not current_slug or old_name != new_name or old_year != new_year


class SlugAssigner:
    """Derives unique slugs, probing the store for collisions."""

    def __init__(self, store: "CatalogStore") -> None:
        self._store = store

    def assign(
        self,
        name: str,
        *,
        item_id: str,
        reserved: set[str] | None = None,
    ) -> str:
        """Return a slug for ``name`` that no other item holds.

        ``reserved`` carries slugs already handed out earlier in the same
        batch; the chosen slug is added to it.
        """

        base = slugify(name) or item_id
        taken = reserved if reserved is not None else set()
        candidate = base
        suffix = 2
        while candidate in taken or self._store.slug_exists(candidate, exclude_id=item_id):
            candidate = f"{base}-{suffix}"
            suffix += 1
        taken.add(candidate)
        return candidate

    def regenerate_all(self) -> SlugRegenerationResponse:
        """Walk the whole catalog and (re)assign every slug."""

        rows = self._store.all_ids_with_names()
        updated = 0
        errors: list[BulkItemError] = []
        for index, (item_id, name, _year, current) in enumerate(rows):
            try:
                slug = self.assign(name, item_id=item_id)
                if slug != current:
                    self._store.update_fields(item_id, {"slug": slug})
                updated += 1
            except IntegrityError as exc:
                logger.warning("Slug regeneration failed for %s: %s", item_id, exc)
                errors.append(
                    BulkItemError(index=index, name=name, error="Slug already taken")
                )
        logger.info("Regenerated slugs for %s items (%s errors)", updated, len(errors))
        return SlugRegenerationResponse(
            updated_count=updated, errors_count=len(errors), errors=errors
        )
