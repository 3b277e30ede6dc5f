"""Create, update, delete and bulk orchestration for catalog items."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Callable, Mapping, Sequence
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..models import utcnow
from ..schemas import (
    BulkCreateResponse,
    BulkDeleteItem,
    BulkDeleteResponse,
    BulkExactUpdateItem,
    BulkItemError,
    BulkUpdateResponse,
    CatalogFilter,
    CatalogItemCreate,
    CatalogItemModel,
    CatalogItemUpdate,
    CatalogPage,
    FindByNamesRequest,
    FindByNamesResponse,
    MessageResponse,
    Placement,
    resolve_placement,
)
from ..stores.catalog_store import CatalogStore, MatchUpdate
from .enrichment import MetadataEnrichmentCache, cleared_enrichment_fields
from .listing import assemble_page
from .ordering import CatalogOrderIndex
from .slugs import SlugAssigner, needs_new_slug, slugify

logger = logging.getLogger(__name__)

MAX_LOOKUP_NAMES = 200
TOP_RATED_LIMIT = 10
LATEST_LIMIT = 15

_IDENTITY_FIELDS = ("type", "name", "year", "imdb_id")
_PLACEMENT_FIELDS = {"placement", "latest", "previous_hit"}
# Empty strings on update keep the stored value for these fields.
_KEEP_WHEN_BLANK = {
    "name",
    "desc",
    "image",
    "title_image",
    "category",
    "browse_by",
    "language",
    "seo_title",
    "seo_description",
    "seo_keywords",
}


def validation_message(exc: PydanticValidationError) -> str:
    """Flatten the first pydantic error into a single readable sentence."""

    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    message = str(first.get("msg") or "Invalid value")
    message = re.sub(r"^(Value error|Assertion failed), ", "", message)
    location = ".".join(str(part) for part in first.get("loc") or ())
    return f"{location}: {message}" if location and first.get("type") != "value_error" else message


def seo_defaults(
    *, name: str, desc: str, category: str, language: str, description_length: int
) -> dict[str, str]:
    return {
        "seo_title": name,
        "seo_description": desc[:description_length],
        "seo_keywords": f"{name}, {category}, {language} movies",
    }


def _normalize_key(value: str | None) -> str:
    return re.sub(r"\s+", " ", str(value or "").strip()).lower()


class CatalogService:
    """Coordinates the store, slug assigner, rank index and enrichment cache."""

    def __init__(
        self,
        store: CatalogStore,
        *,
        slugs: SlugAssigner,
        order_index: CatalogOrderIndex,
        enrichment: MetadataEnrichmentCache,
        page_size: int = 50,
        slug_conflict_retries: int = 3,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._slugs = slugs
        self._order_index = order_index
        self._enrichment = enrichment
        self._page_size = page_size
        self._slug_conflict_retries = slug_conflict_retries
        self._id_factory = id_factory
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads

    def list_page(
        self, query: Mapping[str, Any] | None, *, published_only: bool, page: Any = 1
    ) -> CatalogPage:
        filters = CatalogFilter.from_query(query, published_only=published_only)
        return assemble_page(self._store, filters, page, self._page_size)

    def get_public(self, key: str) -> CatalogItemModel:
        """Detail read: published only, refreshes stale metadata, counts the view."""

        item = self._store.find_by_id_or_slug(key, published_only=True)
        if item is None:
            raise NotFoundError("Movie not found")
        if not item.slug:
            item = self._assign_slug(item)
        item = self._enrichment.refresh_for_read(item)
        return self._store.update_fields(item.id, {"view_count": item.view_count + 1}) or item

    def get_admin(self, key: str) -> CatalogItemModel:
        item = self._store.find_by_id_or_slug(key)
        if item is None:
            raise NotFoundError("Movie not found")
        return item

    def top_rated(self) -> list[CatalogItemModel]:
        return self._store.top(sort="rate_desc", limit=TOP_RATED_LIMIT)

    def latest(self) -> list[CatalogItemModel]:
        return self._store.top(sort="created_desc", limit=LATEST_LIMIT)

    def browse_by_values(self) -> list[str]:
        return self._store.distinct("browse_by", CatalogFilter(published_only=True))

    def find_by_names(self, request: FindByNamesRequest) -> FindByNamesResponse:
        cleaned = [name.strip() for name in request.raw_names() if name and name.strip()]
        if not cleaned:
            raise ValidationError(
                'Provide names as: { names: ["Movie 1", "Movie 2"] } (or movies/items/text)'
            )
        unique = list(dict.fromkeys(cleaned))[:MAX_LOOKUP_NAMES]
        found = self._store.find_by_names(unique, mode=request.mode)

        order = {_normalize_key(name): index for index, name in enumerate(unique)}
        found.sort(key=lambda item: (order.get(_normalize_key(item.name), len(order)), item.id))
        matched = {_normalize_key(item.name) for item in found}
        not_found = [name for name in unique if _normalize_key(name) not in matched]
        return FindByNamesResponse(
            input_count=len(cleaned),
            unique_count=len(unique),
            matched_count=len(found),
            not_found_count=len(not_found),
            not_found=not_found,
            movies=found,
        )

    # ------------------------------------------------------------------
    # Single item writes

    def _assign_slug(self, item: CatalogItemModel) -> CatalogItemModel:
        for attempt in range(self._slug_conflict_retries + 1):
            slug = self._slugs.assign(item.name, item_id=item.id)
            try:
                return self._store.update_fields(item.id, {"slug": slug}) or item
            except IntegrityError:
                logger.warning("Slug %s taken concurrently (attempt %s)", slug, attempt + 1)
        raise ValidationError("Could not assign a unique slug, try again")

    def _insert_with_slug(
        self, item: CatalogItemModel, reserved: set[str] | None = None
    ) -> CatalogItemModel:
        for attempt in range(self._slug_conflict_retries + 1):
            slug = self._slugs.assign(item.name, item_id=item.id, reserved=reserved)
            try:
                return self._store.insert(item.model_copy(update={"slug": slug}))
            except IntegrityError:
                logger.warning("Slug %s taken concurrently (attempt %s)", slug, attempt + 1)
        raise ValidationError("Could not assign a unique slug, try again")

    def _new_item(
        self,
        payload: CatalogItemCreate,
        *,
        placement: Placement,
        order_index: int,
        description_length: int,
    ) -> CatalogItemModel:
        now = self._clock()
        defaults = seo_defaults(
            name=payload.name,
            desc=payload.desc,
            category=payload.category,
            language=payload.language,
            description_length=description_length,
        )
        data = payload.model_dump(exclude=_PLACEMENT_FIELDS)
        for key, value in defaults.items():
            if not data.get(key):
                data[key] = value
        return CatalogItemModel(
            **data,
            id=self._id_factory(),
            placement=placement,
            order_index=order_index,
            view_count=0,
            created_at=now,
            updated_at=now,
        )

    def create(self, payload: CatalogItemCreate) -> CatalogItemModel:
        """Create an item, assign its slug and rank, then fetch credits best-effort."""

        try:
            placement = payload.resolved_placement()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        item = self._new_item(
            payload,
            placement=placement,
            order_index=self._order_index.initial_index(placement),
            description_length=300,
        )
        created = self._insert_with_slug(item)
        logger.info("Created %s %s (%s)", created.type.value, created.id, created.slug)
        return self._enrichment.refresh_credits(created, force=True).item

    def update(self, item_id: str, payload: CatalogItemUpdate) -> CatalogItemModel:
        item = self._store.get(item_id)
        if item is None:
            raise NotFoundError("Movie not found")

        provided = payload.model_dump(exclude_unset=True, exclude=_PLACEMENT_FIELDS)
        fields: dict[str, Any] = {}
        for key, value in provided.items():
            if value is None:
                continue
            if key in _KEEP_WHEN_BLANK and isinstance(value, str) and not value.strip():
                continue
            if key in ("director", "imdb_id"):
                value = str(value).strip()
            fields[key] = value
        if "casts" in fields:
            fields["casts"] = payload.casts

        try:
            placement = resolve_placement(
                placement=payload.placement,
                latest=payload.latest,
                previous_hit=payload.previous_hit,
                current=item.placement,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if placement is not item.placement:
            fields["placement"] = placement
            new_index = self._order_index.index_for_partition_change(item.placement, placement)
            if new_index is not None:
                fields["order_index"] = new_index

        candidate = item.model_copy(update=fields)
        identity_changed = any(
            getattr(candidate, key) != getattr(item, key) for key in _IDENTITY_FIELDS
        )
        if identity_changed:
            fields.update(cleared_enrichment_fields())

        regenerate = needs_new_slug(
            current_slug=item.slug,
            old_name=item.name,
            new_name=candidate.name,
            old_year=item.year,
            new_year=candidate.year,
        )
        stored = None
        for attempt in range(self._slug_conflict_retries + 1):
            if regenerate:
                fields["slug"] = self._slugs.assign(candidate.name, item_id=item.id)
            try:
                stored = self._store.update_fields(item.id, fields)
                break
            except IntegrityError:
                logger.warning("Slug conflict updating %s (attempt %s)", item.id, attempt + 1)
        if stored is None:
            raise ValidationError("Could not assign a unique slug, try again")

        if identity_changed:
            stored = self._enrichment.refresh_ratings(stored).item
        return self._enrichment.refresh_credits(stored, force=identity_changed).item

    def delete(self, item_id: str) -> MessageResponse:
        if not self._store.delete(item_id):
            raise NotFoundError("Movie not found")
        logger.info("Deleted catalog item %s", item_id)
        return MessageResponse(message="Movie removed")

    # ------------------------------------------------------------------
    # Bulk writes

    @staticmethod
    def _row_error(index: int, row: Any, message: str) -> BulkItemError:
        data = row if isinstance(row, Mapping) else {}
        name = data.get("name")
        item_type = data.get("type")
        return BulkItemError(
            index=index,
            name=str(name) if name else None,
            type=str(item_type) if item_type else None,
            error=message or "Unknown error",
        )

    def bulk_create(self, rows: Sequence[Any]) -> BulkCreateResponse:
        """Insert every valid row at the global tail; invalid rows are reported."""

        if not rows:
            raise ValidationError('Request body must contain a non-empty "movies" array')

        errors: list[BulkItemError] = []
        inserted: list[CatalogItemModel] = []
        reserved: set[str] = set()
        next_index = self._order_index.tail_index()
        for index, row in enumerate(rows):
            try:
                payload = CatalogItemCreate.model_validate(row)
                placement = payload.resolved_placement()
                item = self._new_item(
                    payload,
                    placement=placement,
                    order_index=next_index,
                    description_length=155,
                )
                inserted.append(self._insert_with_slug(item, reserved))
                next_index += 1
            except PydanticValidationError as exc:
                errors.append(self._row_error(index, row, validation_message(exc)))
            except ValidationError as exc:
                errors.append(self._row_error(index, row, str(exc)))

        logger.info("Bulk create inserted=%s errors=%s", len(inserted), len(errors))
        message = (
            "Bulk create executed"
            if inserted
            else 'No valid movies to create. See "errors" for details.'
        )
        return BulkCreateResponse(
            message=message,
            inserted_count=len(inserted),
            errors_count=len(errors),
            errors=errors,
            inserted=inserted,
        )

    def bulk_exact_update(self, rows: Sequence[Any]) -> BulkUpdateResponse:
        """Update items matched by id, or by exact (name, type) when no id is given."""

        if not rows:
            raise ValidationError('Request body must contain a non-empty "movies" array')

        errors: list[BulkItemError] = []
        operations: list[MatchUpdate] = []
        for index, row in enumerate(rows):
            try:
                payload = BulkExactUpdateItem.model_validate(row)
            except PydanticValidationError as exc:
                errors.append(self._row_error(index, row, validation_message(exc)))
                continue

            fields = payload.model_dump(
                exclude_unset=True, exclude=_PLACEMENT_FIELDS | {"id", "slug"}
            )
            fields["type"] = payload.type
            fields["name"] = payload.name.strip()
            if "casts" in fields:
                fields["casts"] = payload.casts or []
            if payload.slug is not None and slugify(payload.slug):
                fields["slug"] = slugify(payload.slug)
            if payload.model_fields_set & _PLACEMENT_FIELDS:
                fields["placement"] = resolve_placement(
                    placement=payload.placement,
                    latest=payload.latest,
                    previous_hit=payload.previous_hit,
                )
            raw_keys = set(row) if isinstance(row, Mapping) else set()
            if raw_keys & {"type", "name", "year", "imdbId", "imdb_id"}:
                fields.update(cleared_enrichment_fields())

            operations.append(
                MatchUpdate(
                    fields=fields,
                    item_id=payload.id,
                    name=None if payload.id else payload.name.strip(),
                    item_type=None if payload.id else payload.type,
                )
            )

        if not operations:
            return BulkUpdateResponse(
                message='No valid updates to apply. See "errors" for details.',
                matched=0,
                modified=0,
                errors_count=len(errors),
                errors=errors,
            )
        try:
            matched, modified = self._store.bulk_update_matching(operations)
        except IntegrityError as exc:
            raise ValidationError("Bulk update rejected: slug already in use") from exc
        logger.info("Bulk update matched=%s modified=%s errors=%s", matched, modified, len(errors))
        return BulkUpdateResponse(
            message="Bulk exact update executed",
            matched=matched,
            modified=modified,
            errors_count=len(errors),
            errors=errors,
        )

    def bulk_delete(self, rows: Sequence[Any]) -> BulkDeleteResponse:
        if not rows:
            raise ValidationError('Request body must contain a non-empty "movies" array')

        errors: list[BulkItemError] = []
        keys: list[MatchUpdate] = []
        for index, row in enumerate(rows):
            try:
                payload = BulkDeleteItem.model_validate(row)
            except PydanticValidationError as exc:
                errors.append(self._row_error(index, row, validation_message(exc)))
                continue
            if payload.id:
                keys.append(MatchUpdate(fields={}, item_id=payload.id))
            else:
                keys.append(
                    MatchUpdate(
                        fields={}, name=(payload.name or "").strip(), item_type=payload.type
                    )
                )

        if not keys:
            return BulkDeleteResponse(
                message='No valid items to delete. See "errors" for details.',
                deleted_count=0,
                errors_count=len(errors),
                errors=errors,
            )
        deleted = self._store.delete_matching(keys)
        logger.info("Bulk delete removed=%s errors=%s", deleted, len(errors))
        return BulkDeleteResponse(
            message="Bulk delete executed",
            deleted_count=deleted,
            errors_count=len(errors),
            errors=errors,
        )
