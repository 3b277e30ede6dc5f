"""Pydantic models exposed by the Catalog API."""
from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .models import as_utc

SQL_INT_MIN = -(2**63)
SQL_INT_MAX = 2**63 - 1
PAGE_NUMBER_MAX = 1_000_000


class ItemType(str, Enum):
    """Kind of catalog entry."""

    MOVIE = "Movie"
    SERIES = "Series"


class Placement(str, Enum):
    """Where an item lives in the merged listing.

    ``promoted`` sorts to the front of the normal partition, ``pinned`` moves
    the item into the secondary partition appended after every normal item.
    """

    NORMAL = "normal"
    PROMOTED = "promoted"
    PINNED = "pinned"


_MOVIE_ALIASES = {"movie", "movies"}
_SERIES_ALIASES = {
    "series",
    "webseries",
    "web-series",
    "web series",
    "tvshows",
    "tv-shows",
    "tv shows",
}


def normalize_item_type(value: Any) -> ItemType | None:
    """Map loose type spellings (``movies``, ``WebSeries``...) onto ItemType."""

    if isinstance(value, ItemType):
        return value
    text = str(value or "").strip().lower()
    if not text:
        return None
    if text in _MOVIE_ALIASES:
        return ItemType.MOVIE
    if text in _SERIES_ALIASES:
        return ItemType.SERIES
    return None


def resolve_placement(
    *,
    placement: Placement | None,
    latest: bool | None,
    previous_hit: bool | None,
    current: Placement = Placement.NORMAL,
) -> Placement:
    """Fold the legacy ``latest``/``previousHit`` booleans into a Placement."""

    if placement is not None:
        return placement
    if latest and previous_hit:
        raise ValueError("Movie cannot be both Latest and PreviousHit")
    if latest:
        return Placement.PROMOTED
    if previous_hit:
        return Placement.PINNED
    if latest is False and current is Placement.PROMOTED:
        return Placement.NORMAL
    if previous_hit is False and current is Placement.PINNED:
        return Placement.NORMAL
    return current


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CastMember(CamelModel):
    name: str
    image: str = ""


class ImdbRating(CamelModel):
    rating: float | None = None
    votes: int | None = None
    url: str = ""


class RottenTomatoesRating(CamelModel):
    rating: float | None = None
    url: str = ""


class ExternalRatings(CamelModel):
    """Cached third-party ratings (IMDb 0..10, Rotten Tomatoes 0..100)."""

    imdb: ImdbRating = Field(default_factory=ImdbRating)
    rotten_tomatoes: RottenTomatoesRating = Field(default_factory=RottenTomatoesRating)

    def is_empty(self) -> bool:
        return (
            self.imdb.rating is None
            and self.imdb.votes is None
            and self.rotten_tomatoes.rating is None
        )


class CatalogItemModel(CamelModel):
    """Full catalog entry as stored and returned by the API."""

    id: str
    name: str
    type: ItemType = ItemType.MOVIE
    slug: str | None = None
    desc: str = ""
    image: str = ""
    title_image: str = ""
    thumbnail_info: str = ""
    category: str = ""
    browse_by: str = ""
    language: str = ""
    year: int | None = None
    time: int | None = None
    rate: float = 0.0
    number_of_reviews: int = 0
    view_count: int = 0
    seo_title: str = ""
    seo_description: str = ""
    seo_keywords: str = ""
    placement: Placement = Placement.NORMAL
    order_index: int | None = None
    is_published: bool = True
    latest_new: bool = False
    latest_new_at: datetime | None = None
    banner: bool = False
    banner_at: datetime | None = None
    imdb_id: str = ""
    tmdb_id: int | None = None
    tmdb_type: str = ""
    casts: list[CastMember] = Field(default_factory=list)
    director: str = ""
    credits_refreshed_at: datetime | None = None
    credits_fingerprint: str | None = None
    credits_outcome: str | None = None
    external_ratings: ExternalRatings = Field(default_factory=ExternalRatings)
    ratings_refreshed_at: datetime | None = None
    ratings_fingerprint: str | None = None
    ratings_outcome: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator(
        "latest_new_at",
        "banner_at",
        "credits_refreshed_at",
        "ratings_refreshed_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @computed_field(alias="latest")  # type: ignore[prop-decorator]
    @property
    def latest(self) -> bool:
        return self.placement is Placement.PROMOTED

    @computed_field(alias="previousHit")  # type: ignore[prop-decorator]
    @property
    def previous_hit(self) -> bool:
        return self.placement is Placement.PINNED


class _PlacementInput(CamelModel):
    placement: Placement | None = None
    latest: bool | None = None
    previous_hit: bool | None = None

    @model_validator(mode="after")
    def _exclusive_flags(self):
        if self.latest and self.previous_hit:
            raise ValueError("Movie cannot be both Latest and PreviousHit")
        return self

    @field_validator("type", mode="before", check_fields=False)
    @classmethod
    def _loose_type(cls, value: Any) -> Any:
        if value is None:
            return value
        normalized = normalize_item_type(value)
        if normalized is None:
            raise ValueError("Invalid type (must be Movie or Series)")
        return normalized


class CatalogItemCreate(_PlacementInput):
    """Payload accepted when creating a catalog entry."""

    type: ItemType
    name: str = Field(min_length=1)
    desc: str = Field(min_length=1)
    category: str = Field(min_length=1)
    browse_by: str = Field(min_length=1)
    language: str = Field(min_length=1)
    year: int = Field(ge=1800, le=3000)
    time: int | None = None
    image: str = ""
    title_image: str = ""
    thumbnail_info: str = ""
    rate: float = 0.0
    number_of_reviews: int = 0
    casts: list[CastMember] = Field(default_factory=list)
    director: str = ""
    imdb_id: str = ""
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: str | None = None
    is_published: bool = False

    @field_validator(
        "name", "category", "browse_by", "language", "director", "imdb_id", mode="before"
    )
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    def resolved_placement(self) -> Placement:
        return resolve_placement(
            placement=self.placement, latest=self.latest, previous_hit=self.previous_hit
        )


class CatalogItemUpdate(_PlacementInput):
    """Partial update payload; omitted fields keep their stored value."""

    type: ItemType | None = None
    name: str | None = None
    desc: str | None = None
    category: str | None = None
    browse_by: str | None = None
    language: str | None = None
    year: int | None = Field(default=None, ge=1800, le=3000)
    time: int | None = None
    image: str | None = None
    title_image: str | None = None
    thumbnail_info: str | None = None
    rate: float | None = None
    number_of_reviews: int | None = None
    casts: list[CastMember] | None = None
    director: str | None = None
    imdb_id: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: str | None = None
    is_published: bool | None = None


class BulkExactUpdateItem(CatalogItemUpdate):
    """One row of a bulk exact update, matched by id or by (name, type)."""

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    name: str = Field(min_length=1)
    type: ItemType
    slug: str | None = None


class BulkDeleteItem(CamelModel):
    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    name: str | None = None
    type: ItemType | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _loose_type(cls, value: Any) -> Any:
        if value is None:
            return value
        normalized = normalize_item_type(value)
        if normalized is None:
            raise ValueError('Missing or invalid "type" field')
        return normalized

    @model_validator(mode="after")
    def _needs_key(self):
        if self.id:
            return self
        if not self.name or not self.name.strip():
            raise ValueError('Missing or invalid "name" field')
        if self.type is None:
            raise ValueError('Missing or invalid "type" field')
        return self


class BulkRequest(CamelModel):
    """Envelope for bulk endpoints; rows are validated one by one."""

    movies: list[dict[str, Any]] = Field(default_factory=list)


class BulkItemError(CamelModel):
    index: int
    name: str | None = None
    type: str | None = None
    error: str


class BulkCreateResponse(CamelModel):
    message: str
    inserted_count: int
    errors_count: int
    errors: list[BulkItemError] = Field(default_factory=list)
    inserted: list[CatalogItemModel] = Field(default_factory=list)


class BulkUpdateResponse(CamelModel):
    message: str
    matched: int
    modified: int
    errors_count: int
    errors: list[BulkItemError] = Field(default_factory=list)


class BulkDeleteResponse(CamelModel):
    message: str
    deleted_count: int
    errors_count: int
    errors: list[BulkItemError] = Field(default_factory=list)


class CatalogPage(CamelModel):
    """One page of the merged normal + pinned listing."""

    items: list[CatalogItemModel] = Field(default_factory=list, alias="movies")
    page: int
    pages: int
    total: int = Field(alias="totalMovies")


class ReorderRequest(CamelModel):
    page_number: int = Field(default=1, le=PAGE_NUMBER_MAX)
    ordered_ids: list[str] = Field(default_factory=list)
    query: dict[str, Any] | None = None


class ReorderResponse(CamelModel):
    message: str = "Page order updated successfully"
    page: int
    reordered_count: int


class MoveRequest(CamelModel):
    target_page: int = Field(default=1, le=PAGE_NUMBER_MAX)
    movie_ids: list[str] = Field(default_factory=list)


class MoveResponse(CamelModel):
    message: str = "Movies moved successfully"
    total: int
    target_page: int
    moved_count: int


class SlugRegenerationResponse(CamelModel):
    message: str = "Slugs generated (or regenerated) for all movies"
    updated_count: int
    errors_count: int = 0
    errors: list[BulkItemError] = Field(default_factory=list)


SyncReason = Literal["ok", "not_found", "timeout", "error", "fresh"]


class EnrichmentSyncRequest(CamelModel):
    movie_ids: list[str] = Field(default_factory=list)
    only_missing: bool = False
    force: bool = False
    limit: int | None = None
    cast_limit: int | None = None


class EnrichmentSyncItem(CamelModel):
    id: str
    name: str
    type: ItemType
    updated: bool
    reason: SyncReason
    tmdb_id: int | None = None
    imdb_id: str = ""


class EnrichmentSyncResponse(CamelModel):
    message: str
    attempted: int
    updated: int
    not_found: int
    errors: int
    force: bool
    only_missing: bool
    limit: int
    cast_limit: int
    results: list[EnrichmentSyncItem] = Field(default_factory=list)


class FindByNamesRequest(CamelModel):
    names: list[str] | None = None
    movies: list[dict[str, Any]] | None = None
    items: list[dict[str, Any]] | None = None
    text: str | None = None
    mode: Literal["exact", "startsWith", "contains"] = "exact"

    def raw_names(self) -> list[str]:
        if self.names is not None:
            return [str(name or "") for name in self.names]
        for rows in (self.movies, self.items):
            if rows is not None:
                return [str((row or {}).get("name") or "") for row in rows]
        if self.text is not None:
            return self.text.splitlines()
        return []


class FindByNamesResponse(CamelModel):
    input_count: int
    unique_count: int
    matched_count: int
    not_found_count: int
    not_found: list[str] = Field(default_factory=list)
    movies: list[CatalogItemModel] = Field(default_factory=list)


class CurationSetRequest(CamelModel):
    movie_ids: list[str] = Field(default_factory=list)
    value: bool = True


class CurationSetResponse(CamelModel):
    message: str
    matched: int
    modified: int


class LatestNewReorderRequest(CamelModel):
    ordered_ids: list[str] = Field(default_factory=list)


class LatestNewReorderResponse(CamelModel):
    message: str = "Latest New order updated successfully"
    total_latest_new: int
    reordered_count: int


class ActorProfile(CamelModel):
    """Person resolved from the cached credits of the titles they appear in."""

    name: str
    slug: str
    image: str = ""
    roles: list[Literal["actor", "director"]] = Field(default_factory=list)


class ActorPage(CamelModel):
    actor: ActorProfile
    page: int
    pages: int
    total: int
    items: list[CatalogItemModel] = Field(default_factory=list, alias="movies")


class MessageResponse(CamelModel):
    message: str


class ProviderStatus(CamelModel):
    credits: bool = Field(description="Whether the TMDb credits provider is configured.")
    ratings: bool = Field(description="Whether the OMDb ratings provider is configured.")


class HealthStatus(CamelModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    providers: ProviderStatus


class CatalogFilter(BaseModel):
    """Listing filter shared by public reads, admin reads and page reorders."""

    category: str | None = None
    time: int | None = None
    language: str | None = None
    rate: float | None = None
    year: int | None = None
    browse_by: list[str] = Field(default_factory=list)
    search: str | None = None
    item_type: ItemType | None = None
    category_any: list[str] = Field(default_factory=list)
    credited: str | None = None
    exclude_id: str | None = None
    published_only: bool = False

    @classmethod
    def from_query(
        cls, query: Mapping[str, Any] | None, *, published_only: bool = False
    ) -> "CatalogFilter":
        """Build a filter from raw listing parameters, ignoring blank values."""

        q = dict(query or {})
        browse_raw = q.get("browseBy", q.get("browse_by"))
        if isinstance(browse_raw, (list, tuple)):
            browse_raw = ",".join(str(value) for value in browse_raw)
        browse_by = [
            part.strip() for part in str(browse_raw or "").split(",") if part.strip()
        ]

        def _text(key: str) -> str | None:
            value = q.get(key)
            if value is None:
                return None
            text = str(value).strip()
            return text or None

        def _number(key: str, cast):
            text = _text(key)
            if text is None:
                return None
            try:
                value = cast(text)
            except ValueError:
                return None
            if isinstance(value, float) and not math.isfinite(value):
                return None
            if isinstance(value, int) and not SQL_INT_MIN <= value <= SQL_INT_MAX:
                return None
            return value

        return cls(
            category=_text("category"),
            time=_number("time", int),
            language=_text("language"),
            rate=_number("rate", float),
            year=_number("year", int),
            browse_by=browse_by,
            search=_text("search"),
            item_type=normalize_item_type(q.get("type")),
            published_only=published_only,
        )
