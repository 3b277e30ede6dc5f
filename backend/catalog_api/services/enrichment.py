"""Lazy, TTL-bounded cache of externally sourced credits and ratings."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Literal

from ..errors import ProviderError, ValidationError
from ..models import utcnow
from ..schemas import (
    CatalogItemModel,
    EnrichmentSyncItem,
    EnrichmentSyncRequest,
    EnrichmentSyncResponse,
    ExternalRatings,
    ImdbRating,
    RottenTomatoesRating,
)
from ..stores.catalog_store import CatalogStore
from .credits import CreditsProvider, LookupQuery, lookup_credits
from .ratings import (
    RatingsProvider,
    RatingsQuery,
    imdb_url,
    lookup_ratings,
    rotten_tomatoes_url,
)

logger = logging.getLogger(__name__)

CacheKind = Literal["credits", "ratings"]


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"
    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Snapshot of one cache kind stored on a catalog item."""

    refreshed_at: datetime | None
    fingerprint: str | None
    has_value: bool
    outcome: str | None

    @classmethod
    def credits(cls, item: CatalogItemModel) -> "CacheEntry":
        return cls(
            refreshed_at=item.credits_refreshed_at,
            fingerprint=item.credits_fingerprint,
            has_value=bool(item.casts),
            outcome=item.credits_outcome,
        )

    @classmethod
    def ratings(cls, item: CatalogItemModel) -> "CacheEntry":
        return cls(
            refreshed_at=item.ratings_refreshed_at,
            fingerprint=item.ratings_fingerprint,
            has_value=not item.external_ratings.is_empty(),
            outcome=item.ratings_outcome,
        )


def identity_fingerprint(item: CatalogItemModel) -> str:
    """``name|year|imdb_id``, trimmed and lowercased."""

    parts = (item.name, "" if item.year is None else str(item.year), item.imdb_id)
    return "|".join(str(part or "").strip() for part in parts).lower()


def classify(
    entry: CacheEntry,
    *,
    fingerprint: str,
    ttl: timedelta,
    now: datetime,
    pending: bool = False,
) -> CacheState:
    if pending:
        return CacheState.PENDING
    if entry.refreshed_at is None:
        return CacheState.EMPTY
    if not entry.has_value and entry.outcome is None:
        return CacheState.EMPTY
    if entry.fingerprint != fingerprint:
        return CacheState.STALE
    if now - entry.refreshed_at > ttl:
        return CacheState.STALE
    return CacheState.FRESH


def should_refresh(state: CacheState) -> bool:
    return state in (CacheState.EMPTY, CacheState.STALE)


def cleared_enrichment_fields() -> dict[str, Any]:
    """Fields reset when an item's identity changes, forcing a refresh."""

    return {
        "tmdb_id": None,
        "tmdb_type": "",
        "credits_refreshed_at": None,
        "credits_fingerprint": None,
        "credits_outcome": None,
        "external_ratings": ExternalRatings(),
        "ratings_refreshed_at": None,
        "ratings_fingerprint": None,
        "ratings_outcome": None,
    }


def clamp(value: int | None, *, default: int, maximum: int) -> int:
    if value is None or value < 1:
        return default
    return min(value, maximum)


@dataclass(slots=True)
class RefreshOutcome:
    item: CatalogItemModel
    reason: str
    attempted: bool

    @property
    def updated(self) -> bool:
        return self.reason == "ok"


class MetadataEnrichmentCache:
    """Refreshes credits and ratings on demand and records every attempt.

    A failed lookup still stamps ``refreshed_at`` and stores its outcome so
    repeated reads do not hammer the provider until the TTL elapses.
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        credits_provider: CreditsProvider | None = None,
        ratings_provider: RatingsProvider | None = None,
        credits_ttl: timedelta = timedelta(days=30),
        ratings_ttl: timedelta = timedelta(days=7),
        cast_limit_default: int = 20,
        cast_limit_max: int = 50,
        sync_default_limit: int = 10,
        sync_max_limit: int = 20,
        image_base: str = "https://image.tmdb.org/t/p",
        profile_size: str = "w185",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._credits_provider = credits_provider
        self._ratings_provider = ratings_provider
        self._ttl = {"credits": credits_ttl, "ratings": ratings_ttl}
        self._cast_limit_default = cast_limit_default
        self._cast_limit_max = cast_limit_max
        self._sync_default_limit = sync_default_limit
        self._sync_max_limit = sync_max_limit
        self._image_base = image_base
        self._profile_size = profile_size
        self._clock = clock
        self._lock = threading.Lock()
        self._in_flight: set[tuple[CacheKind, str]] = set()

    # ------------------------------------------------------------------
    # State inspection

    @property
    def credits_enabled(self) -> bool:
        return self._credits_provider is not None

    @property
    def ratings_enabled(self) -> bool:
        return self._ratings_provider is not None

    def state(self, item: CatalogItemModel, kind: CacheKind) -> CacheState:
        entry = CacheEntry.credits(item) if kind == "credits" else CacheEntry.ratings(item)
        with self._lock:
            pending = (kind, item.id) in self._in_flight
        return classify(
            entry,
            fingerprint=identity_fingerprint(item),
            ttl=self._ttl[kind],
            now=self._clock(),
            pending=pending,
        )

    def _begin(self, kind: CacheKind, item_id: str) -> bool:
        with self._lock:
            if (kind, item_id) in self._in_flight:
                return False
            self._in_flight.add((kind, item_id))
            return True

    def _finish(self, kind: CacheKind, item_id: str) -> None:
        with self._lock:
            self._in_flight.discard((kind, item_id))

    # ------------------------------------------------------------------
    # Refresh

    def refresh_credits(
        self, item: CatalogItemModel, *, force: bool = False, cast_limit: int | None = None
    ) -> RefreshOutcome:
        if self._credits_provider is None:
            return RefreshOutcome(item, "disabled", attempted=False)
        state = self.state(item, "credits")
        if state is CacheState.PENDING or (not force and not should_refresh(state)):
            return RefreshOutcome(item, "fresh", attempted=False)
        if not self._begin("credits", item.id):
            return RefreshOutcome(item, "fresh", attempted=False)

        limit = clamp(cast_limit, default=self._cast_limit_default, maximum=self._cast_limit_max)
        try:
            result = lookup_credits(
                self._credits_provider,
                LookupQuery.for_item(item),
                cast_limit=limit,
                image_base=self._image_base,
                profile_size=self._profile_size,
            )
            reason = "ok" if result else "not_found"
        except ProviderError as exc:
            logger.warning("Credits lookup failed for %s (%s): %s", item.id, exc.reason, exc)
            result, reason = None, exc.reason
        finally:
            self._finish("credits", item.id)

        fields: dict[str, Any] = {
            "credits_refreshed_at": self._clock(),
            "credits_fingerprint": identity_fingerprint(item),
            "credits_outcome": reason,
        }
        if result is not None:
            fields["tmdb_id"] = result.tmdb_id
            fields["tmdb_type"] = result.tmdb_type
            if result.casts:
                fields["casts"] = result.casts
            if result.director:
                fields["director"] = result.director
        stored = self._store.update_fields(item.id, fields) or item
        return RefreshOutcome(stored, reason, attempted=True)

    def refresh_ratings(self, item: CatalogItemModel, *, force: bool = False) -> RefreshOutcome:
        if self._ratings_provider is None:
            return RefreshOutcome(item, "disabled", attempted=False)
        state = self.state(item, "ratings")
        if state is CacheState.PENDING or (not force and not should_refresh(state)):
            return RefreshOutcome(item, "fresh", attempted=False)
        if not self._begin("ratings", item.id):
            return RefreshOutcome(item, "fresh", attempted=False)

        query = RatingsQuery.for_item(item)
        try:
            result = lookup_ratings(self._ratings_provider, query)
            reason = "ok" if result else "not_found"
        except ProviderError as exc:
            logger.warning("Ratings lookup failed for %s (%s): %s", item.id, exc.reason, exc)
            result, reason = None, exc.reason
        finally:
            self._finish("ratings", item.id)

        fingerprint = identity_fingerprint(item)
        fields: dict[str, Any] = {
            "ratings_refreshed_at": self._clock(),
            "ratings_fingerprint": fingerprint,
            "ratings_outcome": reason,
        }
        if result is not None:
            fields["external_ratings"] = result.ratings
            if not item.imdb_id and result.imdb_id:
                # An adopted imdb id is part of the identity; keep both stamps current.
                fields["imdb_id"] = result.imdb_id
                adopted = identity_fingerprint(item.model_copy(update={"imdb_id": result.imdb_id}))
                fields["ratings_fingerprint"] = adopted
                if item.credits_fingerprint == fingerprint:
                    fields["credits_fingerprint"] = adopted
        elif query.imdb_id and item.external_ratings.is_empty():
            fields["external_ratings"] = ExternalRatings(
                imdb=ImdbRating(url=imdb_url(query.imdb_id)),
                rotten_tomatoes=RottenTomatoesRating(url=rotten_tomatoes_url(item.name)),
            )
        stored = self._store.update_fields(item.id, fields) or item
        return RefreshOutcome(stored, reason, attempted=True)

    def refresh_for_read(self, item: CatalogItemModel) -> CatalogItemModel:
        """Best-effort refresh of both kinds for a detail read; never raises."""

        current = item
        for refresh in (self.refresh_ratings, self.refresh_credits):
            try:
                current = refresh(current).item
            except Exception:  # pragma: no cover - unexpected provider payloads
                logger.exception("Enrichment skipped for %s", current.id)
        return current

    # ------------------------------------------------------------------
    # Admin sync

    def sync(self, kind: CacheKind, request: EnrichmentSyncRequest) -> EnrichmentSyncResponse:
        """Refresh a batch of items, least recently refreshed first."""

        if kind == "credits" and not self.credits_enabled:
            raise ValidationError(
                "TMDb is not configured (missing TMDB_API_KEY or TMDB_BEARER_TOKEN)"
            )
        if kind == "ratings" and not self.ratings_enabled:
            raise ValidationError("OMDb is not configured (missing OMDB_API_KEY)")

        limit = clamp(request.limit, default=self._sync_default_limit, maximum=self._sync_max_limit)
        cast_limit = clamp(
            request.cast_limit, default=self._cast_limit_default, maximum=self._cast_limit_max
        )
        ids = [str(value).strip() for value in request.movie_ids if str(value or "").strip()]
        candidates = self._store.enrichment_candidates(
            kind=kind, item_ids=ids or None, only_missing=request.only_missing, limit=limit
        )

        results: list[EnrichmentSyncItem] = []
        for item in candidates:
            if kind == "credits":
                outcome = self.refresh_credits(item, force=request.force, cast_limit=cast_limit)
            else:
                outcome = self.refresh_ratings(item, force=request.force)
            results.append(
                EnrichmentSyncItem(
                    id=item.id,
                    name=item.name,
                    type=item.type,
                    updated=outcome.updated,
                    reason=outcome.reason,
                    tmdb_id=outcome.item.tmdb_id,
                    imdb_id=outcome.item.imdb_id,
                )
            )

        updated = sum(1 for entry in results if entry.updated)
        not_found = sum(1 for entry in results if entry.reason == "not_found")
        errors = sum(1 for entry in results if entry.reason in ("timeout", "error"))
        label = "TMDb credits" if kind == "credits" else "External ratings"
        logger.info(
            "%s sync attempted=%s updated=%s not_found=%s errors=%s",
            label,
            len(results),
            updated,
            not_found,
            errors,
        )
        return EnrichmentSyncResponse(
            message=f"{label} sync finished",
            attempted=len(results),
            updated=updated,
            not_found=not_found,
            errors=errors,
            force=request.force,
            only_missing=request.only_missing,
            limit=limit,
            cast_limit=cast_limit,
            results=results,
        )
