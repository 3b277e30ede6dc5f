"""Credits lookup cascade against the TMDb provider."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from ..schemas import CastMember, CatalogItemModel, ItemType
from ..utils.titles import (
    extract_year_from_title,
    normalize_imdb_id,
    normalize_title_for_tmdb,
    valid_year,
    year_from_date,
)
from .tmdb_client import MediaType

PLACEHOLDER_PROFILE = "/images/placeholder.jpg"


class CreditsProvider(Protocol):
    def find_by_imdb_id(self, imdb_id: str, media_type: MediaType) -> dict[str, Any] | None: ...

    def search(self, title: str, year: int | None, media_type: MediaType) -> list[dict[str, Any]]: ...

    def get_credits(self, tmdb_id: int, media_type: MediaType) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class LookupQuery:
    """Identity of an item as seen by the lookup cascades."""

    item_type: ItemType
    name: str
    title: str
    year: int | None
    imdb_id: str = ""
    tmdb_id: int | None = None

    @classmethod
    def for_item(cls, item: CatalogItemModel) -> "LookupQuery":
        year = valid_year(item.year) or extract_year_from_title(item.name)
        return cls(
            item_type=item.type,
            name=item.name,
            title=normalize_title_for_tmdb(item.name, year),
            year=year,
            imdb_id=normalize_imdb_id(item.imdb_id),
            tmdb_id=item.tmdb_id,
        )

    @property
    def media_type(self) -> MediaType:
        return "tv" if self.item_type is ItemType.SERIES else "movie"


@dataclass(slots=True)
class CreditsResult:
    tmdb_id: int
    tmdb_type: MediaType
    strategy: str
    casts: list[CastMember] = field(default_factory=list)
    director: str = ""


def pick_best_by_year(
    results: list[dict[str, Any]], year: int | None, date_field: str
) -> dict[str, Any] | None:
    """Prefer the result released in ``year``; otherwise take the first."""

    candidates = [result for result in results if result]
    if year:
        for result in candidates:
            if year_from_date(result.get(date_field)) == year:
                return result
    return candidates[0] if candidates else None


def _date_field(media_type: MediaType) -> str:
    return "first_air_date" if media_type == "tv" else "release_date"


def _by_tmdb_id(provider: CreditsProvider, query: LookupQuery) -> int | None:
    return query.tmdb_id or None


def _by_imdb_id(provider: CreditsProvider, query: LookupQuery) -> int | None:
    if not query.imdb_id:
        return None
    found = provider.find_by_imdb_id(query.imdb_id, query.media_type)
    return (found or {}).get("id") or None


def _by_title_and_year(provider: CreditsProvider, query: LookupQuery) -> int | None:
    if not query.title or not query.year:
        return None
    results = provider.search(query.title, query.year, query.media_type)
    best = pick_best_by_year(results, query.year, _date_field(query.media_type))
    return (best or {}).get("id") or None


def _by_title(provider: CreditsProvider, query: LookupQuery) -> int | None:
    if not query.title:
        return None
    results = provider.search(query.title, None, query.media_type)
    best = pick_best_by_year(results, query.year, _date_field(query.media_type))
    return (best or {}).get("id") or None


CreditsStrategy = Callable[[CreditsProvider, LookupQuery], "int | None"]

CREDITS_STRATEGIES: tuple[tuple[str, CreditsStrategy], ...] = (
    ("tmdb_id", _by_tmdb_id),
    ("imdb_id", _by_imdb_id),
    ("title_year", _by_title_and_year),
    ("title", _by_title),
)


def profile_url(profile_path: str | None, *, image_base: str, profile_size: str) -> str:
    path = str(profile_path or "").strip().lstrip("/")
    if not path:
        return ""
    return f"{image_base.rstrip('/')}/{profile_size.strip('/')}/{path}"


def build_casts(
    credits: dict[str, Any], *, limit: int, image_base: str, profile_size: str
) -> list[CastMember]:
    members = []
    for entry in credits.get("cast") or []:
        name = str((entry or {}).get("name") or "").strip()
        if not name:
            continue
        image = profile_url(
            entry.get("profile_path"), image_base=image_base, profile_size=profile_size
        )
        members.append(CastMember(name=name, image=image or PLACEHOLDER_PROFILE))
        if len(members) >= limit:
            break
    return members


def extract_director(credits: dict[str, Any]) -> str:
    for entry in credits.get("crew") or []:
        if str((entry or {}).get("job") or "").strip().lower() == "director":
            return str(entry.get("name") or "").strip()
    return ""


def lookup_credits(
    provider: CreditsProvider,
    query: LookupQuery,
    *,
    cast_limit: int,
    image_base: str = "https://image.tmdb.org/t/p",
    profile_size: str = "w185",
) -> CreditsResult | None:
    """Run the strategies in order; the first one yielding a TMDb id wins.

    Returns ``None`` when no strategy finds the title. Provider failures
    propagate as :class:`ProviderError`.
    """

    for name, strategy in CREDITS_STRATEGIES:
        tmdb_id = strategy(provider, query)
        if not tmdb_id:
            continue
        credits = provider.get_credits(int(tmdb_id), query.media_type)
        return CreditsResult(
            tmdb_id=int(tmdb_id),
            tmdb_type=query.media_type,
            strategy=name,
            casts=build_casts(
                credits, limit=cast_limit, image_base=image_base, profile_size=profile_size
            ),
            director=extract_director(credits),
        )
    return None
