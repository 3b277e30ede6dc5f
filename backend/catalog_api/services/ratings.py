"""Ratings lookup cascade against the OMDb provider."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol
from urllib.parse import quote

from ..errors import ProviderError
from ..schemas import (
    CatalogItemModel,
    ExternalRatings,
    ImdbRating,
    ItemType,
    RottenTomatoesRating,
)
from ..utils.titles import normalize_imdb_id, normalize_title_for_omdb, valid_year, year_matches
from .omdb_client import OmdbType


class RatingsProvider(Protocol):
    def lookup_by_id(self, imdb_id: str) -> dict[str, Any]: ...

    def lookup_by_title(self, title: str, year: int | None, media_type: OmdbType) -> dict[str, Any]: ...

    def search(self, title: str, year: int | None, media_type: OmdbType) -> list[dict[str, Any]]: ...


@dataclass(frozen=True, slots=True)
class RatingsQuery:
    item_type: ItemType
    name: str
    title: str
    year: int | None
    imdb_id: str = ""

    @classmethod
    def for_item(cls, item: CatalogItemModel) -> "RatingsQuery":
        year = valid_year(item.year)
        return cls(
            item_type=item.type,
            name=item.name,
            title=normalize_title_for_omdb(item.name, year),
            year=year,
            imdb_id=normalize_imdb_id(item.imdb_id),
        )

    @property
    def media_type(self) -> OmdbType:
        return "series" if self.item_type is ItemType.SERIES else "movie"


@dataclass(slots=True)
class RatingsResult:
    imdb_id: str
    ratings: ExternalRatings
    strategy: str


def imdb_url(imdb_id: str) -> str:
    return f"https://www.imdb.com/title/{imdb_id}/" if imdb_id else ""


def rotten_tomatoes_url(title: str) -> str:
    return f"https://www.rottentomatoes.com/search?search={quote(title)}" if title else ""


def _number(value: Any) -> float | None:
    text = str(value or "").replace(",", "").strip()
    if not text or text.upper() == "N/A":
        return None
    try:
        return float(text)
    except ValueError:
        return None


def pick_best_search_result(
    results: list[dict[str, Any]], year: int | None, media_type: str
) -> dict[str, Any] | None:
    """Prefer a type match, then a release-year match, else the first hit."""

    candidates = [result for result in results if result and result.get("imdbID")]
    typed = [
        result
        for result in candidates
        if str(result.get("Type") or "").lower() == media_type
    ]
    if typed:
        candidates = typed
    if year:
        for result in candidates:
            if year_matches(result.get("Year"), year):
                return result
    return candidates[0] if candidates else None


def _missing(call: Callable[[], dict[str, Any]]) -> dict[str, Any] | None:
    try:
        return call()
    except ProviderError as exc:
        if exc.reason == "not_found":
            return None
        raise


def _by_imdb_id(provider: RatingsProvider, query: RatingsQuery) -> dict[str, Any] | None:
    if not query.imdb_id:
        return None
    return _missing(lambda: provider.lookup_by_id(query.imdb_id))


def _by_title_and_year(provider: RatingsProvider, query: RatingsQuery) -> dict[str, Any] | None:
    if query.imdb_id or not query.title or not query.year:
        return None
    return _missing(lambda: provider.lookup_by_title(query.title, query.year, query.media_type))


def _by_title(provider: RatingsProvider, query: RatingsQuery) -> dict[str, Any] | None:
    if query.imdb_id or not query.title:
        return None
    return _missing(lambda: provider.lookup_by_title(query.title, None, query.media_type))


def _search(
    provider: RatingsProvider, query: RatingsQuery, year: int | None
) -> dict[str, Any] | None:
    if query.imdb_id or not query.title:
        return None
    try:
        results = provider.search(query.title, year, query.media_type)
    except ProviderError as exc:
        if exc.reason == "not_found":
            return None
        raise
    best = pick_best_search_result(results, query.year, query.media_type)
    if best is None:
        return None
    return _missing(lambda: provider.lookup_by_id(str(best["imdbID"])))


def _by_search_with_year(provider: RatingsProvider, query: RatingsQuery) -> dict[str, Any] | None:
    if not query.year:
        return None
    return _search(provider, query, query.year)


def _by_search(provider: RatingsProvider, query: RatingsQuery) -> dict[str, Any] | None:
    return _search(provider, query, None)


RatingsStrategy = Callable[[RatingsProvider, RatingsQuery], "dict[str, Any] | None"]

RATINGS_STRATEGIES: tuple[tuple[str, RatingsStrategy], ...] = (
    ("imdb_id", _by_imdb_id),
    ("title_year", _by_title_and_year),
    ("title", _by_title),
    ("search_year", _by_search_with_year),
    ("search", _by_search),
)


def parse_ratings(payload: dict[str, Any], *, fallback_imdb_id: str, title: str) -> tuple[str, ExternalRatings]:
    """Turn an OMDb detail payload into ``(imdb_id, ExternalRatings)``."""

    resolved = str(payload.get("imdbID") or fallback_imdb_id or "").strip()
    votes = _number(payload.get("imdbVotes"))
    rotten = None
    for entry in payload.get("Ratings") or []:
        if str((entry or {}).get("Source") or "").lower() == "rotten tomatoes":
            rotten = _number(str(entry.get("Value") or "").rstrip("%"))
            break
    ratings = ExternalRatings(
        imdb=ImdbRating(
            rating=_number(payload.get("imdbRating")),
            votes=int(votes) if votes is not None else None,
            url=imdb_url(resolved),
        ),
        rotten_tomatoes=RottenTomatoesRating(rating=rotten, url=rotten_tomatoes_url(title)),
    )
    return resolved, ratings


def lookup_ratings(provider: RatingsProvider, query: RatingsQuery) -> RatingsResult | None:
    """Run the strategies in order; the first detail payload wins.

    Provider misses fall through to the next strategy; timeouts and other
    provider failures propagate as :class:`ProviderError`.
    """

    if not query.title and not query.imdb_id:
        return None
    for name, strategy in RATINGS_STRATEGIES:
        payload = strategy(provider, query)
        if not payload:
            continue
        imdb_id, ratings = parse_ratings(
            payload, fallback_imdb_id=query.imdb_id, title=query.name
        )
        return RatingsResult(imdb_id=imdb_id, ratings=ratings, strategy=name)
    return None
