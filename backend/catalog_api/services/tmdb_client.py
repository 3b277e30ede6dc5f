"""Thin httpx client for the TMDb credits provider."""
from __future__ import annotations

from typing import Any, Literal

import httpx

from ..errors import ProviderError

MediaType = Literal["movie", "tv"]


class TmdbClient:
    """Synchronous TMDb v3 client with an explicit request timeout.

    Either a v4 bearer token or a v3 ``api_key`` authenticates requests. All
    transport, HTTP and payload failures surface as :class:`ProviderError`.
    """

    def __init__(
        self,
        *,
        api_key: str = "",
        bearer_token: str = "",
        base_url: str = "https://api.themoviedb.org/3",
        timeout: float = 6.5,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._bearer_token = bearer_token.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._api_key or self._bearer_token)

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        headers = {"Accept": "application/json"}
        if self._bearer_token:
            headers["Authorization"] = f"Bearer {self._bearer_token}"
        elif self._api_key:
            query["api_key"] = self._api_key

        try:
            with httpx.Client(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = client.get(path, params=query, headers=headers)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderError("timeout", "TMDb request timed out") from exc
        except httpx.HTTPStatusError as exc:
            reason = "not_found" if exc.response.status_code == 404 else "error"
            raise ProviderError(reason, f"TMDb HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError("error", f"Failed to contact TMDb: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("error", "TMDb returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderError("error", "TMDb response must be an object")
        return payload

    def find_by_imdb_id(self, imdb_id: str, media_type: MediaType) -> dict[str, Any] | None:
        """Resolve an IMDb id into the first matching TMDb result."""

        payload = self._get(f"/find/{imdb_id}", {"external_source": "imdb_id"})
        key = "tv_results" if media_type == "tv" else "movie_results"
        results = payload.get(key) or []
        return results[0] if results else None

    def search(
        self, title: str, year: int | None, media_type: MediaType
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"query": title, "include_adult": "false"}
        if year:
            params["first_air_date_year" if media_type == "tv" else "year"] = year
        payload = self._get(f"/search/{media_type}", params)
        return [result for result in payload.get("results") or [] if result]

    def get_credits(self, tmdb_id: int, media_type: MediaType) -> dict[str, Any]:
        return self._get(f"/{media_type}/{int(tmdb_id)}/credits")
