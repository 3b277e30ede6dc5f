"""Thin httpx client for the OMDb ratings provider."""
from __future__ import annotations

from typing import Any, Literal

import httpx

from ..errors import ProviderError

OmdbType = Literal["movie", "series"]


class OmdbClient:
    """Synchronous OMDb client; a ``Response: False`` body is a not-found miss."""

    def __init__(
        self,
        *,
        api_key: str = "",
        base_url: str = "https://www.omdbapi.com/",
        timeout: float = 6.5,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        query = {"apikey": self._api_key}
        query.update({key: value for key, value in params.items() if value not in (None, "")})
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(self._base_url, params=query)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderError("timeout", "OMDb request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError("error", f"OMDb HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError("error", f"Failed to contact OMDb: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("error", "OMDb returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderError("error", "OMDb response must be an object")
        if payload.get("Response") == "False":
            raise ProviderError("not_found", str(payload.get("Error") or "OMDb not found"))
        return payload

    def lookup_by_id(self, imdb_id: str) -> dict[str, Any]:
        return self._get({"i": imdb_id, "plot": "short", "tomatoes": "true"})

    def lookup_by_title(
        self, title: str, year: int | None, media_type: OmdbType
    ) -> dict[str, Any]:
        return self._get(
            {"t": title, "y": year, "type": media_type, "plot": "short", "tomatoes": "true"}
        )

    def search(
        self, title: str, year: int | None, media_type: OmdbType
    ) -> list[dict[str, Any]]:
        payload = self._get({"s": title, "y": year, "type": media_type, "page": 1})
        return [result for result in payload.get("Search") or [] if result]
