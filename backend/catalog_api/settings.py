"""Runtime configuration for the Catalog API."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.paths import default_database_url


class CatalogSettings(BaseSettings):
    """Environment-aware settings for the Catalog API service."""

    database_url: str = Field(
        default_factory=default_database_url,
        description="Connection URL for the catalog database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )
    page_size: int = Field(
        default=50, ge=1, description="Fixed number of items per listing page."
    )
    latest_new_limit: int = Field(
        default=100, ge=1, description="Default size of the curated Latest New list."
    )
    banner_limit: int = Field(
        default=10, ge=1, description="Default number of titles returned for the banner."
    )

    tmdb_api_key: str | None = Field(
        default=None, description="TMDb v3 API key used for credits enrichment."
    )
    tmdb_bearer_token: str | None = Field(
        default=None, description="TMDb v4 read token, preferred over the API key."
    )
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3")
    tmdb_image_base: str = Field(default="https://image.tmdb.org/t/p")
    tmdb_profile_size: str = Field(default="w185")
    credits_ttl_days: float = Field(
        default=30, description="Days before cached cast/director data is refreshed."
    )

    omdb_api_key: str | None = Field(
        default=None, description="OMDb API key used for IMDb/Rotten Tomatoes ratings."
    )
    omdb_base_url: str = Field(default="https://www.omdbapi.com/")
    ratings_ttl_days: float = Field(
        default=7, description="Days before cached third-party ratings are refreshed."
    )

    provider_timeout_seconds: float = Field(
        default=6.5, description="Timeout applied to every outbound provider request."
    )
    sync_default_limit: int = Field(default=10, ge=1)
    sync_max_limit: int = Field(
        default=20, ge=1, description="Upper bound on items touched by one admin sync."
    )
    cast_limit_default: int = Field(default=20, ge=1)
    cast_limit_max: int = Field(default=50, ge=1)
    slug_conflict_retries: int = Field(
        default=3,
        ge=0,
        description="Times an insert picks a fresh slug after a unique-index conflict.",
    )

    debug: bool = Field(
        default=False, description="Expose tracebacks in error responses."
    )
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
