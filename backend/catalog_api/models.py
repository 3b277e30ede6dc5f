"""Database models for the Catalog API."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, JSON
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp column.

    SQLite keeps no offset, so values are written as UTC and read back with
    the UTC zone attached.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


def _timestamp(*, nullable: bool = True, index: bool = False) -> Any:
    return Column(UTCDateTime(), nullable=nullable, index=index)


class CatalogItemRecord(SQLModel, table=True):
    """Persisted movie or series entry with ordering and enrichment state."""

    __tablename__ = "catalog_items"

    id: str = Field(primary_key=True, index=True)
    name: str = Field(index=True)
    type: str = Field(default="Movie", index=True)
    slug: str | None = Field(default=None, unique=True, index=True)
    desc: str = Field(default="")
    image: str = Field(default="")
    title_image: str = Field(default="")
    thumbnail_info: str = Field(default="")
    category: str = Field(default="", index=True)
    category_tokens: str = Field(default="", index=True)
    browse_by: str = Field(default="", index=True)
    language: str = Field(default="", index=True)
    year: int | None = Field(default=None, index=True)
    time: int | None = Field(default=None)
    rate: float = Field(default=0.0, index=True)
    number_of_reviews: int = Field(default=0)
    view_count: int = Field(default=0)

    seo_title: str = Field(default="")
    seo_description: str = Field(default="")
    seo_keywords: str = Field(default="")

    placement: str = Field(default="normal", index=True)
    order_index: int | None = Field(default=None, index=True)
    is_published: bool = Field(default=True, index=True)

    latest_new: bool = Field(default=False, index=True)
    latest_new_at: datetime | None = Field(default=None, sa_column=_timestamp(index=True))

    banner: bool = Field(default=False, index=True)
    banner_at: datetime | None = Field(default=None, sa_column=_timestamp(index=True))

    imdb_id: str = Field(default="", index=True)
    tmdb_id: int | None = Field(default=None)
    tmdb_type: str = Field(default="")

    casts: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    cast_count: int = Field(default=0, index=True)
    director: str = Field(default="")
    credit_slugs: str = Field(default="")
    credits_refreshed_at: datetime | None = Field(
        default=None, sa_column=_timestamp(index=True)
    )
    credits_fingerprint: str | None = Field(default=None)
    credits_outcome: str | None = Field(default=None)

    external_ratings: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    ratings_refreshed_at: datetime | None = Field(
        default=None, sa_column=_timestamp(index=True)
    )
    ratings_fingerprint: str | None = Field(default=None)
    ratings_outcome: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow, sa_column=_timestamp(nullable=False, index=True)
    )
    updated_at: datetime = Field(default_factory=utcnow, sa_column=_timestamp(nullable=False))
