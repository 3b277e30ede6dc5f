"""Catalog store exposing document-style access to persisted catalog items."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Literal, Sequence

from pydantic import BaseModel
from sqlalchemy import case, distinct, func, or_, select
from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..db import session_scope
from ..models import CatalogItemRecord, as_utc, utcnow
from ..schemas import CatalogFilter, CatalogItemModel, ItemType, Placement
from ..utils.tokens import category_key, credit_key

Partition = Literal["normal", "pinned"]
EnrichmentKind = Literal["credits", "ratings"]
CuratedList = Literal["latest_new", "banner"]

_COMPUTED_FIELDS = {"latest", "previous_hit"}
_INTERNAL_FIELDS = ("cast_count", "category_tokens", "credit_slugs")
_CURATED_COLUMNS = {
    "latest_new": (CatalogItemRecord.latest_new, CatalogItemRecord.latest_new_at),
    "banner": (CatalogItemRecord.banner, CatalogItemRecord.banner_at),
}
_DISTINCT_FIELDS = {"browse_by", "category", "language", "year", "type"}


@dataclass(slots=True)
class FieldUpdate:
    """One document update inside a bulk write."""

    item_id: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class MatchUpdate:
    """Update applied to every item matching an id or a (name, type) pair."""

    fields: dict[str, Any]
    item_id: str | None = None
    name: str | None = None
    item_type: ItemType | None = None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _plain(value: Any) -> Any:
    """Convert schema values into something the SQL columns accept."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _apply_fields(record: CatalogItemRecord, fields: dict[str, Any]) -> bool:
    changed = False
    for key, raw in fields.items():
        value = _plain(raw)
        if getattr(record, key) != value:
            setattr(record, key, value)
            changed = True
    if "casts" in fields:
        record.cast_count = len(record.casts or [])
    if "casts" in fields or "director" in fields:
        record.credit_slugs = credit_key(record.casts, record.director)
    if "category" in fields:
        record.category_tokens = category_key(record.category)
    if changed:
        record.updated_at = utcnow()
    return changed


@dataclass(slots=True)
class CatalogStore:
    """Document-store style accessor for catalog items.

    Exposes filtered counts, sorted range queries, id/slug lookups, bulk
    multi-document writes and distinct-value queries. Each bulk write is
    committed in a single session; nothing spans more than one call.
    """

    engine: Engine

    # ------------------------------------------------------------------
    # Query helpers

    def _conditions(self, filters: CatalogFilter, partition: Partition | None) -> list:
        conditions = []
        if filters.published_only:
            conditions.append(CatalogItemRecord.is_published.is_(True))
        if filters.item_type is not None:
            conditions.append(CatalogItemRecord.type == filters.item_type.value)
        if filters.category:
            conditions.append(CatalogItemRecord.category == filters.category)
        if filters.time is not None:
            conditions.append(CatalogItemRecord.time == filters.time)
        if filters.language:
            conditions.append(CatalogItemRecord.language == filters.language)
        if filters.rate is not None:
            conditions.append(CatalogItemRecord.rate == filters.rate)
        if filters.year is not None:
            conditions.append(CatalogItemRecord.year == filters.year)
        if filters.browse_by:
            conditions.append(CatalogItemRecord.browse_by.in_(filters.browse_by))
        if filters.search:
            prefix = _escape_like(filters.search.lower())
            conditions.append(
                func.lower(CatalogItemRecord.name).like(f"{prefix}%", escape="\\")
            )
        if filters.category_any:
            conditions.append(
                or_(
                    *(
                        CatalogItemRecord.category_tokens.like(
                            f"%|{_escape_like(token)}|%", escape="\\"
                        )
                        for token in filters.category_any
                    )
                )
            )
        if filters.credited:
            conditions.append(
                CatalogItemRecord.credit_slugs.like(
                    f"%|{_escape_like(filters.credited)}|%", escape="\\"
                )
            )
        if filters.exclude_id:
            conditions.append(CatalogItemRecord.id != filters.exclude_id)
        if partition == "normal":
            conditions.append(CatalogItemRecord.placement != Placement.PINNED.value)
        elif partition == "pinned":
            conditions.append(CatalogItemRecord.placement == Placement.PINNED.value)
        return conditions

    @staticmethod
    def _sort_clauses(partition: Partition) -> tuple[object, ...]:
        if partition == "normal":
            return (
                case(
                    (CatalogItemRecord.placement == Placement.PROMOTED.value, 0),
                    else_=1,
                ),
                CatalogItemRecord.order_index.asc().nullslast(),
                CatalogItemRecord.created_at.desc(),
                CatalogItemRecord.id,
            )
        return (
            CatalogItemRecord.order_index.asc().nullslast(),
            CatalogItemRecord.created_at.desc(),
            CatalogItemRecord.id,
        )

    # ------------------------------------------------------------------
    # Reads

    def count(self, filters: CatalogFilter, *, partition: Partition | None = None) -> int:
        """Return the number of items matching the filter inside a partition."""

        statement = select(func.count()).select_from(CatalogItemRecord)
        for condition in self._conditions(filters, partition):
            statement = statement.where(condition)
        with Session(self.engine) as session:
            return session.exec(statement).scalar_one()

    def find(
        self,
        filters: CatalogFilter,
        *,
        partition: Partition,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[CatalogItemModel]:
        """Return a sorted slice of one partition."""

        statement = select(CatalogItemRecord)
        for condition in self._conditions(filters, partition):
            statement = statement.where(condition)
        statement = statement.order_by(*self._sort_clauses(partition))
        if skip:
            statement = statement.offset(skip)
        if limit is not None:
            statement = statement.limit(limit)
        with Session(self.engine) as session:
            records: Sequence[CatalogItemRecord] = session.exec(statement).scalars().all()
            return [_to_model(record) for record in records]

    def get(self, item_id: str) -> CatalogItemModel | None:
        """Return a single item by identifier."""

        with Session(self.engine) as session:
            record = session.get(CatalogItemRecord, item_id)
            return _to_model(record) if record else None

    def get_many(self, item_ids: Iterable[str]) -> list[CatalogItemModel]:
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return []
        statement = select(CatalogItemRecord).where(CatalogItemRecord.id.in_(ids))
        with Session(self.engine) as session:
            records = session.exec(statement).scalars().all()
            return [_to_model(record) for record in records]

    def find_by_id_or_slug(
        self, key: str, *, published_only: bool = False
    ) -> CatalogItemModel | None:
        """Look an item up by id first, then by slug."""

        if not key:
            return None
        with Session(self.engine) as session:
            record = session.get(CatalogItemRecord, key)
            if record is None:
                record = session.exec(
                    select(CatalogItemRecord).where(CatalogItemRecord.slug == key)
                ).scalars().first()
            if record is None:
                return None
            if published_only and not record.is_published:
                return None
            return _to_model(record)

    def slug_exists(self, slug: str, *, exclude_id: str | None = None) -> bool:
        statement = select(CatalogItemRecord.id).where(CatalogItemRecord.slug == slug)
        if exclude_id:
            statement = statement.where(CatalogItemRecord.id != exclude_id)
        with Session(self.engine) as session:
            return session.exec(statement.limit(1)).first() is not None

    def distinct(self, field_name: str, filters: CatalogFilter) -> list[Any]:
        """Return the distinct non-empty values of a column under a filter."""

        if field_name not in _DISTINCT_FIELDS:
            raise ValueError(f"Unsupported distinct field: {field_name}")
        column = getattr(CatalogItemRecord, field_name)
        statement = select(distinct(column)).where(column.is_not(None))
        if field_name in {"browse_by", "category", "language", "type"}:
            statement = statement.where(column != "")
        for condition in self._conditions(filters, None):
            statement = statement.where(condition)
        with Session(self.engine) as session:
            values = session.exec(statement.order_by(column)).scalars().all()
        return list(values)

    def order_index_bounds(
        self, *, partition: Partition | None = None
    ) -> tuple[int | None, int | None]:
        """Return (min, max) order index inside a partition, ignoring gaps."""

        statement = select(
            func.min(CatalogItemRecord.order_index), func.max(CatalogItemRecord.order_index)
        )
        for condition in self._conditions(CatalogFilter(), partition):
            statement = statement.where(condition)
        with Session(self.engine) as session:
            low, high = session.exec(statement).one()
        return low, high

    def count_missing_order_index(self) -> int:
        statement = select(func.count()).select_from(CatalogItemRecord).where(
            CatalogItemRecord.order_index.is_(None)
        )
        with Session(self.engine) as session:
            return session.exec(statement).scalar_one()

    def top(
        self,
        *,
        sort: Literal["rate_desc", "created_desc"],
        limit: int,
        published_only: bool = True,
    ) -> list[CatalogItemModel]:
        """Return the highest rated or newest items."""

        statement = select(CatalogItemRecord)
        if published_only:
            statement = statement.where(CatalogItemRecord.is_published.is_(True))
        if sort == "rate_desc":
            statement = statement.order_by(CatalogItemRecord.rate.desc(), CatalogItemRecord.id)
        else:
            statement = statement.order_by(
                CatalogItemRecord.created_at.desc(), CatalogItemRecord.id
            )
        with Session(self.engine) as session:
            records = session.exec(statement.limit(limit)).scalars().all()
            return [_to_model(record) for record in records]

    def curated(
        self, kind: CuratedList, *, published_only: bool, limit: int | None = None
    ) -> list[CatalogItemModel]:
        """Return a curated list (Latest New or Banner), newest curation timestamp first."""

        flag, stamp = _CURATED_COLUMNS[kind]
        statement = select(CatalogItemRecord).where(flag.is_(True))
        if published_only:
            statement = statement.where(CatalogItemRecord.is_published.is_(True))
        statement = statement.order_by(
            stamp.desc().nullslast(),
            CatalogItemRecord.created_at.desc(),
            CatalogItemRecord.id,
        )
        if limit is not None:
            statement = statement.limit(limit)
        with Session(self.engine) as session:
            records = session.exec(statement).scalars().all()
            return [_to_model(record) for record in records]

    def sample(self, size: int, *, published_only: bool = True) -> list[CatalogItemModel]:
        """Return up to ``size`` items picked uniformly at random."""

        statement = select(CatalogItemRecord)
        if published_only:
            statement = statement.where(CatalogItemRecord.is_published.is_(True))
        statement = statement.order_by(func.random()).limit(size)
        with Session(self.engine) as session:
            records = session.exec(statement).scalars().all()
            return [_to_model(record) for record in records]

    def find_by_names(
        self, names: Sequence[str], *, mode: Literal["exact", "startsWith", "contains"]
    ) -> list[CatalogItemModel]:
        """Case-insensitive name lookup for admin tooling."""

        if not names:
            return []
        lowered = func.lower(CatalogItemRecord.name)
        clauses = []
        for name in names:
            value = name.lower()
            if mode == "exact":
                clauses.append(lowered == value)
            elif mode == "startsWith":
                clauses.append(lowered.like(f"{_escape_like(value)}%", escape="\\"))
            else:
                clauses.append(lowered.like(f"%{_escape_like(value)}%", escape="\\"))
        statement = select(CatalogItemRecord).where(or_(*clauses))
        with Session(self.engine) as session:
            records = session.exec(statement).scalars().all()
            return [_to_model(record) for record in records]

    def enrichment_candidates(
        self,
        *,
        kind: EnrichmentKind,
        item_ids: Sequence[str] | None,
        only_missing: bool,
        limit: int,
    ) -> list[CatalogItemModel]:
        """Pick items for an admin sync, least recently refreshed first."""

        refreshed_at = (
            CatalogItemRecord.credits_refreshed_at
            if kind == "credits"
            else CatalogItemRecord.ratings_refreshed_at
        )
        statement = select(CatalogItemRecord)
        if item_ids:
            statement = statement.where(CatalogItemRecord.id.in_(list(item_ids)))
        if only_missing:
            if kind == "credits":
                statement = statement.where(
                    or_(refreshed_at.is_(None), CatalogItemRecord.cast_count == 0)
                )
            else:
                statement = statement.where(
                    or_(
                        refreshed_at.is_(None),
                        CatalogItemRecord.ratings_outcome.is_(None),
                        CatalogItemRecord.ratings_outcome != "ok",
                    )
                )
        statement = statement.order_by(
            refreshed_at.asc().nullsfirst(),
            CatalogItemRecord.created_at.desc(),
            CatalogItemRecord.id,
        ).limit(limit)
        with Session(self.engine) as session:
            records = session.exec(statement).scalars().all()
            return [_to_model(record) for record in records]

    def all_ids_with_names(self) -> list[tuple[str, str, int | None, str | None]]:
        """Return ``(id, name, year, slug)`` for every item, oldest first."""

        statement = select(
            CatalogItemRecord.id,
            CatalogItemRecord.name,
            CatalogItemRecord.year,
            CatalogItemRecord.slug,
        ).order_by(CatalogItemRecord.created_at, CatalogItemRecord.id)
        with Session(self.engine) as session:
            return [tuple(row) for row in session.exec(statement).all()]

    # ------------------------------------------------------------------
    # Writes

    def insert(self, item: CatalogItemModel) -> CatalogItemModel:
        """Insert one item; unique-index conflicts propagate as IntegrityError."""

        record = CatalogItemRecord(**_record_payload(item))
        with Session(self.engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)

    def update_fields(self, item_id: str, fields: dict[str, Any]) -> CatalogItemModel | None:
        """Set fields on a single item and return the stored result."""

        with Session(self.engine) as session:
            record = session.get(CatalogItemRecord, item_id)
            if record is None:
                return None
            if _apply_fields(record, fields):
                session.add(record)
                session.commit()
                session.refresh(record)
            return _to_model(record)

    def bulk_write(self, updates: Sequence[FieldUpdate]) -> int:
        """Apply many single-document updates in one commit.

        Returns the number of documents whose stored values changed. Unknown
        ids are skipped.
        """

        if not updates:
            return 0
        ids = [update.item_id for update in updates]
        with session_scope(self.engine) as session:
            records = {
                record.id: record
                for record in session.exec(
                    select(CatalogItemRecord).where(CatalogItemRecord.id.in_(ids))
                ).scalars()
            }
            modified = 0
            for update in updates:
                record = records.get(update.item_id)
                if record is None:
                    continue
                if _apply_fields(record, update.fields):
                    session.add(record)
                    modified += 1
        return modified

    def bulk_update_matching(self, updates: Sequence[MatchUpdate]) -> tuple[int, int]:
        """Apply each update to every item matching its key; returns (matched, modified)."""

        matched = 0
        modified = 0
        with session_scope(self.engine) as session:
            for update in updates:
                statement = select(CatalogItemRecord)
                if update.item_id:
                    statement = statement.where(CatalogItemRecord.id == update.item_id)
                else:
                    statement = statement.where(
                        CatalogItemRecord.name == update.name,
                        CatalogItemRecord.type == _plain(update.item_type),
                    )
                for record in session.exec(statement).scalars():
                    matched += 1
                    if _apply_fields(record, update.fields):
                        session.add(record)
                        modified += 1
        return matched, modified

    def delete(self, item_id: str) -> bool:
        with Session(self.engine) as session:
            record = session.get(CatalogItemRecord, item_id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    def delete_matching(self, keys: Sequence[MatchUpdate]) -> int:
        """Delete every item matching one of the given keys in one commit."""

        clauses = []
        for key in keys:
            if key.item_id:
                clauses.append(CatalogItemRecord.id == key.item_id)
            else:
                clauses.append(
                    (CatalogItemRecord.name == key.name)
                    & (CatalogItemRecord.type == _plain(key.item_type))
                )
        if not clauses:
            return 0
        with session_scope(self.engine) as session:
            records = session.exec(select(CatalogItemRecord).where(or_(*clauses))).scalars().all()
            for record in records:
                session.delete(record)
        return len(records)


def _record_payload(item: CatalogItemModel) -> dict[str, Any]:
    payload = item.model_dump(exclude=_COMPUTED_FIELDS)
    payload["type"] = item.type.value
    payload["placement"] = item.placement.value
    payload["casts"] = [cast.model_dump() for cast in item.casts]
    payload["cast_count"] = len(item.casts)
    payload["credit_slugs"] = credit_key(payload["casts"], item.director)
    payload["category_tokens"] = category_key(item.category)
    payload["external_ratings"] = item.external_ratings.model_dump(by_alias=True)
    return payload


def _to_model(record: CatalogItemRecord) -> CatalogItemModel:
    """Convert a catalog record into a response model."""

    payload = record.model_dump(exclude=set(_INTERNAL_FIELDS))
    payload["casts"] = [cast for cast in (record.casts or []) if isinstance(cast, dict) and cast.get("name")]
    payload["external_ratings"] = record.external_ratings or {}
    return CatalogItemModel.model_validate(payload)
