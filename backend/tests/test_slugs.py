"""Tests for slug derivation, deduplication and bulk regeneration."""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlmodel import Session

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.db import create_engine_from_settings, init_database  # noqa: E402
from backend.catalog_api.errors import ValidationError  # noqa: E402
from backend.catalog_api.models import CatalogItemRecord  # noqa: E402
from backend.catalog_api.schemas import (  # noqa: E402
    CatalogFilter,
    CatalogItemCreate,
    CatalogItemUpdate,
)
from backend.catalog_api.services.catalog_service import CatalogService  # noqa: E402
from backend.catalog_api.services.enrichment import MetadataEnrichmentCache  # noqa: E402
from backend.catalog_api.services.ordering import CatalogOrderIndex  # noqa: E402
from backend.catalog_api.services.slugs import (  # noqa: E402
    SlugAssigner,
    needs_new_slug,
    slugify,
)
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_api.stores.catalog_store import CatalogStore  # noqa: E402


@pytest.fixture()
def store(tmp_path: Path) -> CatalogStore:
    settings = CatalogSettings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}")
    engine = create_engine_from_settings(settings)
    init_database(engine)
    return CatalogStore(engine)


def add(store: CatalogStore, item_id: str, name: str, slug: str | None = None) -> None:
    with Session(store.engine) as session:
        session.add(
            CatalogItemRecord(
                id=item_id,
                name=name,
                slug=slug,
                order_index=1,
                created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        )
        session.commit()


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("The Dark Knight", "the-dark-knight"),
        ("Amélie: Le Fabuleux Destin", "amelie-le-fabuleux-destin"),
        ("  --Hello   World--  ", "hello-world"),
        ("Spider-Man: No Way Home (2021)", "spider-man-no-way-home-2021"),
        ("Mission -- Impossible", "mission-impossible"),
        ("!!!", ""),
        (None, ""),
    ],
)
def test_slugify(name: str | None, expected: str) -> None:
    assert slugify(name) == expected


def test_collisions_get_numeric_suffixes(store: CatalogStore) -> None:
    assigner = SlugAssigner(store)
    add(store, "a", "Title", "title")

    assert assigner.assign("Title", item_id="b") == "title-2"
    add(store, "b", "Title", "title-2")
    assert assigner.assign("Title", item_id="c") == "title-3"


def test_assign_is_idempotent_for_the_owner(store: CatalogStore) -> None:
    assigner = SlugAssigner(store)
    add(store, "a", "Title", "title")

    assert assigner.assign("Title", item_id="a") == "title"


def test_assign_honours_batch_reservations(store: CatalogStore) -> None:
    assigner = SlugAssigner(store)
    reserved: set[str] = set()

    first = assigner.assign("Same Name", item_id="x", reserved=reserved)
    second = assigner.assign("Same Name", item_id="y", reserved=reserved)

    assert (first, second) == ("same-name", "same-name-2")
    assert reserved == {"same-name", "same-name-2"}


def test_empty_slug_falls_back_to_item_id(store: CatalogStore) -> None:
    assert SlugAssigner(store).assign("???", item_id="abc123") == "abc123"


def test_regenerate_all_is_stable(store: CatalogStore) -> None:
    add(store, "a", "Title")
    add(store, "b", "Title")
    add(store, "c", "Other Film", "stale-slug")
    assigner = SlugAssigner(store)

    first = assigner.regenerate_all()
    slugs = {item.id: item.slug for item in store.get_many(["a", "b", "c"])}
    second = assigner.regenerate_all()

    assert first.updated_count == 3
    assert first.errors_count == 0
    assert second.updated_count == 3
    assert sorted([slugs["a"], slugs["b"]]) == ["title", "title-2"]
    assert slugs["c"] == "other-film"
    assert {item.id: item.slug for item in store.get_many(["a", "b", "c"])} == slugs


def test_regeneration_only_on_identity_change() -> None:
    kwargs = {"old_name": "A", "new_name": "A", "old_year": 2020, "new_year": 2020}
    assert needs_new_slug(current_slug="a", **kwargs) is False
    assert needs_new_slug(current_slug=None, **kwargs) is True
    assert needs_new_slug(current_slug="a", **{**kwargs, "new_name": "B"}) is True
    assert needs_new_slug(current_slug="a", **{**kwargs, "new_year": 2021}) is True


class RacingSlugs:
    """Returns a slug another writer already holds for the first ``times`` calls."""

    def __init__(self, store: CatalogStore, taken: str, times: int) -> None:
        self._real = SlugAssigner(store)
        self.taken = taken
        self.times = times
        self.calls = 0

    def assign(self, name: str, *, item_id: str, reserved: set[str] | None = None) -> str:
        self.calls += 1
        if self.calls <= self.times:
            return self.taken
        return self._real.assign(name, item_id=item_id, reserved=reserved)


def make_service(store: CatalogStore, slugs: RacingSlugs) -> CatalogService:
    return CatalogService(
        store,
        slugs=slugs,  # type: ignore[arg-type]
        order_index=CatalogOrderIndex(store),
        enrichment=MetadataEnrichmentCache(store),
        slug_conflict_retries=2,
    )


def inception_payload() -> CatalogItemCreate:
    return CatalogItemCreate(
        type="Movie",
        name="Inception",
        desc="Dreams within dreams",
        category="Action",
        browse_by="Hollywood",
        language="English",
        year=2010,
    )


def test_create_retries_after_concurrent_slug_claim(store: CatalogStore) -> None:
    add(store, "a", "Inception", "inception")
    slugs = RacingSlugs(store, "inception", times=1)

    created = make_service(store, slugs).create(inception_payload())

    assert slugs.calls == 2
    assert created.slug == "inception-2"


def test_create_gives_up_when_slug_stays_taken(store: CatalogStore) -> None:
    add(store, "a", "Inception", "inception")
    slugs = RacingSlugs(store, "inception", times=99)

    with pytest.raises(ValidationError, match="Could not assign a unique slug") as excinfo:
        make_service(store, slugs).create(inception_payload())

    assert excinfo.value.status_code == 400
    assert slugs.calls == 3
    assert store.count(CatalogFilter()) == 1


def test_update_retries_slug_conflict_then_gives_up(store: CatalogStore) -> None:
    add(store, "a", "Inception", "inception")
    add(store, "b", "Old Title", "old-title")

    retried = RacingSlugs(store, "inception", times=1)
    renamed = make_service(store, retried).update("b", CatalogItemUpdate(name="Inception"))
    assert retried.calls == 2
    assert renamed.slug == "inception-2"

    stuck = RacingSlugs(store, "inception", times=99)
    with pytest.raises(ValidationError) as excinfo:
        make_service(store, stuck).update("b", CatalogItemUpdate(name="Inception Redux"))
    assert excinfo.value.status_code == 400
    assert stuck.calls == 3
    unchanged = store.get("b")
    assert unchanged is not None
    assert (unchanged.name, unchanged.slug) == ("Inception", "inception-2")
