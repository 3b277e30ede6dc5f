"""Tests for in-page reorders, cross-page moves and the rank repair pass."""
from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlmodel import Session

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.db import create_engine_from_settings, init_database  # noqa: E402
from backend.catalog_api.errors import (  # noqa: E402
    NotFoundError,
    PageRangeError,
    ValidationError,
)
from backend.catalog_api.models import CatalogItemRecord  # noqa: E402
from backend.catalog_api.schemas import CatalogFilter, Placement  # noqa: E402
from backend.catalog_api.services.listing import assemble_page  # noqa: E402
from backend.catalog_api.services.ordering import CatalogOrderIndex  # noqa: E402
from backend.catalog_api.services.reorder import PageReorderer, PagesMover  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_api.stores.catalog_store import CatalogStore  # noqa: E402

PAGE_SIZE = 3
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def store(tmp_path: Path) -> CatalogStore:
    settings = CatalogSettings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}")
    engine = create_engine_from_settings(settings)
    init_database(engine)
    store = CatalogStore(engine)
    with Session(engine) as session:
        for index in range(1, 8):
            session.add(
                CatalogItemRecord(
                    id=f"m{index}",
                    name=f"Movie {index}",
                    slug=f"movie-{index}",
                    order_index=index,
                    created_at=BASE_TIME - timedelta(days=index),
                    updated_at=BASE_TIME,
                )
            )
        session.commit()
    return store


@pytest.fixture()
def order_index(store: CatalogStore) -> CatalogOrderIndex:
    return CatalogOrderIndex(store)


@pytest.fixture()
def reorderer(store: CatalogStore, order_index: CatalogOrderIndex) -> PageReorderer:
    return PageReorderer(store, order_index, page_size=PAGE_SIZE)


@pytest.fixture()
def mover(store: CatalogStore, order_index: CatalogOrderIndex) -> PagesMover:
    return PagesMover(store, order_index, page_size=PAGE_SIZE)


def ranks(store: CatalogStore) -> dict[str, int | None]:
    return {item.id: item.order_index for item in store.get_many(f"m{i}" for i in range(1, 8))}


def page_ids(store: CatalogStore, page: int) -> list[str]:
    return [item.id for item in assemble_page(store, CatalogFilter(), page, PAGE_SIZE).items]


def test_reorder_swaps_slots_within_the_page_only(
    store: CatalogStore, reorderer: PageReorderer
) -> None:
    before = ranks(store)

    result = reorderer.reorder_page(2, ["m6", "m4", "m5"])

    assert result.page == 2
    assert result.reordered_count == 3
    after = ranks(store)
    assert after["m6"] == 4
    assert after["m4"] == 5
    assert after["m5"] == 6
    for untouched in ("m1", "m2", "m3", "m7"):
        assert after[untouched] == before[untouched]
    assert sorted(after[i] for i in ("m4", "m5", "m6")) == [4, 5, 6]
    assert page_ids(store, 2) == ["m6", "m4", "m5"]


def test_reorder_trims_blank_ids(store: CatalogStore, reorderer: PageReorderer) -> None:
    reorderer.reorder_page(1, [" m3 ", "m1", "", "m2"])

    assert page_ids(store, 1) == ["m3", "m1", "m2"]


@pytest.mark.parametrize(
    ("ordered_ids", "error", "message"),
    [
        ([], ValidationError, "orderedIds array is required"),
        (["m4", "m4", "m5"], ValidationError, "orderedIds must not contain duplicates"),
        (["m4", "m5", "m1"], PageRangeError, "orderedIds must contain exactly the IDs of this page"),
        (["m4", "m5"], PageRangeError, "orderedIds must contain exactly the IDs of this page"),
        (["m4", "m5", "m6", "m7"], PageRangeError, "orderedIds must contain exactly the IDs of this page"),
    ],
)
def test_reorder_rejections_leave_ranks_untouched(
    store: CatalogStore,
    reorderer: PageReorderer,
    ordered_ids: list[str],
    error: type[Exception],
    message: str,
) -> None:
    before = ranks(store)

    with pytest.raises(error) as excinfo:
        reorderer.reorder_page(2, ordered_ids)

    assert str(excinfo.value) == message
    assert ranks(store) == before


def test_reorder_page_out_of_range(store: CatalogStore, reorderer: PageReorderer) -> None:
    with pytest.raises(PageRangeError, match="Page number out of range"):
        reorderer.reorder_page(4, ["m1"])


def test_reorder_respects_listing_filter(store: CatalogStore, reorderer: PageReorderer) -> None:
    store.update_fields("m2", {"category": "Drama"})
    store.update_fields("m5", {"category": "Drama"})

    reorderer.reorder_page(1, ["m5", "m2"], {"category": "Drama"})

    assert ranks(store)["m5"] == 2
    assert ranks(store)["m2"] == 5


def test_repair_pass_assigns_missing_ranks_in_display_order(
    store: CatalogStore, order_index: CatalogOrderIndex
) -> None:
    store.update_fields("m2", {"order_index": None})

    assert order_index.ensure_order_indexes() is True

    # m2 has no rank and sorts after the ranked normal items.
    assert ranks(store) == {"m1": 1, "m3": 2, "m4": 3, "m5": 4, "m6": 5, "m7": 6, "m2": 7}
    assert order_index.ensure_order_indexes() is False


def test_move_to_first_page_promotes_items(store: CatalogStore, mover: PagesMover) -> None:
    result = mover.move_to_page(1, ["m7"])

    assert result.total == 7
    assert result.target_page == 1
    assert result.moved_count == 1
    moved = store.get("m7")
    assert moved is not None
    assert moved.order_index == 1
    assert moved.placement is Placement.PROMOTED
    assert page_ids(store, 1) == ["m7", "m1", "m2"]
    assert ranks(store) == {"m7": 1, "m1": 2, "m2": 3, "m3": 4, "m4": 5, "m5": 6, "m6": 7}


def test_move_to_later_page_keeps_placement(store: CatalogStore, mover: PagesMover) -> None:
    result = mover.move_to_page(2, ["m1", "m6"])

    assert result.target_page == 2
    assert result.moved_count == 2
    assert ranks(store) == {"m2": 1, "m3": 2, "m4": 3, "m1": 4, "m6": 5, "m5": 6, "m7": 7}
    assert store.get("m1").placement is Placement.NORMAL
    assert page_ids(store, 2) == ["m1", "m6", "m5"]


def test_move_clamps_target_page(store: CatalogStore, mover: PagesMover) -> None:
    result = mover.move_to_page(99, ["m1"])

    assert result.target_page == 3
    assert ranks(store)["m1"] == 7


def test_move_with_unknown_ids_is_not_found(store: CatalogStore, mover: PagesMover) -> None:
    before = ranks(store)

    with pytest.raises(NotFoundError, match="Selected movies not found"):
        mover.move_to_page(1, ["missing"])

    assert ranks(store) == before


def test_move_requires_ids(mover: PagesMover) -> None:
    with pytest.raises(ValidationError, match="movieIds array is required"):
        mover.move_to_page(1, [])
