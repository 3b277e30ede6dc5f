"""Merge the normal and pinned partitions into fixed-size pages."""
from __future__ import annotations

import math
from dataclasses import dataclass

from ..schemas import CatalogFilter, CatalogItemModel, CatalogPage
from ..stores.catalog_store import CatalogStore


@dataclass(slots=True)
class PageSlice:
    items: list[CatalogItemModel]
    total: int
    pages: int


def page_count(total: int, page_size: int) -> int:
    """Number of pages for ``total`` items; an empty listing still has one page."""

    return max(1, math.ceil(total / page_size))


def normalize_page(value: object) -> int:
    try:
        page = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def page_slice(
    store: CatalogStore, filters: CatalogFilter, page: int, page_size: int
) -> PageSlice:
    """Read one page using two counts and at most two range queries.

    Pages past the end return no items without touching the range queries,
    so arbitrarily large page numbers never reach the database as an offset.
    """

    count_normal = store.count(filters, partition="normal")
    count_pinned = store.count(filters, partition="pinned")
    total = count_normal + count_pinned
    pages = page_count(total, page_size)
    skip = (page - 1) * page_size
    if skip >= total:
        return PageSlice(items=[], total=total, pages=pages)

    items: list[CatalogItemModel]
    if skip < count_normal:
        take = min(page_size, count_normal - skip)
        items = store.find(filters, partition="normal", skip=skip, limit=take)
        remaining = page_size - len(items)
        if remaining > 0 and count_pinned:
            items += store.find(filters, partition="pinned", skip=0, limit=remaining)
    else:
        items = store.find(
            filters, partition="pinned", skip=skip - count_normal, limit=page_size
        )
    return PageSlice(items=items, total=total, pages=pages)


def assemble_page(
    store: CatalogStore, filters: CatalogFilter, page: int, page_size: int
) -> CatalogPage:
    """Build the listing response for ``page``; out-of-range pages are empty."""

    current = normalize_page(page)
    result = page_slice(store, filters, current, page_size)
    return CatalogPage(
        items=result.items, page=current, pages=result.pages, total=result.total
    )
