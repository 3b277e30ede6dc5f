"""Homepage banner rotation."""
from __future__ import annotations

from .curation import CuratedListService

BANNER_MAX_LIMIT = 50


class BannerService(CuratedListService):
    """Titles featured in the banner, most recently featured first."""

    kind = "banner"
    flag_field = "banner"
    stamp_field = "banner_at"
    label = "Banner"
    max_limit = BANNER_MAX_LIMIT
