"""Title cleanup helpers shared by the metadata lookup cascades."""
from __future__ import annotations

import re

_IMDB_ID = re.compile(r"^tt\d{5,10}$", re.IGNORECASE)
_YEAR_IN_PARENS = re.compile(r"\(\s*(19\d{2}|20\d{2})\s*\)")
_YEAR_AT_END = re.compile(r"\b(19\d{2}|20\d{2})\b\s*$")
_TRAILING_PUNCT = re.compile(r"[-|:]+$")

_GARBAGE = (
    r"(hindi|urdu|english|dubbed|dual\s*audio|multi\s*audio|webrip|web[-\s]*dl|"
    r"bluray|hdrip|dvdrip|cam|480p|720p|1080p|2160p|4k)"
)
_BRACKET_TAG = re.compile(rf"\s*[\[(][^\])]*{_GARBAGE}[^\])]*[\])]\s*$", re.IGNORECASE)

_SUFFIX_TAGS = [
    re.compile(rf"(?:\s*[-|:]?\s*){pattern}\s*$", re.IGNORECASE)
    for pattern in (
        r"hindi\s*dubbed",
        r"urdu\s*dubbed",
        r"english\s*dubbed",
        r"dual\s*audio",
        r"multi\s*audio",
        r"hindi",
        r"urdu",
        r"english",
        r"hdrip",
        r"webrip",
        r"web[-\s]*dl",
        r"bluray",
        r"dvdrip",
        r"cam",
        r"hd",
        r"(480p|720p|1080p|2160p|4k)",
    )
]


def normalize_spaces(value: str | None) -> str:
    return re.sub(r"\s+", " ", str(value or "")).strip()


def normalize_imdb_id(value: str | None) -> str:
    """Return ``value`` if it looks like an IMDb title id, else an empty string."""

    text = str(value or "").strip()
    return text if _IMDB_ID.match(text) else ""


def extract_year_from_title(name: str | None) -> int | None:
    text = str(name or "")
    match = _YEAR_IN_PARENS.search(text) or _YEAR_AT_END.search(text)
    return int(match.group(1)) if match else None


def valid_year(value: object) -> int | None:
    try:
        year = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return year if year > 1800 else None


def strip_year_suffix(title: str, year: int | None) -> str:
    if valid_year(year) is None:
        return title
    escaped = re.escape(str(year))
    text = re.sub(rf"\s*\(\s*{escaped}\s*\)\s*$", "", title)
    text = re.sub(rf"\s+{escaped}\s*$", "", text)
    text = _TRAILING_PUNCT.sub("", text)
    return normalize_spaces(text)


def normalize_title_for_tmdb(raw_name: str | None, year: int | None = None) -> str:
    """Clean a stored name into a search query.

    ``"The Rip (2026) Hindi"`` becomes ``"The Rip"``.
    """

    title = normalize_spaces(raw_name)
    if not title:
        return ""
    title = normalize_spaces(_BRACKET_TAG.sub("", title))

    changed = True
    while changed:
        changed = False
        for pattern in _SUFFIX_TAGS:
            if pattern.search(title):
                title = normalize_spaces(pattern.sub("", title))
                changed = True
        title = normalize_spaces(_TRAILING_PUNCT.sub("", title))

    return strip_year_suffix(title, year)


def normalize_title_for_omdb(title: str | None, year: int | None = None) -> str:
    text = str(title or "").strip()
    if not text:
        return ""
    if year:
        text = re.sub(rf"\(?\b{re.escape(str(year))}\b\)?\s*$", "", text).strip()
    return normalize_spaces(text)


def year_from_date(value: str | None) -> int | None:
    text = str(value or "").strip()
    if len(text) < 4:
        return None
    try:
        return int(text[:4])
    except ValueError:
        return None


def year_matches(candidate: str | None, target: int | None) -> bool:
    """Compare an OMDb ``Year`` value against a release year.

    Series report ranges such as ``"2011–2019"``; the start year counts.
    """

    text = str(candidate or "").strip()
    if not text or not target:
        return False
    wanted = str(target)
    return text == wanted or text.startswith(f"{wanted}–") or text.startswith(f"{wanted}-")
