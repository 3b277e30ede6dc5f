"""Slug and token helpers shared by the store and the services."""
from __future__ import annotations

import re
import unicodedata
from typing import Any, Iterable

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_CATEGORY_DELIMITERS = re.compile(r"[,/|;&]+")


def slugify(text: str | None) -> str:
    """Return a lowercase, hyphen separated ASCII form of ``text``."""

    folded = unicodedata.normalize("NFKD", str(text or ""))
    folded = "".join(char for char in folded if not unicodedata.combining(char))
    slug = _DISALLOWED.sub("", folded.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


def category_tokens(value: str | None) -> list[str]:
    """Split ``"Crime, Thriller / Suspense"`` into lowercased, de-duplicated tokens."""

    parts = (part.strip().lower() for part in _CATEGORY_DELIMITERS.split(str(value or "")))
    return list(dict.fromkeys(part for part in parts if part))


def _joined(tokens: Iterable[str]) -> str:
    unique = list(dict.fromkeys(token for token in tokens if token))
    return f"|{'|'.join(unique)}|" if unique else ""


def category_key(value: str | None) -> str:
    """Searchable ``|token|token|`` form of a category string."""

    return _joined(category_tokens(value))


def credit_key(casts: Iterable[Any] | None, director: str | None) -> str:
    """Searchable ``|slug|slug|`` form of everyone credited on an item."""

    names = []
    for cast in casts or []:
        name = cast.get("name") if isinstance(cast, dict) else getattr(cast, "name", None)
        names.append(slugify(name))
    names.append(slugify(director))
    return _joined(names)
