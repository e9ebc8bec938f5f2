"""
String helpers: key-case conversion and search folding.

The remote tables use camelCase column names (``weekNumber``,
``licensePlate``) while the models are snake_case.  Repositories convert
whole rows, including nested car lists, with :func:`normalize_keys` and
:func:`denormalize_keys`.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Callable

__all__ = [
    "denormalize_keys",
    "escape_like",
    "fold_for_search",
    "normalize_keys",
    "sanitize_search_term",
    "to_camel_case",
    "to_snake_case",
]

_RE_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_RE_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_RE_LIKE_SPECIAL = re.compile(r"([\\%_])")


def to_snake_case(name: str) -> str:
    """``weekNumber`` -> ``week_number``; ``id`` stays ``id``."""
    return _RE_CAMEL_BOUNDARY.sub("_", name).lower()


def to_camel_case(name: str) -> str:
    """``manual_open_week`` -> ``manualOpenWeek``."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _convert_keys(data: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(data, dict):
        return {convert(key): _convert_keys(value, convert) for key, value in data.items()}
    if isinstance(data, list):
        return [_convert_keys(item, convert) for item in data]
    return data


def normalize_keys(data: Any) -> Any:
    """Store row -> model fields (camelCase keys to snake_case, recursively)."""
    return _convert_keys(data, to_snake_case)


def denormalize_keys(data: Any) -> Any:
    """Model dump -> store row (snake_case keys to camelCase, recursively)."""
    return _convert_keys(data, to_camel_case)


def fold_for_search(value: str) -> str:
    """Casefold and drop accents so ``"João"`` matches ``"joao"``."""
    decomposed = unicodedata.normalize("NFKD", value.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def sanitize_search_term(value: str) -> str:
    """Strip control characters and surrounding whitespace, then fold."""
    return fold_for_search(_RE_CONTROL_CHARS.sub("", value).strip())


def escape_like(value: str) -> str:
    r"""Escape ``\``, ``%`` and ``_`` so *value* matches literally in LIKE/ILIKE."""
    return _RE_LIKE_SPECIAL.sub(r"\\\1", value)
