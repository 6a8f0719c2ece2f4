"""Normalized names and the dedup keys derived from them."""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")


def normalize_room_name(value: object) -> str:
    """Collapse inner whitespace and trim; ``None`` becomes an empty string."""

    return _WHITESPACE.sub(" ", "" if value is None else str(value)).strip()


def room_key(value: object) -> str:
    return normalize_room_name(value).lower()


def normalize_store_name(value: object) -> str:
    return ("" if value is None else str(value)).strip()


def store_key(value: object) -> str:
    """Lowercase, trimmed store name used for uniqueness and grouping."""

    return normalize_store_name(value).lower()
