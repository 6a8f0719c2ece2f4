"""Lenient scalar coercions for untrusted bundle JSON.

Every helper accepts any value and returns ``None`` (or an empty default) instead
of raising, so a single malformed field never rejects a whole record.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping

from furnitrack.domain.model import (
    Actor,
    Confidence,
    DataSource,
    DiscountType,
    ReviewStatus,
    SyncState,
    parse_enum,
)

_NON_NUMERIC = re.compile(r"[^0-9.+-]")


def as_text(value: object) -> str | None:
    return value if isinstance(value, str) else None


def as_trimmed_text(value: object) -> str | None:
    """Non-blank string, trimmed; anything else is ``None``."""

    if not isinstance(value, str):
        return None
    return value.strip() or None


def as_id(value: object) -> str | None:
    """Stringified, trimmed reference; blank or missing becomes ``None``."""

    if value is None or isinstance(value, dict | list):
        return None
    return str(value).strip() or None


def as_number(value: object) -> float | None:
    """Finite number from a number or a loosely formatted string (``"$1,200"``)."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value.strip())
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def as_strict_number(value: object) -> float | None:
    """Finite JSON number only; strings are rejected."""

    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value) if math.isfinite(value) else None


def as_timestamp(value: object) -> int | None:
    number = as_strict_number(value)
    return None if number is None else int(number)


def as_tags(value: object) -> list[str] | None:
    """Tags from a list or a comma-separated string; empty results are ``None``."""

    if isinstance(value, str):
        tags = [part.strip() for part in value.split(",")]
    elif isinstance(value, list):
        tags = ["" if tag is None else str(tag).strip() for tag in value]
    else:
        return None
    cleaned = [tag for tag in tags if tag]
    return cleaned or None


def as_string_list(value: object) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [text for text in ("" if v is None else str(v).strip() for v in value) if text]


def as_specs(value: object) -> dict[str, str | int | float | bool | None] | None:
    """Scalar-valued spec map; nested values are kept as their JSON text."""

    if not isinstance(value, Mapping):
        return None
    specs: dict[str, str | int | float | bool | None] = {}
    for raw_key, raw_value in value.items():
        key = str(raw_key).strip()
        if not key:
            continue
        if raw_value is None or isinstance(raw_value, str | bool):
            specs[key] = raw_value
        elif isinstance(raw_value, int | float):
            specs[key] = raw_value if math.isfinite(raw_value) else None
        else:
            specs[key] = json.dumps(raw_value)
    return specs or None


def as_mapping(value: object) -> dict[str, object] | None:
    return dict(value) if isinstance(value, Mapping) else None


def as_list(value: object) -> list[object] | None:
    return value if isinstance(value, list) else None


def as_actor(value: object) -> Actor | None:
    return parse_enum(Actor, value)


def as_data_source(value: object) -> DataSource | None:
    return parse_enum(DataSource, value)


def as_review_status(value: object) -> ReviewStatus | None:
    return parse_enum(ReviewStatus, value)


def as_discount_type(value: object) -> DiscountType | None:
    return parse_enum(DiscountType, value)


def as_confidence(value: object) -> Confidence | None:
    return parse_enum(Confidence, value)


def as_sync_state(value: object) -> SyncState | None:
    return parse_enum(SyncState, value)
