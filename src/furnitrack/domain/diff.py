"""Field-level comparison between two versions of the same record.

Only domain fields are compared; sync state, timestamps and review bookkeeping
never produce a change. Field names use the bundle's wire spelling
(``selectedOptionId``, ``dimensions.wIn``, ``specs.<key>``) so change-log entries
read the same in exports.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from functools import singledispatch
from typing import TYPE_CHECKING

from furnitrack.domain.model import (
    Confidence,
    DataSource,
    DiscountType,
    Item,
    Measurement,
    Option,
    Room,
    Store,
    parse_enum,
)

if TYPE_CHECKING:
    from furnitrack.domain.model import Entity, Specs


@dataclass(slots=True, frozen=True)
class FieldChange:
    field: str
    from_value: object
    to_value: object


@dataclass(slots=True, frozen=True)
class TrackedField[E]:
    name: str
    get: Callable[[E], object]
    normalize: Callable[[object], object]


def normalize_string(value: object) -> str:
    return "" if value is None else str(value).strip()


def normalize_optional_string(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_optional_number(value: object) -> float | int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_boolean(value: object) -> bool:
    return bool(value)


def normalize_tags(value: object) -> tuple[str, ...]:
    """Trimmed, non-empty tags in their original order."""

    if not isinstance(value, list | tuple):
        return ()
    cleaned = (normalize_string(tag) for tag in value)
    return tuple(tag for tag in cleaned if tag)


def _enum_normalizer[E: (Confidence, DataSource, DiscountType)](
    enum_type: type[E],
) -> Callable[[object], E | None]:
    def normalize(value: object) -> E | None:
        return parse_enum(enum_type, value)

    return normalize


normalize_confidence = _enum_normalizer(Confidence)
normalize_data_source = _enum_normalizer(DataSource)
normalize_discount_type = _enum_normalizer(DiscountType)


def normalize_spec_value(value: object) -> str | float | int | bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int | float):
        return value if math.isfinite(value) else None
    return normalize_optional_string(value)


def _values_equal(left: object, right: object) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, float) and isinstance(right, float) and math.isnan(left):
        return math.isnan(right)
    return left == right


def diff_by_fields[E](
    existing: E,
    incoming: E,
    tracked: tuple[TrackedField[E], ...],
) -> list[FieldChange]:
    changes: list[FieldChange] = []
    for spec in tracked:
        before = spec.normalize(spec.get(existing))
        after = spec.normalize(spec.get(incoming))
        if not _values_equal(before, after):
            changes.append(FieldChange(spec.name, before, after))
    return changes


def diff_specs(existing: Specs | None, incoming: Specs | None) -> list[FieldChange]:
    before_map = existing or {}
    after_map = incoming or {}
    changes: list[FieldChange] = []
    for key in sorted({*before_map, *after_map}):
        before = normalize_spec_value(before_map.get(key))
        after = normalize_spec_value(after_map.get(key))
        if not _values_equal(before, after):
            changes.append(FieldChange(f"specs.{key}", before, after))
    return changes


def _provenance_fields[E: Entity]() -> tuple[TrackedField[E], ...]:
    return (
        TrackedField(
            "provenance.dataSource",
            lambda e: e.provenance.data_source if e.provenance else None,
            normalize_data_source,
        ),
        TrackedField(
            "provenance.sourceRef",
            lambda e: e.provenance.source_ref if e.provenance else None,
            normalize_optional_string,
        ),
    )


def _dimension_fields[E: (Item, Option)]() -> tuple[TrackedField[E], ...]:
    return (
        TrackedField(
            "dimensions.wIn",
            lambda e: e.dimensions.w_in if e.dimensions else None,
            normalize_optional_number,
        ),
        TrackedField(
            "dimensions.dIn",
            lambda e: e.dimensions.d_in if e.dimensions else None,
            normalize_optional_number,
        ),
        TrackedField(
            "dimensions.hIn",
            lambda e: e.dimensions.h_in if e.dimensions else None,
            normalize_optional_number,
        ),
    )


ROOM_FIELDS: tuple[TrackedField[Room], ...] = (
    TrackedField("name", lambda r: r.name, normalize_string),
    TrackedField("sort", lambda r: r.sort, normalize_optional_number),
    TrackedField("notes", lambda r: r.notes, normalize_optional_string),
    *_provenance_fields(),
)

MEASUREMENT_FIELDS: tuple[TrackedField[Measurement], ...] = (
    TrackedField("room", lambda m: m.room, normalize_string),
    TrackedField("label", lambda m: m.label, normalize_string),
    TrackedField("valueIn", lambda m: m.value_in, normalize_optional_number),
    TrackedField("sort", lambda m: m.sort, normalize_optional_number),
    TrackedField("confidence", lambda m: m.confidence, normalize_confidence),
    TrackedField("forCategory", lambda m: m.for_category, normalize_optional_string),
    TrackedField("forItemId", lambda m: m.for_item_id, normalize_optional_string),
    TrackedField("notes", lambda m: m.notes, normalize_optional_string),
    *_provenance_fields(),
)

ITEM_FIELDS: tuple[TrackedField[Item], ...] = (
    TrackedField("name", lambda i: i.name, normalize_string),
    TrackedField("room", lambda i: i.room, normalize_string),
    TrackedField("category", lambda i: i.category, normalize_string),
    TrackedField("status", lambda i: i.status, normalize_string),
    TrackedField("selectedOptionId", lambda i: i.selected_option_id, normalize_optional_string),
    TrackedField("sort", lambda i: i.sort, normalize_optional_number),
    TrackedField("price", lambda i: i.price, normalize_optional_number),
    TrackedField("discountType", lambda i: i.discount_type, normalize_discount_type),
    TrackedField("discountValue", lambda i: i.discount_value, normalize_optional_number),
    TrackedField("qty", lambda i: i.qty, normalize_optional_number),
    TrackedField("store", lambda i: i.store, normalize_optional_string),
    TrackedField("link", lambda i: i.link, normalize_optional_string),
    TrackedField("notes", lambda i: i.notes, normalize_optional_string),
    TrackedField("priority", lambda i: i.priority, normalize_optional_number),
    TrackedField("tags", lambda i: i.tags, normalize_tags),
    *_dimension_fields(),
    *_provenance_fields(),
)

OPTION_FIELDS: tuple[TrackedField[Option], ...] = (
    TrackedField("itemId", lambda o: o.item_id, normalize_string),
    TrackedField("title", lambda o: o.title, normalize_string),
    TrackedField("sort", lambda o: o.sort, normalize_optional_number),
    TrackedField("store", lambda o: o.store, normalize_optional_string),
    TrackedField("link", lambda o: o.link, normalize_optional_string),
    TrackedField("promoCode", lambda o: o.promo_code, normalize_optional_string),
    TrackedField("price", lambda o: o.price, normalize_optional_number),
    TrackedField("shipping", lambda o: o.shipping, normalize_optional_number),
    TrackedField("taxEstimate", lambda o: o.tax_estimate, normalize_optional_number),
    TrackedField("discount", lambda o: o.discount, normalize_optional_number),
    TrackedField("discountType", lambda o: o.discount_type, normalize_discount_type),
    TrackedField("discountValue", lambda o: o.discount_value, normalize_optional_number),
    TrackedField("dimensionsText", lambda o: o.dimensions_text, normalize_optional_string),
    *_dimension_fields(),
    TrackedField("notes", lambda o: o.notes, normalize_optional_string),
    TrackedField("priority", lambda o: o.priority, normalize_optional_number),
    TrackedField("tags", lambda o: o.tags, normalize_tags),
    TrackedField("selected", lambda o: o.selected, normalize_boolean),
    TrackedField("sourceItemId", lambda o: o.source_item_id, normalize_optional_string),
    *_provenance_fields(),
)

STORE_FIELDS: tuple[TrackedField[Store], ...] = (
    TrackedField("name", lambda s: s.name, normalize_string),
    TrackedField("sort", lambda s: s.sort, normalize_optional_number),
    TrackedField("discountType", lambda s: s.discount_type, normalize_discount_type),
    TrackedField("discountValue", lambda s: s.discount_value, normalize_optional_number),
    TrackedField("shippingCost", lambda s: s.shipping_cost, normalize_optional_number),
    TrackedField("deliveryInfo", lambda s: s.delivery_info, normalize_optional_string),
    TrackedField("extraWarranty", lambda s: s.extra_warranty, normalize_optional_string),
    TrackedField("extraWarrantyCost", lambda s: s.extra_warranty_cost, normalize_optional_number),
    TrackedField("trial", lambda s: s.trial, normalize_optional_string),
    TrackedField("apr", lambda s: s.apr, normalize_optional_string),
    TrackedField("taxCost", lambda s: s.tax_cost, normalize_optional_number),
    TrackedField("notes", lambda s: s.notes, normalize_optional_string),
    *_provenance_fields(),
)


@singledispatch
def diff(existing: object, incoming: object) -> list[FieldChange]:
    """Ordered list of changed domain fields between two versions of a record."""

    raise TypeError(f"No diff defined for {type(existing).__name__}")


@diff.register
def _(existing: Room, incoming: Room) -> list[FieldChange]:
    return diff_by_fields(existing, incoming, ROOM_FIELDS)


@diff.register
def _(existing: Measurement, incoming: Measurement) -> list[FieldChange]:
    return diff_by_fields(existing, incoming, MEASUREMENT_FIELDS)


@diff.register
def _(existing: Item, incoming: Item) -> list[FieldChange]:
    return [
        *diff_by_fields(existing, incoming, ITEM_FIELDS),
        *diff_specs(existing.specs, incoming.specs),
    ]


@diff.register
def _(existing: Option, incoming: Option) -> list[FieldChange]:
    return [
        *diff_by_fields(existing, incoming, OPTION_FIELDS),
        *diff_specs(existing.specs, incoming.specs),
    ]


@diff.register
def _(existing: Store, incoming: Store) -> list[FieldChange]:
    return diff_by_fields(existing, incoming, STORE_FIELDS)
