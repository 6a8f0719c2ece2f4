"""Translate between local records and flat remote rows.

Typed columns carry what the remote schema can express; the rest of each record
rides in the metadata block of the ``Notes`` column.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import singledispatch
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from furnitrack.domain.bundle import provenance_from_raw, to_wire
from furnitrack.domain.bundle.coerce import (
    as_confidence,
    as_discount_type,
    as_id,
    as_number,
    as_specs,
    as_tags,
    as_text,
    as_timestamp,
    as_trimmed_text,
)
from furnitrack.domain.bundle.schema import RawDimensions, RawProvenance
from furnitrack.domain.model import (
    Dimensions,
    DiscountType,
    EntityKind,
    Item,
    ItemStatus,
    Measurement,
    Option,
    Room,
    Store,
    SyncState,
    cm_to_inches,
    inches_to_cm,
    parse_enum,
)

from .metadata import decode_notes, encode_notes

if TYPE_CHECKING:
    from furnitrack.domain.model import AnyEntity
    from furnitrack.domain.ports import RemoteRecord

log = getLogger(__name__)

RECORD_TYPE: Final = "Record Type"
TITLE: Final = "Title"
ROOM: Final = "Room"
STATUS: Final = "Status"
PRICE: Final = "Price"
QUANTITY: Final = "Quantity"
STORE: Final = "Store"
LINK: Final = "Link"
NOTES: Final = "Notes"
DIMENSIONS: Final = "Dimensions"
PRIORITY: Final = "Priority"
PARENT_ITEM: Final = "Parent Item Record Id"
SELECTED_OPTION: Final = "Selected Option Id"
PROMO_CODE: Final = "Promo Code"
SHIPPING: Final = "Shipping"
TAX_ESTIMATE: Final = "Tax Estimate"
DISCOUNT: Final = "Discount"
MEASURE_LABEL: Final = "Measure Label"
VALUE_IN: Final = "Value (in)"
VALUE_CM: Final = "Value (cm)"
VALUE: Final = "Value"
UNIT_ENTERED: Final = "Unit Entered"
CONFIDENCE: Final = "Confidence"
LAST_SYNC_SOURCE: Final = "Last Sync Source"
LAST_SYNC_AT: Final = "Last Sync At"

DEFAULT_ROOM: Final = "Living"

RECORD_TYPES: dict[EntityKind, str] = {
    EntityKind.ROOM: "Note",
    EntityKind.STORE: "Store",
    EntityKind.MEASUREMENT: "Measurement",
    EntityKind.ITEM: "Item",
    EntityKind.OPTION: "Option",
}
KIND_BY_RECORD_TYPE: dict[str, EntityKind] = {value: key for key, value in RECORD_TYPES.items()}

_DIMENSIONS_TEXT = re.compile(
    r"(\d+(?:\.\d+)?)\s*[x×]\s*(\d+(?:\.\d+)?)\s*[x×]\s*(\d+(?:\.\d+)?)", re.IGNORECASE
)

type RemoteIdLookup = Callable[[EntityKind, str | None], str | None]
type LocalIdLookup = Callable[[EntityKind, str | None], str | None]


def parse_dimensions(text: object) -> Dimensions | None:
    """Dimensions from ``"WxDxH"`` text; ``None`` unless all three parts are present."""

    match = _DIMENSIONS_TEXT.search(text) if isinstance(text, str) else None
    if match is None:
        return None
    width, depth, height = (float(group) for group in match.groups())
    return Dimensions(w_in=width, d_in=depth, h_in=height)


def _compact(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _common_meta(entity: AnyEntity) -> dict[str, Any]:
    return {
        "localId": entity.id,
        "sort": entity.sort,
        "createdAt": entity.created_at,
        "updatedAt": entity.updated_at,
        "provenance": to_wire(entity.provenance) if entity.provenance else None,
    }


def _priority(value: float | None) -> int | None:
    return None if value is None else round(value)


def _pulled_priority(column: object, stated: object) -> float | None:
    """The column wins unless it still holds the rounded form of the stated priority."""

    value = as_number(column)
    exact = as_number(stated)
    if exact is not None and value == _priority(exact):
        return exact
    return value


# --- Local to remote ----------------------------------------------------------


@singledispatch
def remote_fields(entity: object, resolve_remote: RemoteIdLookup) -> dict[str, Any]:
    """Typed columns plus the ``Notes`` block for one local record."""

    raise TypeError(f"No remote mapping for {type(entity).__name__}")


@remote_fields.register
def _(entity: Room, resolve_remote: RemoteIdLookup) -> dict[str, Any]:
    meta = {**_common_meta(entity), "name": entity.name}
    return {
        RECORD_TYPE: RECORD_TYPES[EntityKind.ROOM],
        TITLE: f"{entity.id} notes",
        ROOM: entity.id,
        NOTES: encode_notes(entity.notes, _compact(meta)),
    }


@remote_fields.register
def _(entity: Store, resolve_remote: RemoteIdLookup) -> dict[str, Any]:
    meta = {
        **_common_meta(entity),
        "discountType": to_wire(entity.discount_type),
        "discountValue": entity.discount_value,
        "shippingCost": entity.shipping_cost,
        "deliveryInfo": entity.delivery_info,
        "extraWarranty": entity.extra_warranty,
        "extraWarrantyCost": entity.extra_warranty_cost,
        "trial": entity.trial,
        "apr": entity.apr,
        "taxCost": entity.tax_cost,
    }
    return {
        RECORD_TYPE: RECORD_TYPES[EntityKind.STORE],
        TITLE: entity.name,
        STORE: entity.name,
        NOTES: encode_notes(entity.notes, _compact(meta)),
    }


@remote_fields.register
def _(entity: Measurement, resolve_remote: RemoteIdLookup) -> dict[str, Any]:
    meta = {
        **_common_meta(entity),
        "forCategory": entity.for_category,
        "forItemId": entity.for_item_id,
    }
    return {
        RECORD_TYPE: RECORD_TYPES[EntityKind.MEASUREMENT],
        TITLE: entity.label or "Measurement",
        MEASURE_LABEL: entity.label or "Measurement",
        ROOM: entity.room or DEFAULT_ROOM,
        VALUE_IN: entity.value_in,
        VALUE_CM: inches_to_cm(entity.value_in),
        UNIT_ENTERED: "in",
        CONFIDENCE: to_wire(entity.confidence),
        NOTES: encode_notes(entity.notes, _compact(meta)),
    }


@remote_fields.register
def _(entity: Item, resolve_remote: RemoteIdLookup) -> dict[str, Any]:
    meta = {
        **_common_meta(entity),
        "category": entity.category or "Other",
        "dimensions": to_wire(entity.dimensions),
        "specs": entity.specs or None,
        "discountType": to_wire(entity.discount_type),
        "discountValue": entity.discount_value,
        "tags": list(entity.tags) if entity.tags else None,
        "selectedOptionId": entity.selected_option_id,
        "priority": entity.priority,
    }
    return {
        RECORD_TYPE: RECORD_TYPES[EntityKind.ITEM],
        TITLE: entity.name or "Item",
        ROOM: entity.room or DEFAULT_ROOM,
        STATUS: str(entity.status),
        PRICE: entity.price,
        QUANTITY: entity.qty,
        STORE: entity.store,
        LINK: entity.link,
        DIMENSIONS: entity.dimensions.to_text() if entity.dimensions else "",
        PRIORITY: _priority(entity.priority),
        SELECTED_OPTION: resolve_remote(EntityKind.OPTION, entity.selected_option_id),
        NOTES: encode_notes(entity.notes, _compact(meta)),
    }


@remote_fields.register
def _(entity: Option, resolve_remote: RemoteIdLookup) -> dict[str, Any]:
    meta = {
        **_common_meta(entity),
        "parentLocalId": entity.item_id,
        "selected": entity.selected,
        "discountType": to_wire(entity.discount_type),
        "discountValue": entity.discount_value,
        "dimensions": to_wire(entity.dimensions),
        "specs": entity.specs or None,
        "tags": list(entity.tags) if entity.tags else None,
        "priority": entity.priority,
        "sourceItemId": entity.source_item_id,
    }
    return {
        RECORD_TYPE: RECORD_TYPES[EntityKind.OPTION],
        TITLE: entity.title or "Option",
        PARENT_ITEM: resolve_remote(EntityKind.ITEM, entity.item_id),
        STORE: entity.store,
        LINK: entity.link,
        PROMO_CODE: entity.promo_code,
        PRICE: entity.price,
        SHIPPING: entity.shipping,
        TAX_ESTIMATE: entity.tax_estimate,
        DISCOUNT: entity.discount,
        DIMENSIONS: entity.dimensions_text,
        NOTES: encode_notes(entity.notes, _compact(meta)),
    }


# --- Remote to local ----------------------------------------------------------


@dataclass(slots=True, frozen=True)
class DecodedRecord:
    """A remote row with its kind resolved and its notes block split out."""

    kind: EntityKind
    remote_id: str
    fields: Mapping[str, Any]
    notes: str
    meta: Mapping[str, Any]
    created_time: str | None = None

    @property
    def embedded_local_id(self) -> str | None:
        return as_id(self.meta.get("localId"))


def decode_record(record: RemoteRecord) -> DecodedRecord | None:
    """Classify ``record`` by its ``Record Type``; unknown types are skipped."""

    record_type = str(record.fields.get(RECORD_TYPE) or "").strip()
    kind = KIND_BY_RECORD_TYPE.get(record_type)
    if kind is None:
        log.debug("Skipping remote record %s with type %r", record.id, record_type)
        return None
    decoded = decode_notes(record.fields.get(NOTES))
    return DecodedRecord(
        kind=kind,
        remote_id=record.id,
        fields=record.fields,
        notes=decoded.notes,
        meta=decoded.meta or {},
        created_time=record.created_time,
    )


def room_ref(record: DecodedRecord) -> str:
    return str(record.fields.get(ROOM) or "").strip() or DEFAULT_ROOM


def _bookkeeping(record: DecodedRecord, local_id: str, now: int) -> dict[str, Any]:
    created_at = as_timestamp(record.meta.get("createdAt")) or now
    return {
        "id": local_id,
        "remote_id": record.remote_id,
        "sync_state": SyncState.CLEAN,
        "created_at": created_at,
        "updated_at": as_timestamp(record.meta.get("updatedAt")) or created_at,
        "sort": as_number(record.meta.get("sort")),
        "provenance": provenance_from_raw(RawProvenance.model_validate(record.meta.get("provenance"))),
    }


def _meta_dimensions(value: object) -> Dimensions | None:
    if not isinstance(value, Mapping):
        return None
    raw = RawDimensions.model_validate(value)
    dims = Dimensions(w_in=raw.w_in, d_in=raw.d_in, h_in=raw.h_in)
    return None if dims.is_empty else dims


def _tuple_tags(value: object) -> tuple[str, ...] | None:
    tags = as_tags(value)
    return tuple(tags) if tags else None


def _measurement_value(fields: Mapping[str, Any]) -> float:
    value_in = as_number(fields.get(VALUE_IN))
    if value_in is not None:
        return value_in
    raw = as_number(fields.get(VALUE))
    if raw is None:
        return 0.0
    unit = str(fields.get(UNIT_ENTERED) or "in").strip().lower()
    return cm_to_inches(raw) if unit == "cm" else raw


def local_entity(
    record: DecodedRecord,
    *,
    local_id: str,
    resolve_local: LocalIdLookup,
    now: int,
) -> AnyEntity:
    """Build the clean local record a remote row describes."""

    fields, meta = record.fields, record.meta
    base = _bookkeeping(record, local_id, now)
    notes = record.notes or None
    match record.kind:
        case EntityKind.ROOM:
            room_id = room_ref(record)
            return Room(
                **{**base, "id": room_id},
                name=as_trimmed_text(meta.get("name")) or room_id,
                notes=record.notes,
            )
        case EntityKind.STORE:
            return Store(
                **base,
                name=as_trimmed_text(fields.get(STORE)) or as_trimmed_text(fields.get(TITLE)) or "Store",
                discount_type=as_discount_type(meta.get("discountType")),
                discount_value=as_number(meta.get("discountValue")),
                shipping_cost=as_number(meta.get("shippingCost")),
                delivery_info=as_text(meta.get("deliveryInfo")),
                extra_warranty=as_text(meta.get("extraWarranty")),
                extra_warranty_cost=as_number(meta.get("extraWarrantyCost")),
                trial=as_text(meta.get("trial")),
                apr=as_text(meta.get("apr")),
                tax_cost=as_number(meta.get("taxCost")),
                notes=notes,
            )
        case EntityKind.MEASUREMENT:
            label = (
                as_trimmed_text(fields.get(MEASURE_LABEL))
                or as_trimmed_text(fields.get(TITLE))
                or "Measurement"
            )
            return Measurement(
                **base,
                room=room_ref(record),
                label=label,
                value_in=_measurement_value(fields),
                confidence=as_confidence(fields.get(CONFIDENCE)),
                for_category=as_text(meta.get("forCategory")),
                for_item_id=as_text(meta.get("forItemId")),
                notes=notes,
            )
        case EntityKind.ITEM:
            quantity = as_number(fields.get(QUANTITY))
            selected = as_id(meta.get("selectedOptionId")) or resolve_local(
                EntityKind.OPTION, as_id(fields.get(SELECTED_OPTION))
            )
            return Item(
                **base,
                name=as_trimmed_text(fields.get(TITLE)) or "Item",
                room=room_ref(record),
                category=as_trimmed_text(meta.get("category")) or "Other",
                status=parse_enum(ItemStatus, fields.get(STATUS)) or ItemStatus.IDEA,
                selected_option_id=selected,
                price=as_number(fields.get(PRICE)),
                discount_type=as_discount_type(meta.get("discountType")),
                discount_value=as_number(meta.get("discountValue")),
                qty=round(quantity) if quantity and quantity > 0 else 1,
                store=as_text(fields.get(STORE)),
                link=as_text(fields.get(LINK)),
                notes=notes,
                priority=_pulled_priority(fields.get(PRIORITY), meta.get("priority")),
                tags=_tuple_tags(meta.get("tags")),
                dimensions=_meta_dimensions(meta.get("dimensions"))
                or parse_dimensions(fields.get(DIMENSIONS)),
                specs=as_specs(meta.get("specs")),
            )
        case EntityKind.OPTION:
            parent_remote = as_id(fields.get(PARENT_ITEM))
            discount = as_number(fields.get(DISCOUNT))
            discount_value = as_number(meta.get("discountValue"))
            return Option(
                **base,
                item_id=resolve_local(EntityKind.ITEM, parent_remote)
                or as_id(meta.get("parentLocalId"))
                or parent_remote
                or "",
                title=as_trimmed_text(fields.get(TITLE)) or "Option",
                store=as_text(fields.get(STORE)),
                link=as_text(fields.get(LINK)),
                promo_code=as_text(fields.get(PROMO_CODE)),
                price=as_number(fields.get(PRICE)),
                shipping=as_number(fields.get(SHIPPING)),
                tax_estimate=as_number(fields.get(TAX_ESTIMATE)),
                discount=discount,
                discount_type=as_discount_type(meta.get("discountType"))
                or (DiscountType.AMOUNT if discount is not None else None),
                discount_value=discount_value if discount_value is not None else discount,
                dimensions_text=as_text(fields.get(DIMENSIONS)),
                dimensions=_meta_dimensions(meta.get("dimensions")),
                specs=as_specs(meta.get("specs")),
                notes=notes,
                priority=as_number(meta.get("priority")),
                tags=_tuple_tags(meta.get("tags")),
                selected=meta.get("selected") is True,
                source_item_id=as_id(meta.get("sourceItemId")),
            )
