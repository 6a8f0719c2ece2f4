"""SQLAlchemy Core tables for the tracker's local store."""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from furnitrack.domain.bundle import provenance_from_raw, to_wire
from furnitrack.domain.bundle.schema import RawDimensions, RawProvenance
from furnitrack.domain.model import (
    Confidence,
    Dimensions,
    DiscountType,
    EntityKind,
    ItemStatus,
    Provenance,
    SyncState,
)


class JsonValue(TypeDecorator[Any]):
    """Arbitrary JSON document stored as text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(to_wire(value), separators=(",", ":"))

    def process_result_value(self, value: str | None, dialect: Dialect) -> Any:
        _ = dialect
        if value is None:
            return None
        return json.loads(value)


class ProvenanceType(TypeDecorator[Provenance]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Provenance | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(to_wire(value), separators=(",", ":"))

    def process_result_value(self, value: str | None, dialect: Dialect) -> Provenance | None:
        _ = dialect
        if value is None:
            return None
        return provenance_from_raw(RawProvenance.model_validate(json.loads(value)))


class DimensionsType(TypeDecorator[Dimensions]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Dimensions | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(to_wire(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> Dimensions | None:
        _ = dialect
        if value is None:
            return None
        raw = RawDimensions.model_validate(json.loads(value))
        return Dimensions(w_in=raw.w_in, d_in=raw.d_in, h_in=raw.h_in)


class SpecsType(TypeDecorator[dict[str, Any]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any] | None:
        _ = dialect
        if value is None:
            return None
        loaded = json.loads(value)
        return cast(dict[str, Any], loaded) if isinstance(loaded, dict) else None


class TagsType(TypeDecorator[tuple[str, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...] | None:
        _ = dialect
        if value is None:
            return None
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return None
        return tuple(str(tag) for tag in cast(list[Any], loaded))


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "pk": "pk_%(table_name)s",
    }
)


def _enum(enum_type: type[StrEnum]) -> Enum:
    return Enum(
        enum_type,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
    )


def _record_columns() -> list[Column[Any]]:
    return [
        Column("id", String, primary_key=True),
        Column("created_at", Integer, nullable=False),
        Column("updated_at", Integer, nullable=False),
        Column("remote_id", String, nullable=True),
        Column("sync_state", _enum(SyncState), nullable=False, default=SyncState.DIRTY),
        Column("sort", Float, nullable=True),
        Column("provenance", ProvenanceType, nullable=True),
    ]


rooms_table = Table(
    "rooms",
    metadata,
    *_record_columns(),
    Column("name", String, nullable=False),
    Column("notes", Text, nullable=False, default=""),
)

measurements_table = Table(
    "measurements",
    metadata,
    *_record_columns(),
    Column("room", String, nullable=False),
    Column("label", String, nullable=False),
    Column("value_in", Float, nullable=False),
    Column("confidence", _enum(Confidence), nullable=True),
    Column("for_category", String, nullable=True),
    Column("for_item_id", String, nullable=True),
    Column("notes", Text, nullable=True),
)

items_table = Table(
    "items",
    metadata,
    *_record_columns(),
    Column("name", String, nullable=False),
    Column("room", String, nullable=False),
    Column("category", String, nullable=False),
    Column("status", _enum(ItemStatus), nullable=False),
    Column("selected_option_id", String, nullable=True),
    Column("price", Float, nullable=True),
    Column("discount_type", _enum(DiscountType), nullable=True),
    Column("discount_value", Float, nullable=True),
    Column("qty", Integer, nullable=False, default=1),
    Column("store", String, nullable=True),
    Column("link", String, nullable=True),
    Column("notes", Text, nullable=True),
    Column("priority", Float, nullable=True),
    Column("tags", TagsType, nullable=True),
    Column("dimensions", DimensionsType, nullable=True),
    Column("specs", SpecsType, nullable=True),
)

options_table = Table(
    "options",
    metadata,
    *_record_columns(),
    Column("item_id", String, nullable=False),
    Column("title", String, nullable=False),
    Column("store", String, nullable=True),
    Column("link", String, nullable=True),
    Column("promo_code", String, nullable=True),
    Column("price", Float, nullable=True),
    Column("shipping", Float, nullable=True),
    Column("tax_estimate", Float, nullable=True),
    Column("discount", Float, nullable=True),
    Column("discount_type", _enum(DiscountType), nullable=True),
    Column("discount_value", Float, nullable=True),
    Column("dimensions_text", String, nullable=True),
    Column("dimensions", DimensionsType, nullable=True),
    Column("specs", SpecsType, nullable=True),
    Column("notes", Text, nullable=True),
    Column("priority", Float, nullable=True),
    Column("tags", TagsType, nullable=True),
    Column("selected", Boolean, nullable=False, default=False),
    Column("source_item_id", String, nullable=True),
    Index("ix_options_item_id", "item_id"),
)

stores_table = Table(
    "stores",
    metadata,
    *_record_columns(),
    Column("name", String, nullable=False),
    Column("discount_type", _enum(DiscountType), nullable=True),
    Column("discount_value", Float, nullable=True),
    Column("shipping_cost", Float, nullable=True),
    Column("delivery_info", String, nullable=True),
    Column("extra_warranty", String, nullable=True),
    Column("extra_warranty_cost", Float, nullable=True),
    Column("trial", String, nullable=True),
    Column("apr", String, nullable=True),
    Column("tax_cost", Float, nullable=True),
    Column("notes", Text, nullable=True),
)

attachments_table = Table(
    "attachments",
    metadata,
    Column("id", String, primary_key=True),
    Column("parent_kind", _enum(EntityKind), nullable=False),
    Column("parent_id", String, nullable=False),
    Column("url", String, nullable=False),
    Column("name", String, nullable=True),
    Column("mime", String, nullable=True),
    Column("size", Integer, nullable=True),
    Column("created_at", Integer, nullable=False),
    Column("updated_at", Integer, nullable=False),
    Index("ix_attachments_parent", "parent_kind", "parent_id"),
)

meta_table = Table(
    "meta",
    metadata,
    Column("key", String, primary_key=True),
    Column("value", JsonValue, nullable=True),
)

TABLE_BY_KIND: dict[EntityKind, Table] = {
    EntityKind.ROOM: rooms_table,
    EntityKind.MEASUREMENT: measurements_table,
    EntityKind.ITEM: items_table,
    EntityKind.OPTION: options_table,
    EntityKind.STORE: stores_table,
}
