"""Pydantic models describing the bundle payloads accepted by import.

Every record field is coerced leniently: malformed values collapse to ``None`` so
the normalizer can apply its defaults. Only the discriminating top-level keys
(``version``/``rooms``/``items`` or ``title``) are validated strictly, which is
what makes :func:`classify_bundle` a closed classification step.
"""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from furnitrack.domain.errors import UnrecognizedBundleError
from furnitrack.domain.model import (  # noqa: TC001 # needed at runtime (pydantic)
    Actor,
    Confidence,
    DataSource,
    DiscountType,
    ItemStatus,
    ReviewStatus,
    SpecValue,
    SyncState,
    parse_enum,
)

from .coerce import (
    as_actor,
    as_confidence,
    as_data_source,
    as_discount_type,
    as_id,
    as_number,
    as_review_status,
    as_specs,
    as_strict_number,
    as_string_list,
    as_sync_state,
    as_tags,
    as_text,
    as_timestamp,
    as_trimmed_text,
)

log = getLogger(__name__)


def _mapping_or_none(value: object) -> object:
    return value if isinstance(value, Mapping) else None


def _list_or_none(value: object) -> object:
    return value if isinstance(value, list) else None


def _list_or_empty(value: object) -> object:
    return value if isinstance(value, list) else []


def _truthy(value: object) -> bool:
    return bool(value)


def _item_status(value: object) -> ItemStatus | None:
    return parse_enum(ItemStatus, value)


class BundleBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)

    @model_validator(mode="before")
    @classmethod
    def _non_mapping_as_empty(cls, value: object) -> object:
        return value if isinstance(value, Mapping) else {}


class RawChangeLogEntry(BundleBaseModel):
    field: str
    from_value: Any = Field(default=None, alias="from")
    to_value: Any = Field(default=None, alias="to")
    by: Actor | None = None
    at: int
    session_id: str | None = None

    _session = field_validator("session_id", mode="before")(as_trimmed_text)


def _valid_change_log(value: object) -> object:
    """Keep entries with a named field, a known (or null) actor and a numeric time."""

    if not isinstance(value, list):
        return None
    kept: list[Mapping[str, object]] = []
    for entry in value:
        if not isinstance(entry, Mapping):
            continue
        name = entry.get("field")
        if not isinstance(name, str) or not name.strip():
            continue
        by = entry.get("by")
        if by is not None and as_actor(by) is None:
            continue
        at = as_timestamp(entry.get("at"))
        if at is None:
            continue
        kept.append({**entry, "field": name.strip(), "by": as_actor(by), "at": at})
    return kept


class RawProvenance(BundleBaseModel):
    created_by: Actor | None = None
    created_at: int | None = None
    last_edited_by: Actor | None = None
    last_edited_at: int | None = None
    data_source: DataSource | None = None
    source_ref: str | None = None
    review_status: ReviewStatus | None = None
    verified_at: int | None = None
    verified_by: Actor | None = None
    modified_fields: list[str] | None = None
    change_log: list[RawChangeLogEntry] | None = None

    _actors = field_validator("created_by", "last_edited_by", "verified_by", mode="before")(
        as_actor
    )
    _times = field_validator("created_at", "last_edited_at", "verified_at", mode="before")(
        as_timestamp
    )
    _data_source = field_validator("data_source", mode="before")(as_data_source)
    _source_ref = field_validator("source_ref", mode="before")(as_trimmed_text)
    _review = field_validator("review_status", mode="before")(as_review_status)
    _fields = field_validator("modified_fields", mode="before")(as_string_list)
    _log = field_validator("change_log", mode="before")(_valid_change_log)


class RawDimensions(BundleBaseModel):
    w_in: float | None = None
    d_in: float | None = None
    h_in: float | None = None

    _numbers = field_validator("w_in", "d_in", "h_in", mode="before")(as_number)


class RawAttachment(BundleBaseModel):
    id: str | None = None
    url: str | None = None
    name: str | None = None
    mime: str | None = None
    size: float | None = None
    created_at: float | None = None
    updated_at: float | None = None

    _ids = field_validator("id", "url", mode="before")(as_trimmed_text)
    _texts = field_validator("name", "mime", mode="before")(as_text)
    _numbers = field_validator("size", "created_at", "updated_at", mode="before")(
        as_strict_number
    )


class RawRecord(BundleBaseModel):
    """Bookkeeping fields shared by every exported entity."""

    id: str | None = None
    created_at: float | None = None
    updated_at: float | None = None
    remote_id: str | None = None
    sync_state: SyncState | None = None
    sort: float | None = None
    provenance: RawProvenance | None = None

    _id = field_validator("id", mode="before")(as_id)
    _times = field_validator("created_at", "updated_at", "sort", mode="before")(as_number)
    _remote = field_validator("remote_id", mode="before")(as_text)
    _sync = field_validator("sync_state", mode="before")(as_sync_state)
    _provenance = field_validator("provenance", mode="before")(_mapping_or_none)


class RawRoom(RawRecord):
    name: str | None = None
    notes: str | None = None

    _name = field_validator("name", mode="before")(as_id)
    _notes = field_validator("notes", mode="before")(as_text)


class RawMeasurement(RawRecord):
    room: str | None = None
    label: str | None = None
    value_in: float | None = None
    confidence: Confidence | None = None
    for_category: str | None = None
    for_item_id: str | None = None
    notes: str | None = None

    _refs = field_validator("room", "label", mode="before")(as_id)
    _value = field_validator("value_in", mode="before")(as_number)
    _confidence = field_validator("confidence", mode="before")(as_confidence)
    _texts = field_validator("for_category", "for_item_id", "notes", mode="before")(as_text)


class RawItem(RawRecord):
    name: str | None = None
    room: str | None = None
    category: str | None = None
    status: ItemStatus | None = None
    selected_option_id: str | None = None
    price: float | None = None
    discount_type: DiscountType | None = None
    discount_value: float | None = None
    qty: float | None = None
    store: str | None = None
    link: str | None = None
    notes: str | None = None
    priority: float | None = None
    tags: list[str] | None = None
    dimensions: RawDimensions | None = None
    specs: dict[str, SpecValue] | None = None
    attachments: list[RawAttachment] | None = None

    _refs = field_validator("name", "room", "category", "store", mode="before")(as_id)
    _status = field_validator("status", mode="before")(_item_status)
    _texts = field_validator("selected_option_id", "link", "notes", mode="before")(as_text)
    _numbers = field_validator(
        "price", "discount_value", "qty", "priority", mode="before"
    )(as_number)
    _discount_type = field_validator("discount_type", mode="before")(as_discount_type)
    _tags = field_validator("tags", mode="before")(as_tags)
    _dimensions = field_validator("dimensions", mode="before")(_mapping_or_none)
    _specs = field_validator("specs", mode="before")(as_specs)
    _attachments = field_validator("attachments", mode="before")(_list_or_none)


class RawOption(RawRecord):
    item_id: str | None = None
    title: str | None = None
    store: str | None = None
    link: str | None = None
    promo_code: str | None = None
    price: float | None = None
    shipping: float | None = None
    tax_estimate: float | None = None
    discount: float | None = None
    discount_type: DiscountType | None = None
    discount_value: float | None = None
    dimensions_text: str | None = None
    dimensions: RawDimensions | None = None
    specs: dict[str, SpecValue] | None = None
    notes: str | None = None
    priority: float | None = None
    tags: list[str] | None = None
    selected: bool = False
    source_item_id: str | None = None
    attachments: list[RawAttachment] | None = None

    _refs = field_validator("item_id", "title", "store", mode="before")(as_id)
    _texts = field_validator(
        "link", "promo_code", "dimensions_text", "notes", "source_item_id", mode="before"
    )(as_text)
    _numbers = field_validator(
        "price", "shipping", "tax_estimate", "discount", "discount_value", "priority", mode="before"
    )(as_number)
    _discount_type = field_validator("discount_type", mode="before")(as_discount_type)
    _tags = field_validator("tags", mode="before")(as_tags)
    _selected = field_validator("selected", mode="before")(_truthy)
    _dimensions = field_validator("dimensions", mode="before")(_mapping_or_none)
    _specs = field_validator("specs", mode="before")(as_specs)
    _attachments = field_validator("attachments", mode="before")(_list_or_none)


class RawStore(RawRecord):
    name: str | None = None
    discount_type: DiscountType | None = None
    discount_value: float | None = None
    shipping_cost: float | None = None
    delivery_info: str | None = None
    extra_warranty: str | None = None
    extra_warranty_cost: float | None = None
    trial: str | None = None
    apr: str | None = None
    tax_cost: float | None = None
    notes: str | None = None

    _name = field_validator("name", mode="before")(as_id)
    _discount_type = field_validator("discount_type", mode="before")(as_discount_type)
    _numbers = field_validator(
        "discount_value", "shipping_cost", "extra_warranty_cost", "tax_cost", mode="before"
    )(as_number)
    _texts = field_validator(
        "delivery_info", "extra_warranty", "trial", "apr", "notes", mode="before"
    )(as_text)


class RawExportMeta(BundleBaseModel):
    exported_at: float | None = None
    exported_by: Actor | None = None
    app_version: str | None = None
    schema_version: float | None = None
    session_id: str | None = None

    _numbers = field_validator("exported_at", "schema_version", mode="before")(as_number)
    _actor = field_validator("exported_by", mode="before")(as_actor)
    _texts = field_validator("app_version", "session_id", mode="before")(as_trimmed_text)


class RawHome(BundleBaseModel):
    name: str | None = None
    tags: list[str] | None = None
    description: str | None = None

    _name = field_validator("name", mode="before")(as_trimmed_text)
    _tags = field_validator("tags", mode="before")(as_string_list)
    _description = field_validator("description", mode="before")(as_text)


class VersionedBundlePayload(BundleBaseModel):
    """Current export format: ``version`` 1 or 2 with ``rooms[]`` and ``items[]``."""

    version: int
    exported_at: str | None = None
    export_meta: RawExportMeta | None = None
    home: RawHome | None = None
    planner: Any = None
    rooms: list[RawRoom]
    measurements: list[RawMeasurement] = Field(default_factory=list)
    items: list[RawItem]
    options: list[RawOption] = Field(default_factory=list)
    stores: list[RawStore] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _known_version(cls, value: object) -> int:
        if isinstance(value, bool) or not isinstance(value, int | float) or value not in (1, 2):
            raise ValueError(f"unsupported bundle version: {value!r}")
        return int(value)

    @field_validator("rooms", "items", mode="before")
    @classmethod
    def _require_list(cls, value: object) -> object:
        if not isinstance(value, list):
            raise ValueError("expected a list")
        return value

    _exported_at = field_validator("exported_at", mode="before")(as_text)
    _meta = field_validator("export_meta", "home", mode="before")(_mapping_or_none)
    _lists = field_validator("measurements", "options", "stores", mode="before")(_list_or_empty)


class RawLegacyItem(BundleBaseModel):
    title: str | None = None
    room: str | None = None
    category: str | None = None
    status: ItemStatus | None = None
    price: float | None = None
    quantity: float | None = None
    store: str | None = None
    link: str | None = None
    notes: str | None = None
    priority: float | None = None
    specs: dict[str, SpecValue] | None = None

    _refs = field_validator("title", "room", "category", "store", mode="before")(as_id)
    _status = field_validator("status", mode="before")(_item_status)
    _numbers = field_validator("price", "quantity", "priority", mode="before")(as_strict_number)
    _texts = field_validator("link", "notes", mode="before")(as_text)
    _specs = field_validator("specs", mode="before")(as_specs)


class RawLegacyOption(BundleBaseModel):
    parent_title: str | None = None
    title: str | None = None
    store: str | None = None
    link: str | None = None
    promo: str | None = None
    price: float | None = None
    shipping: float | None = None
    tax: float | None = None
    discount: float | None = None
    dimensions: str | None = None
    notes: str | None = None

    _refs = field_validator("parent_title", "title", "store", mode="before")(as_id)
    _texts = field_validator("link", "promo", "dimensions", "notes", mode="before")(as_text)
    _numbers = field_validator("price", "shipping", "tax", "discount", mode="before")(
        as_strict_number
    )


class RawLegacyMeasurement(BundleBaseModel):
    room: str | None = None
    label: str | None = None
    unit: str | None = None
    value: float | None = None
    confidence: Confidence | None = None
    notes: str | None = None

    _refs = field_validator("room", "label", "unit", mode="before")(as_id)
    _value = field_validator("value", mode="before")(as_strict_number)
    _confidence = field_validator("confidence", mode="before")(as_confidence)
    _notes = field_validator("notes", mode="before")(as_text)


class RawLegacyNote(BundleBaseModel):
    room: str | None = None
    notes: str | None = None

    _room = field_validator("room", mode="before")(as_id)
    _notes = field_validator("notes", mode="before")(as_text)


class LegacyBundlePayload(BundleBaseModel):
    """Single-file tracker seed: a ``title`` plus flat ``items``/``measurements``."""

    title: str
    items: list[RawLegacyItem] | None = None
    options: list[RawLegacyOption] = Field(default_factory=list)
    measurements: list[RawLegacyMeasurement] | None = None
    notes: list[RawLegacyNote] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _require_text(cls, value: object) -> str:
        if not isinstance(value, str):
            raise ValueError("title must be a string")
        return value

    _optional_lists = field_validator("items", "measurements", mode="before")(_list_or_none)
    _lists = field_validator("options", "notes", mode="before")(_list_or_empty)

    @model_validator(mode="after")
    def _require_records(self) -> Self:
        if self.items is None and self.measurements is None:
            raise ValueError("legacy bundle needs items or measurements")
        return self


type BundlePayload = VersionedBundlePayload | LegacyBundlePayload


def classify_bundle(raw: object) -> BundlePayload:
    """Classify ``raw`` into one of the known bundle shapes.

    Raises :class:`UnrecognizedBundleError` naming the top-level keys otherwise.
    """

    if not isinstance(raw, Mapping):
        raise UnrecognizedBundleError()
    try:
        return VersionedBundlePayload.model_validate(raw)
    except ValidationError as exc:
        log.debug("Not a versioned bundle: %s", exc.errors(include_url=False))
    try:
        return LegacyBundlePayload.model_validate(raw)
    except ValidationError as exc:
        log.debug("Not a legacy bundle: %s", exc.errors(include_url=False))
    raise UnrecognizedBundleError(str(key) for key in raw)
