"""Rooms, measurements, candidate items, purchase options and store policies."""

from __future__ import annotations

from dataclasses import dataclass

from .entity import Entity
from .enums import Confidence, DiscountType, EntityKind, ItemStatus
from .primitives import Dimensions, Specs


@dataclass(slots=True, frozen=True, kw_only=True)
class Room(Entity):
    kind = EntityKind.ROOM
    id_prefix = "r"

    name: str
    notes: str = ""


@dataclass(slots=True, frozen=True, kw_only=True)
class Measurement(Entity):
    kind = EntityKind.MEASUREMENT
    id_prefix = "m"

    room: str
    label: str = "Measurement"
    value_in: float = 0.0
    confidence: Confidence | None = None
    for_category: str | None = None
    for_item_id: str | None = None
    notes: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class Item(Entity):
    kind = EntityKind.ITEM
    id_prefix = "i"

    name: str
    room: str
    category: str = "Other"
    status: ItemStatus = ItemStatus.IDEA
    selected_option_id: str | None = None
    price: float | None = None
    discount_type: DiscountType | None = None
    discount_value: float | None = None
    qty: int = 1
    store: str | None = None
    link: str | None = None
    notes: str | None = None
    priority: float | None = None
    tags: tuple[str, ...] | None = None
    dimensions: Dimensions | None = None
    specs: Specs | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class Option(Entity):
    kind = EntityKind.OPTION
    id_prefix = "o"

    item_id: str
    title: str = "Option"
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
    dimensions: Dimensions | None = None
    specs: Specs | None = None
    notes: str | None = None
    priority: float | None = None
    tags: tuple[str, ...] | None = None
    selected: bool = False
    source_item_id: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class Store(Entity):
    kind = EntityKind.STORE
    id_prefix = "s"

    name: str
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


type AnyEntity = Room | Measurement | Item | Option | Store

ENTITY_CLASSES: dict[EntityKind, type[Entity]] = {
    EntityKind.ROOM: Room,
    EntityKind.MEASUREMENT: Measurement,
    EntityKind.ITEM: Item,
    EntityKind.OPTION: Option,
    EntityKind.STORE: Store,
}
