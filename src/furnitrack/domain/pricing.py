"""Discount math, option totals and the per-store cost allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from furnitrack.domain.keys import store_key
from furnitrack.domain.model import DiscountType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from furnitrack.domain.model import Item, Option, Store

_UNRANKED_PRIORITY = 999.0


def compute_discount_amount(
    base: float | None,
    discount_type: DiscountType | None,
    value: float | None,
) -> float | None:
    """Discount off ``base``; a percentage of 100 or more discounts everything."""

    if base is None or value is None or value <= 0:
        return None
    if discount_type is DiscountType.AMOUNT:
        return value
    if discount_type is DiscountType.PERCENT:
        return base if value >= 100 else base * value / 100
    return None


def item_discount_amount(item: Item) -> float | None:
    return compute_discount_amount(item.price, item.discount_type, item.discount_value)


def item_effective_price(item: Item) -> float | None:
    """Unit price after the item's own discount, before any store-level adjustment."""

    if item.price is None:
        return None
    discount = min(item_discount_amount(item) or 0.0, item.price)
    return max(0.0, item.price - discount)


def option_pre_discount_total(option: Option) -> float | None:
    if option.price is None and option.shipping is None and option.tax_estimate is None:
        return None
    return (option.price or 0.0) + (option.shipping or 0.0) + (option.tax_estimate or 0.0)


def option_discount_amount(option: Option, base: float | None = None) -> float:
    """Structured discount when it applies, else the legacy flat ``discount``."""

    if base is None:
        base = option_pre_discount_total(option)
    computed = compute_discount_amount(base, option.discount_type, option.discount_value)
    if computed is not None:
        return computed
    return option.discount or 0.0


def option_total(option: Option) -> float | None:
    base = option_pre_discount_total(option)
    if base is None:
        return None
    return base - option_discount_amount(option, base)


def option_total_with_store(option: Option, store: Store | None) -> float | None:
    """Option total when bought alone; the store's shipping fills a missing shipping."""

    shipping = option.shipping
    if shipping is None and store is not None:
        shipping = store.shipping_cost
    if option.price is None and option.tax_estimate is None and option.shipping is None:
        return None
    base = (option.price or 0.0) + (option.tax_estimate or 0.0) + (shipping or 0.0)
    discount = option_discount_amount(option, base)
    if store is not None:
        discount += compute_discount_amount(base, store.discount_type, store.discount_value) or 0.0
    return base - discount


def build_store_index(stores: Iterable[Store]) -> dict[str, Store]:
    """Live stores by normalized key; the first store wins a key."""

    index: dict[str, Store] = {}
    for store in stores:
        key = store_key(store.name)
        if store.is_live and key and key not in index:
            index[key] = store
    return index


@dataclass(slots=True, frozen=True)
class StoreTotals:
    total: float
    discount: float
    shipping: float
    warranty: float
    tax: float
    anchor_id: str | None


@dataclass(slots=True, frozen=True)
class StoreAllocation:
    item_totals: dict[str, float | None] = field(default_factory=dict)
    item_base_totals: dict[str, float | None] = field(default_factory=dict)
    item_discount_totals: dict[str, float] = field(default_factory=dict)
    item_store_key: dict[str, str | None] = field(default_factory=dict)
    store_totals: dict[str, StoreTotals] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class _Line:
    item: Item
    base_total: float


def _line_totals(item: Item, selected: Sequence[Option]) -> tuple[float | None, float]:
    qty = item.qty or 1
    if selected:
        base = 0.0
        discount = 0.0
        priced = False
        for option in selected:
            pre_discount = option_pre_discount_total(option)
            if pre_discount is None:
                continue
            option_discount = min(option_discount_amount(option, pre_discount), pre_discount)
            base += max(0.0, pre_discount - option_discount)
            discount += option_discount
            priced = True
        return (base * qty, discount * qty) if priced else (None, 0.0)
    if item.price is None:
        return None, 0.0
    item_discount = min(item_discount_amount(item) or 0.0, item.price)
    return max(0.0, item.price - item_discount) * qty, item_discount * qty


def _anchor_rank(line: _Line) -> tuple[float, int, str]:
    priority = line.item.priority if line.item.priority is not None else _UNRANKED_PRIORITY
    return (priority, -line.item.updated_at, line.item.id)


def compute_store_allocation(
    items: Iterable[Item],
    selected_options_by_item: Mapping[str, Sequence[Option]],
    stores_by_key: Mapping[str, Store],
) -> StoreAllocation:
    """Group priced items by store and charge each store's one-time costs once.

    The anchor line for a store is the item with the highest priority (lowest
    number), then the most recently updated, then the smallest id. Only the anchor
    carries the store's shipping, warranty and tax costs and its store discount.
    """

    allocation = StoreAllocation()
    lines_by_store: dict[str, list[_Line]] = {}

    for item in items:
        if not item.is_live:
            continue
        selected = selected_options_by_item.get(item.id, ())
        base_total, discount_total = _line_totals(item, selected)
        allocation.item_base_totals[item.id] = base_total
        allocation.item_discount_totals[item.id] = discount_total

        key = store_key(item.store)
        if not key and selected:
            key = store_key(selected[0].store)
        allocation.item_store_key[item.id] = key or None

        if base_total is not None and key:
            lines_by_store.setdefault(key, []).append(_Line(item, base_total))
        else:
            allocation.item_totals[item.id] = base_total

    for key, lines in lines_by_store.items():
        store = stores_by_key.get(key)
        anchor = min(lines, key=_anchor_rank)
        shipping = (store.shipping_cost or 0.0) if store else 0.0
        warranty = (store.extra_warranty_cost or 0.0) if store else 0.0
        tax = (store.tax_cost or 0.0) if store else 0.0
        discount = 0.0
        if store is not None:
            raw_discount = compute_discount_amount(
                anchor.base_total, store.discount_type, store.discount_value
            )
            discount = min(raw_discount or 0.0, anchor.base_total)

        store_total = 0.0
        for line in lines:
            line_total = line.base_total
            if line is anchor:
                line_total = max(0.0, line.base_total + shipping + warranty + tax - discount)
                if discount:
                    allocation.item_discount_totals[line.item.id] += discount
            allocation.item_totals[line.item.id] = line_total
            store_total += line_total

        allocation.store_totals[key] = StoreTotals(
            total=store_total,
            discount=discount,
            shipping=shipping,
            warranty=warranty,
            tax=tax,
            anchor_id=anchor.item.id,
        )

    return allocation
