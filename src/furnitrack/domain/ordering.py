"""Display ordering of rooms, stores and per-parent children, and option filtering."""

from __future__ import annotations

from enum import StrEnum
from functools import cmp_to_key
from typing import TYPE_CHECKING

from furnitrack.domain.keys import store_key
from furnitrack.domain.pricing import option_total_with_store

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from furnitrack.domain.model import Item, Measurement, Option, Room, Store

UNSORTED_RANK = 999999.0
UNRANKED_PRIORITY = 999.0


class OptionSortKey(StrEnum):
    PRICE = "price"
    PRIORITY = "priority"
    NAME = "name"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


def sort_rank(value: float | None) -> float:
    return UNSORTED_RANK if value is None else value


def _named_key(record: Room | Store) -> tuple[float, int, str]:
    return (sort_rank(record.sort), record.created_at, (record.name or record.id).casefold())


def ordered_rooms(rooms: Iterable[Room]) -> list[Room]:
    return sorted((room for room in rooms if room.is_live), key=_named_key)


def ordered_stores(stores: Iterable[Store]) -> list[Store]:
    return sorted((store for store in stores if store.is_live), key=_named_key)


def ordered_items(items: Iterable[Item]) -> list[Item]:
    """Live items by ``sort``, then priority, then most recently updated."""

    def key(item: Item) -> tuple[float, float, int]:
        priority = item.priority if item.priority is not None else UNRANKED_PRIORITY
        return (sort_rank(item.sort), priority, -item.updated_at)

    return sorted((item for item in items if item.is_live), key=key)


def ordered_measurements(measurements: Iterable[Measurement]) -> list[Measurement]:
    return sorted(
        (m for m in measurements if m.is_live),
        key=lambda m: (sort_rank(m.sort), m.label.casefold()),
    )


def ordered_options(options: Iterable[Option]) -> list[Option]:
    return sorted(
        (o for o in options if o.is_live),
        key=lambda o: (sort_rank(o.sort), -o.updated_at),
    )


def reorder_ids(requested: Iterable[str], current: Sequence[str]) -> list[str]:
    """Requested ids that exist come first; every other current id follows in order."""

    known = set(current)
    ordered: list[str] = []
    for entity_id in requested:
        if entity_id in known and entity_id not in ordered:
            ordered.append(entity_id)
    return [*ordered, *(entity_id for entity_id in current if entity_id not in ordered)]


def prepend_sort(siblings: Iterable[Item | Measurement | Option]) -> float:
    """Sort key placing a new record before its live siblings."""

    sorts = [s.sort for s in siblings if s.is_live and s.sort is not None]
    return min([*sorts, 0]) - 1


def _compare(left: float, right: float) -> int:
    return (left > right) - (left < right)


def sort_and_filter_options(
    options: Iterable[Option],
    parent_item_id: str,
    *,
    stores_by_key: Mapping[str, Store],
    sort_key: OptionSortKey = OptionSortKey.PRICE,
    sort_dir: SortDirection = SortDirection.ASC,
    min_price: float | None = None,
    max_price: float | None = None,
) -> list[Option]:
    """Live options of one item, filtered by total price and sorted.

    Options without a computable total are dropped when a price bound is given and
    always sort last by price. Ties fall back to ``sort``, then most recently updated.
    """

    def total(option: Option) -> float | None:
        return option_total_with_store(option, stores_by_key.get(store_key(option.store)))

    candidates = [o for o in options if o.is_live and o.item_id == parent_item_id]
    if min_price is not None or max_price is not None:
        kept: list[Option] = []
        for option in candidates:
            value = total(option)
            if value is None:
                continue
            if min_price is not None and value < min_price:
                continue
            if max_price is not None and value > max_price:
                continue
            kept.append(option)
        candidates = kept

    sort_key = OptionSortKey(sort_key)
    direction = -1 if SortDirection(sort_dir) is SortDirection.DESC else 1

    def compare(a: Option, b: Option) -> int:
        if sort_key is OptionSortKey.NAME:
            name_a, name_b = a.title.strip().casefold(), b.title.strip().casefold()
            if name_a != name_b:
                return (-1 if name_a < name_b else 1) * direction
        elif sort_key is OptionSortKey.PRIORITY:
            priority_a = a.priority if a.priority is not None else UNSORTED_RANK
            priority_b = b.priority if b.priority is not None else UNSORTED_RANK
            if priority_a != priority_b:
                return _compare(priority_a, priority_b) * direction
        else:
            total_a, total_b = total(a), total(b)
            if total_a is None and total_b is not None:
                return 1
            if total_b is None and total_a is not None:
                return -1
            if total_a is not None and total_b is not None and total_a != total_b:
                return _compare(total_a, total_b) * direction
        by_sort = _compare(sort_rank(a.sort), sort_rank(b.sort))
        if by_sort:
            return by_sort
        return _compare(b.updated_at, a.updated_at)

    return sorted(candidates, key=cmp_to_key(compare))
