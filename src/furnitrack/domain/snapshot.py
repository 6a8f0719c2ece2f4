"""Immutable in-memory view of everything the tracker has persisted."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from furnitrack.domain.bundle import sanitize_home, sanitize_planner
from furnitrack.domain.bundle.schema import RawHome
from furnitrack.domain.keys import store_key
from furnitrack.domain.model import (
    DEFAULT_ROOM_NAMES,
    EntityKind,
    HomeMeta,
    Item,
    Measurement,
    Option,
    PlannerMeta,
    Room,
    Store,
    SyncSummary,
    UnitPreference,
    parse_enum,
)
from furnitrack.domain.ordering import (
    OptionSortKey,
    SortDirection,
    ordered_rooms,
    ordered_stores,
    sort_and_filter_options,
)
from furnitrack.domain.pricing import StoreAllocation, build_store_index, compute_store_allocation

if TYPE_CHECKING:
    from furnitrack.domain.model import AnyEntity
    from furnitrack.domain.ports import TrackerRepositories


def home_from_wire(value: object) -> HomeMeta:
    return sanitize_home(RawHome.model_validate(value))


def planner_from_wire(value: object) -> PlannerMeta | None:
    return sanitize_planner(value)


def unit_from_wire(value: object) -> UnitPreference:
    return parse_enum(UnitPreference, value) or UnitPreference.INCHES


def _counts(value: object) -> dict[str, int]:
    if not isinstance(value, Mapping):
        return {}
    return {
        str(key): int(count)
        for key, count in value.items()
        if isinstance(count, int | float) and not isinstance(count, bool)
    }


def summary_from_wire(value: object) -> SyncSummary | None:
    if not isinstance(value, Mapping):
        return None
    return SyncSummary(push=_counts(value.get("push")), pull=_counts(value.get("pull")))


@dataclass(slots=True, frozen=True, kw_only=True)
class Snapshot:
    """Every record and meta value, including tombstones, as of one reload."""

    home: HomeMeta = field(default_factory=HomeMeta)
    planner: PlannerMeta | None = None
    unit_preference: UnitPreference = UnitPreference.INCHES
    last_sync_at: int | None = None
    last_sync_summary: SyncSummary | None = None
    rooms: tuple[Room, ...] = ()
    measurements: tuple[Measurement, ...] = ()
    items: tuple[Item, ...] = ()
    options: tuple[Option, ...] = ()
    stores: tuple[Store, ...] = ()

    def records(self, kind: EntityKind) -> tuple[AnyEntity, ...]:
        match kind:
            case EntityKind.ROOM:
                return self.rooms
            case EntityKind.MEASUREMENT:
                return self.measurements
            case EntityKind.ITEM:
                return self.items
            case EntityKind.OPTION:
                return self.options
            case EntityKind.STORE:
                return self.stores

    def by_id(self) -> dict[EntityKind, dict[str, AnyEntity]]:
        return {kind: {r.id: r for r in self.records(kind)} for kind in EntityKind}

    def ordered_rooms(self) -> list[Room]:
        return ordered_rooms(self.rooms)

    def ordered_stores(self) -> list[Store]:
        return ordered_stores(self.stores)

    @property
    def default_room_id(self) -> str:
        rooms = self.ordered_rooms()
        return rooms[0].id if rooms else DEFAULT_ROOM_NAMES[0]

    def room_name_by_id(self) -> dict[str, str]:
        return {room.id: room.name for room in self.rooms if room.is_live}

    def stores_by_key(self) -> dict[str, Store]:
        return build_store_index(self.stores)

    def dirty_counts(self) -> dict[EntityKind, int]:
        """Records per kind that still have to reach the remote."""

        return {
            kind: sum(1 for record in self.records(kind) if not record.is_clean)
            for kind in EntityKind
        }

    def selected_options_by_item(self) -> dict[str, list[Option]]:
        selected: dict[str, list[Option]] = {}
        for option in self.options:
            if option.is_live and option.selected:
                selected.setdefault(option.item_id, []).append(option)
        return selected

    def store_allocation(self) -> StoreAllocation:
        return compute_store_allocation(
            self.items, self.selected_options_by_item(), self.stores_by_key()
        )

    def sort_and_filter_options(
        self,
        parent_item_id: str,
        *,
        sort_key: OptionSortKey | str = OptionSortKey.PRICE,
        sort_dir: SortDirection | str = SortDirection.ASC,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> list[Option]:
        return sort_and_filter_options(
            self.options,
            parent_item_id,
            stores_by_key=self.stores_by_key(),
            sort_key=OptionSortKey(sort_key),
            sort_dir=SortDirection(sort_dir),
            min_price=min_price,
            max_price=max_price,
        )

    def store_for(self, name: str | None) -> Store | None:
        return self.stores_by_key().get(store_key(name))


async def load_records(repos: TrackerRepositories) -> dict[EntityKind, dict[str, AnyEntity]]:
    """Every persisted record keyed by kind and id."""

    loaded: dict[EntityKind, dict[str, AnyEntity]] = {}
    for kind in EntityKind:
        records = await repos.for_kind(kind).list_all()
        loaded[kind] = {record.id: record for record in records}
    return loaded
