"""The tracker service: local mutations, import/export and snapshot reloads.

A ``Tracker`` is built once per process from a unit-of-work factory and passed to
whatever needs it. Every mutation reads the current records, computes the next
version, writes it back in one unit of work, and then notifies subscribers so
they can reload a fresh :class:`Snapshot`.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Any

from furnitrack.domain.bundle import (
    export_payload,
    normalize_bundle,
    sanitize_planner,
    to_wire,
)
from furnitrack.domain.changes import ChangeNotifier
from furnitrack.domain.errors import (
    DuplicateOptionError,
    EntityNotFoundError,
    InvalidConversionError,
    RoomNameConflictError,
    RoomNotEmptyError,
    StoreNameConflictError,
)
from furnitrack.domain.keys import normalize_room_name, normalize_store_name, room_key, store_key
from furnitrack.domain.merge import (
    MERGE_ORDER,
    infer_actor,
    new_import_session_id,
    plan_merge,
    plan_replace,
)
from furnitrack.domain.model import (
    DEFAULT_ROOM_NAMES,
    DiscountType,
    EntityKind,
    HomeMeta,
    ImportMode,
    Item,
    ItemStatus,
    Measurement,
    MetaKey,
    Option,
    Room,
    Store,
    UnitPreference,
    human_created,
    human_edited,
    make_default_rooms,
    mark_needs_review,
    mark_verified,
    new_id,
    now_ms,
    parse_enum,
)
from furnitrack.domain.ordering import (
    ordered_items,
    ordered_measurements,
    ordered_options,
    ordered_rooms,
    ordered_stores,
    prepend_sort,
    reorder_ids,
)
from furnitrack.domain.pricing import item_discount_amount
from furnitrack.domain.reconciliation import sync_now
from furnitrack.domain.snapshot import (
    Snapshot,
    home_from_wire,
    load_records,
    planner_from_wire,
    summary_from_wire,
    unit_from_wire,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable, Sequence

    from furnitrack.domain.merge import ImportReport
    from furnitrack.domain.model import AnyEntity, Attachment, PlannerMeta, Provenance
    from furnitrack.domain.ports import RemoteRecordStore, TrackerRepositories, UnitOfWorkFactory
    from furnitrack.domain.reconciliation import SyncReport

log = getLogger(__name__)

_BOOKKEEPING_FIELDS = frozenset({"id", "created_at", "updated_at", "remote_id", "sync_state"})


def _reject_bookkeeping(changes: Mapping[str, Any]) -> None:
    forbidden = sorted(_BOOKKEEPING_FIELDS.intersection(changes))
    if forbidden:
        raise TypeError(f"Cannot patch bookkeeping fields: {', '.join(forbidden)}")


def _tags(value: object) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list | tuple):
        return None
    return tuple(tag for tag in (str(v).strip() for v in value) if tag)


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


def _qty(value: object) -> int:
    number = _number(value)
    return round(number) if number is not None and number > 0 else 1


def _coerce_common(changes: dict[str, Any]) -> dict[str, Any]:
    if "tags" in changes:
        changes["tags"] = _tags(changes["tags"])
    if "discount_type" in changes:
        changes["discount_type"] = parse_enum(DiscountType, changes["discount_type"])
    if "discount_value" in changes:
        changes["discount_value"] = _number(changes["discount_value"])
    return changes


def _coerce_item_changes(changes: dict[str, Any]) -> dict[str, Any]:
    if "status" in changes:
        changes["status"] = parse_enum(ItemStatus, changes["status"]) or ItemStatus.IDEA
    if "category" in changes:
        changes["category"] = str(changes["category"] or "").strip() or "Other"
    if "qty" in changes:
        changes["qty"] = _qty(changes["qty"])
    return _coerce_common(changes)


def _resolve_room(raw: object, rooms: Iterable[Room]) -> str:
    """``raw`` when it names a live room, else the first room in display order."""

    live = [room for room in rooms if room.is_live]
    room_id = "" if raw is None else str(raw).strip()
    if room_id and any(room.id == room_id for room in live):
        return room_id
    ordered = ordered_rooms(live)
    return ordered[0].id if ordered else DEFAULT_ROOM_NAMES[0]


def _is_duplicate_option(option: Option, source: Item) -> bool:
    if option.source_item_id and option.source_item_id == source.id:
        return True
    source_link = (source.link or "").strip().lower()
    option_link = (option.link or "").strip().lower()
    if source_link and option_link and source_link == option_link:
        return True
    source_title = (source.name or "").strip().lower()
    option_title = (option.title or "").strip().lower()
    return bool(source_title) and source_title == option_title and source.price == option.price


class Tracker:
    """Service object owning every read and write of tracker state."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        clock: Callable[[], int] = now_ms,
        notifier: ChangeNotifier | None = None,
        app_version: str | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._clock = clock
        self.notifier = notifier or ChangeNotifier()
        self._app_version = app_version

    @asynccontextmanager
    async def _reading(self) -> AsyncIterator[TrackerRepositories]:
        async with self._uow_factory() as uow:
            yield uow.repositories

    @asynccontextmanager
    async def _writing(self) -> AsyncIterator[TrackerRepositories]:
        async with self._uow_factory() as uow:
            yield uow.repositories
            await uow.commit()
        await self.notifier.notify()

    # --- Snapshot ---------------------------------------------------------

    async def snapshot(self) -> Snapshot:
        """Reload every record, repairing rooms, meta defaults and missing stores."""

        async with self._uow_factory() as uow:
            repos = uow.repositories
            at = self._clock()
            rooms = await repos.rooms.list_all()
            if not rooms:
                rooms = list(make_default_rooms(at))
                await repos.rooms.put_many(rooms)
            else:
                repaired = [room for room in rooms if not normalize_room_name(room.name)]
                if repaired:
                    fixed = {
                        room.id: room.evolve(
                            name=normalize_room_name(room.name or room.id or "Room") or "Room"
                        )
                        for room in repaired
                    }
                    await repos.rooms.put_many(fixed.values())
                    rooms = [fixed.get(room.id, room) for room in rooms]

            home_raw = await repos.meta.get(MetaKey.HOME)
            home = home_from_wire(home_raw)
            if home_raw is None:
                await repos.meta.set(MetaKey.HOME, to_wire(home))
            unit_raw = await repos.meta.get(MetaKey.UNIT_PREFERENCE)
            unit = unit_from_wire(unit_raw)
            if unit_raw is None:
                await repos.meta.set(MetaKey.UNIT_PREFERENCE, str(unit))
            planner = planner_from_wire(await repos.meta.get(MetaKey.PLANNER))
            last_sync_at = await repos.meta.get(MetaKey.LAST_SYNC_AT)
            summary = summary_from_wire(await repos.meta.get(MetaKey.LAST_SYNC_SUMMARY))

            items = await repos.items.list_all()
            options = await repos.options.list_all()
            stores = await repos.stores.list_all()
            created = self._missing_stores(stores, items, options, at)
            if created:
                await repos.stores.put_many(created)
                stores = [*stores, *created]
            measurements = await repos.measurements.list_all()
            await uow.commit()

        return Snapshot(
            home=home,
            planner=planner,
            unit_preference=unit,
            last_sync_at=last_sync_at if isinstance(last_sync_at, int) else None,
            last_sync_summary=summary,
            rooms=tuple(rooms),
            measurements=tuple(measurements),
            items=tuple(items),
            options=tuple(options),
            stores=tuple(stores),
        )

    @staticmethod
    def _missing_stores(
        stores: Sequence[Store],
        items: Sequence[Item],
        options: Sequence[Option],
        at: int,
    ) -> list[Store]:
        known = {store_key(s.name) for s in stores if s.is_live and store_key(s.name)}
        live_count = sum(1 for s in stores if s.is_live)
        created: list[Store] = []
        for record in (*items, *options):
            name = normalize_store_name(record.store)
            key = store_key(name)
            if not record.is_live or not key or key in known:
                continue
            known.add(key)
            created.append(
                Store(
                    id=new_id(Store.id_prefix),
                    name=name,
                    sort=live_count + len(created),
                    created_at=at,
                    updated_at=at,
                    provenance=human_created(None, at),
                )
            )
        return created

    # --- Rooms ------------------------------------------------------------

    async def create_room(self, name: str) -> str | None:
        """Create a room, or return the id of the live room with the same name."""

        normalized = normalize_room_name(name)
        if not normalized:
            return None
        async with self._writing() as repos:
            live = [room for room in await repos.rooms.list_all() if room.is_live]
            existing = next((r for r in live if room_key(r.name) == room_key(normalized)), None)
            if existing is not None:
                return existing.id
            at = self._clock()
            room = Room(
                id=normalized,
                name=normalized,
                sort=len(live),
                created_at=at,
                updated_at=at,
                provenance=human_created(None, at),
            )
            await repos.rooms.put(room)
        return room.id

    async def update_room(
        self,
        room_id: str,
        *,
        provenance: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> None:
        """Patch a room; a room that does not exist yet is created from its id."""

        _reject_bookkeeping(changes)
        async with self._writing() as repos:
            at = self._clock()
            rooms = await repos.rooms.list_all()
            current = next((room for room in rooms if room.id == room_id), None)
            base = current or Room(
                id=room_id,
                name=normalize_room_name(room_id) or "Room",
                created_at=at,
                updated_at=at,
            )
            name = normalize_room_name(changes.pop("name", base.name)) or base.name
            if current is None or room_key(name) != room_key(base.name):
                clash = next(
                    (
                        room
                        for room in rooms
                        if room.id != room_id and room.is_live and room_key(room.name) == room_key(name)
                    ),
                    None,
                )
                if clash is not None:
                    raise RoomNameConflictError(clash.name)
            if "notes" in changes:
                changes["notes"] = changes["notes"] if isinstance(changes["notes"], str) else base.notes
            await repos.rooms.put(
                base.touched(
                    at,
                    **changes,
                    name=name,
                    provenance=human_edited(base.provenance, provenance, at),
                )
            )

    async def delete_room(self, room_id: str, *, move_to: str | None = None) -> None:
        """Tombstone a room after moving its live items and measurements to ``move_to``."""

        async with self._writing() as repos:
            current = await repos.rooms.get(room_id)
            if current is None:
                return
            at = self._clock()
            items = [i for i in await repos.items.list_all() if i.is_live and i.room == room_id]
            measurements = [
                m for m in await repos.measurements.list_all() if m.is_live and m.room == room_id
            ]
            if (items or measurements) and not move_to:
                raise RoomNotEmptyError(room_id)
            if move_to:
                await repos.items.put_many(i.touched(at, room=move_to) for i in items)
                await repos.measurements.put_many(m.touched(at, room=move_to) for m in measurements)
            await repos.rooms.put(current.tombstoned(at))

    # --- Items ------------------------------------------------------------

    async def create_item(
        self,
        *,
        name: str = "",
        room: str | None = None,
        provenance: Provenance | None = None,
        **fields: Any,
    ) -> str:
        _reject_bookkeeping(fields)
        fields = _coerce_item_changes(fields)
        async with self._writing() as repos:
            at = self._clock()
            room_id = _resolve_room(room, await repos.rooms.list_all())
            siblings = [i for i in await repos.items.list_all() if i.room == room_id]
            item = Item(
                **fields,
                id=new_id(Item.id_prefix),
                created_at=at,
                updated_at=at,
                sort=prepend_sort(siblings),
                name=name.strip() or "New item",
                room=room_id,
                provenance=human_created(provenance, at),
            )
            await repos.items.put(item)
            if item.selected_option_id is not None:
                await self._select_option(repos, item.id, item.selected_option_id, at)
        return item.id

    async def update_item(
        self,
        item_id: str,
        *,
        provenance: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> None:
        _reject_bookkeeping(changes)
        changes = _coerce_item_changes(changes)
        async with self._writing() as repos:
            current = await repos.items.get(item_id)
            if current is None:
                return
            at = self._clock()
            changes["room"] = _resolve_room(
                changes.get("room", current.room), await repos.rooms.list_all()
            )
            updated = current.touched(
                at, **changes, provenance=human_edited(current.provenance, provenance, at)
            )
            await repos.items.put(updated)
            if "selected_option_id" in changes:
                await self._select_option(repos, item_id, updated.selected_option_id, at)

    async def delete_item(self, item_id: str) -> None:
        async with self._writing() as repos:
            current = await repos.items.get(item_id)
            if current is not None:
                await repos.items.put(current.tombstoned(self._clock()))

    async def convert_item_to_option(self, parent_item_id: str, source_item_id: str) -> str:
        """Turn a standalone item into an option of another item, tombstoning the source.

        The source's own options are tombstoned too. Attachment links are moved to
        the new option on a best-effort basis after the conversion is committed.
        """

        if parent_item_id == source_item_id:
            raise InvalidConversionError("Choose a different item to import.")
        async with self._writing() as repos:
            parent = await repos.items.get(parent_item_id)
            source = await repos.items.get(source_item_id)
            if parent is None or source is None or not parent.is_live:
                raise InvalidConversionError("Item not found or already removed.")

            all_options = await repos.options.list_all()
            siblings = [o for o in all_options if o.is_live and o.item_id == parent_item_id]
            # A source converted earlier is a tombstone; report it as the duplicate it is.
            if any(_is_duplicate_option(option, source) for option in siblings):
                raise DuplicateOptionError
            if not source.is_live:
                raise InvalidConversionError("Item not found or already removed.")

            nested = [o for o in all_options if o.is_live and o.item_id == source_item_id]
            notes = [(source.notes or "").strip()]
            if nested:
                plural = "" if len(nested) == 1 else "s"
                notes.append(
                    f"Imported from an item with {len(nested)} nested option{plural}. "
                    "Nested options were not migrated."
                )
            at = self._clock()
            discount = item_discount_amount(source)
            option = Option(
                id=new_id(Option.id_prefix),
                created_at=at,
                updated_at=at,
                sort=prepend_sort(siblings),
                item_id=parent_item_id,
                title=source.name or "Option",
                store=source.store,
                link=source.link,
                price=source.price,
                discount=discount,
                discount_type=source.discount_type or (DiscountType.AMOUNT if discount else None),
                discount_value=(
                    source.discount_value if source.discount_value is not None else discount
                ),
                notes="\n\n".join(part for part in notes if part) or None,
                priority=source.priority,
                tags=source.tags,
                dimensions=source.dimensions,
                specs=dict(source.specs) if source.specs else None,
                source_item_id=source_item_id,
                provenance=human_created(source.provenance, at),
            )
            await repos.options.put(option)
            await repos.options.put_many(o.tombstoned(at) for o in nested)
            await repos.items.put(source.tombstoned(at))

        try:
            async with self._uow_factory() as uow:
                moved = await uow.repositories.attachments.move_parent(
                    EntityKind.ITEM, source_item_id, EntityKind.OPTION, option.id
                )
                await uow.commit()
            log.debug("Moved %d attachment(s) to option %s", moved, option.id)
        except Exception:  # noqa: BLE001 # relinking attachments must not undo the conversion
            log.warning(
                "Could not move attachments from item %s to option %s",
                source_item_id,
                option.id,
                exc_info=True,
            )
        return option.id

    # --- Options ----------------------------------------------------------

    async def _select_option(
        self,
        repos: TrackerRepositories,
        item_id: str,
        option_id: str | None,
        at: int,
    ) -> None:
        """Leave ``option_id`` as the only selected option of the item (``None`` clears)."""

        for option in await repos.options.list_all():
            if not option.is_live or option.item_id != item_id:
                continue
            selected = option.id == option_id
            if option.selected != selected:
                await repos.options.put(option.touched(at, selected=selected))
        item = await repos.items.get(item_id)
        if item is not None and item.is_live and item.selected_option_id != option_id:
            await repos.items.put(item.touched(at, selected_option_id=option_id))

    async def create_option(
        self,
        item_id: str,
        *,
        title: str = "",
        provenance: Provenance | None = None,
        **fields: Any,
    ) -> str:
        _reject_bookkeeping(fields)
        fields = _coerce_common(fields)
        discount = _number(fields.get("discount"))
        if discount is not None:
            fields["discount_type"] = fields.get("discount_type") or DiscountType.AMOUNT
            if fields.get("discount_value") is None:
                fields["discount_value"] = discount
        async with self._writing() as repos:
            at = self._clock()
            siblings = [o for o in await repos.options.list_all() if o.item_id == item_id]
            option = Option(
                **fields,
                id=new_id(Option.id_prefix),
                created_at=at,
                updated_at=at,
                sort=prepend_sort(siblings),
                item_id=item_id,
                title=title.strip() or "Option",
                provenance=human_created(provenance, at),
            )
            await repos.options.put(option)
            if option.selected:
                await self._select_option(repos, item_id, option.id, at)
        return option.id

    async def update_option(
        self,
        option_id: str,
        *,
        parent_item_id: str | None = None,
        provenance: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> None:
        """Patch an option; the legacy ``discount`` backfills the structured discount."""

        _reject_bookkeeping(changes)
        changes = _coerce_common(changes)
        async with self._writing() as repos:
            current = await repos.options.get(option_id)
            if current is None or (parent_item_id and current.item_id != parent_item_id):
                return
            at = self._clock()
            discount = _number(changes["discount"]) if "discount" in changes else current.discount
            changes["discount"] = discount
            if "discount_type" not in changes:
                changes["discount_type"] = current.discount_type or (
                    DiscountType.AMOUNT if discount is not None else None
                )
            if "discount_value" not in changes:
                changes["discount_value"] = (
                    current.discount_value if current.discount_value is not None else discount
                )
            updated = current.touched(
                at, **changes, provenance=human_edited(current.provenance, provenance, at)
            )
            await repos.options.put(updated)

            if updated.selected and updated.is_live:
                await self._select_option(repos, updated.item_id, updated.id, at)
            elif current.selected and not updated.selected:
                item = await repos.items.get(updated.item_id)
                if item is not None and item.is_live and item.selected_option_id == option_id:
                    await repos.items.put(item.touched(at, selected_option_id=None))

    async def delete_option(self, option_id: str) -> None:
        async with self._writing() as repos:
            current = await repos.options.get(option_id)
            if current is None:
                return
            at = self._clock()
            await repos.options.put(current.tombstoned(at))
            item = await repos.items.get(current.item_id)
            if item is not None and item.is_live and item.selected_option_id == option_id:
                await repos.items.put(item.touched(at, selected_option_id=None))

    # --- Measurements -----------------------------------------------------

    async def create_measurement(
        self,
        *,
        room: str | None = None,
        label: str = "",
        value_in: float | None = None,
        provenance: Provenance | None = None,
        **fields: Any,
    ) -> str:
        _reject_bookkeeping(fields)
        async with self._writing() as repos:
            at = self._clock()
            room_id = _resolve_room(room, await repos.rooms.list_all())
            siblings = [m for m in await repos.measurements.list_all() if m.room == room_id]
            measurement = Measurement(
                **fields,
                id=new_id(Measurement.id_prefix),
                created_at=at,
                updated_at=at,
                sort=prepend_sort(siblings),
                room=room_id,
                label=label.strip() or "Measurement",
                value_in=_number(value_in) or 0.0,
                provenance=human_created(provenance, at),
            )
            await repos.measurements.put(measurement)
        return measurement.id

    async def update_measurement(
        self,
        measurement_id: str,
        *,
        provenance: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> None:
        _reject_bookkeeping(changes)
        async with self._writing() as repos:
            current = await repos.measurements.get(measurement_id)
            if current is None:
                return
            at = self._clock()
            changes["room"] = _resolve_room(
                changes.get("room", current.room), await repos.rooms.list_all()
            )
            await repos.measurements.put(
                current.touched(
                    at, **changes, provenance=human_edited(current.provenance, provenance, at)
                )
            )

    async def delete_measurement(self, measurement_id: str) -> None:
        async with self._writing() as repos:
            current = await repos.measurements.get(measurement_id)
            if current is not None:
                await repos.measurements.put(current.tombstoned(self._clock()))

    # --- Stores -----------------------------------------------------------

    async def create_store(self, name: str) -> str | None:
        normalized = normalize_store_name(name)
        if not normalized:
            return None
        async with self._writing() as repos:
            live = [store for store in await repos.stores.list_all() if store.is_live]
            key = store_key(normalized)
            existing = next((s for s in live if store_key(s.name) == key), None)
            if existing is not None:
                return existing.id
            at = self._clock()
            store = Store(
                id=new_id(Store.id_prefix),
                name=normalized,
                sort=len(live),
                created_at=at,
                updated_at=at,
                provenance=human_created(None, at),
            )
            await repos.stores.put(store)
        return store.id

    async def update_store(
        self,
        store_id: str,
        *,
        provenance: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> None:
        """Patch a store; a rename cascades to the live items and options that use it."""

        _reject_bookkeeping(changes)
        changes = _coerce_common(changes)
        async with self._writing() as repos:
            stores = await repos.stores.list_all()
            current = next((store for store in stores if store.id == store_id), None)
            if current is None:
                return
            at = self._clock()
            name = normalize_store_name(changes.pop("name", current.name)) or current.name
            previous_key, next_key = store_key(current.name), store_key(name)
            if next_key != previous_key:
                clash = next(
                    (
                        store
                        for store in stores
                        if store.id != store_id and store.is_live and store_key(store.name) == next_key
                    ),
                    None,
                )
                if clash is not None:
                    raise StoreNameConflictError(clash.name)
                await self._reassign_store(repos, previous_key, name, at)
            await repos.stores.put(
                current.touched(
                    at,
                    **changes,
                    name=name,
                    provenance=human_edited(current.provenance, provenance, at),
                )
            )

    async def delete_store(self, store_id: str) -> None:
        """Clear the store from live items and options, then tombstone it."""

        async with self._writing() as repos:
            current = await repos.stores.get(store_id)
            if current is None:
                return
            at = self._clock()
            await self._reassign_store(repos, store_key(current.name), None, at)
            await repos.stores.put(current.tombstoned(at))

    @staticmethod
    async def _reassign_store(
        repos: TrackerRepositories,
        previous_key: str,
        name: str | None,
        at: int,
    ) -> None:
        """Point live items and options that use ``previous_key`` at ``name``."""

        await repos.items.put_many(
            item.touched(at, store=name)
            for item in await repos.items.list_all()
            if item.is_live and store_key(item.store) == previous_key
        )
        await repos.options.put_many(
            option.touched(at, store=name)
            for option in await repos.options.list_all()
            if option.is_live and store_key(option.store) == previous_key
        )

    # --- Ordering and categories ------------------------------------------

    async def _reorder[E: (Room, Store, Item, Measurement, Option)](
        self,
        kind: EntityKind,
        requested: Iterable[str],
        current: Callable[[list[E]], list[E]],
        scope: Callable[[E], bool] = lambda _: True,
    ) -> None:
        async with self._writing() as repos:
            repository = repos.for_kind(kind)
            records: list[E] = [
                record for record in await repository.list_all() if record.is_live and scope(record)
            ]
            by_id = {record.id: record for record in records}
            final = reorder_ids(requested, [record.id for record in current(records)])
            at = self._clock()
            await repository.put_many(
                by_id[record_id].touched(at, sort=idx) for idx, record_id in enumerate(final)
            )

    async def reorder_rooms(self, ordered_room_ids: Iterable[str]) -> None:
        await self._reorder(EntityKind.ROOM, ordered_room_ids, ordered_rooms)

    async def reorder_stores(self, ordered_store_ids: Iterable[str]) -> None:
        await self._reorder(EntityKind.STORE, ordered_store_ids, ordered_stores)

    async def reorder_items(self, room_id: str, ordered_item_ids: Iterable[str]) -> None:
        await self._reorder(
            EntityKind.ITEM, ordered_item_ids, ordered_items, lambda item: item.room == room_id
        )

    async def reorder_measurements(self, room_id: str, ordered_ids: Iterable[str]) -> None:
        await self._reorder(
            EntityKind.MEASUREMENT, ordered_ids, ordered_measurements, lambda m: m.room == room_id
        )

    async def reorder_options(self, item_id: str, ordered_option_ids: Iterable[str]) -> None:
        await self._reorder(
            EntityKind.OPTION, ordered_option_ids, ordered_options, lambda o: o.item_id == item_id
        )

    async def rename_category(self, old_name: str, new_name: str) -> int:
        """Case-insensitively rename an item category and measurement scopes using it."""

        source, target = old_name.strip(), new_name.strip()
        if not source or not target or source.lower() == target.lower():
            return 0
        lowered = source.lower()
        async with self._uow_factory() as uow:
            repos = uow.repositories
            at = self._clock()
            items = [
                item.touched(at, category=target)
                for item in await repos.items.list_all()
                if item.is_live and (item.category or "").strip().lower() == lowered
            ]
            measurements = [
                m.touched(at, for_category=target)
                for m in await repos.measurements.list_all()
                if m.is_live and (m.for_category or "").strip().lower() == lowered
            ]
            await repos.items.put_many(items)
            await repos.measurements.put_many(measurements)
            await uow.commit()
        renamed = len(items) + len(measurements)
        if renamed:
            await self.notifier.notify()
        return renamed

    # --- Provenance review ------------------------------------------------

    async def _review(
        self,
        kind: EntityKind | str,
        entity_id: str,
        transition: Callable[[Provenance | None, int], Provenance],
    ) -> None:
        entity_kind = EntityKind(kind)
        async with self._writing() as repos:
            repository = repos.for_kind(entity_kind)
            current = await repository.get(entity_id)
            if current is None:
                raise EntityNotFoundError(str(entity_kind), entity_id)
            at = self._clock()
            await repository.put(current.touched(at, provenance=transition(current.provenance, at)))

    async def mark_verified(self, kind: EntityKind | str, entity_id: str) -> None:
        """Record a human sign-off; raises ``EntityNotFoundError`` for unknown ids."""

        await self._review(kind, entity_id, mark_verified)

    async def mark_needs_review(self, kind: EntityKind | str, entity_id: str) -> None:
        await self._review(kind, entity_id, mark_needs_review)

    # --- Meta -------------------------------------------------------------

    async def save_home(self, home: HomeMeta | Mapping[str, Any]) -> HomeMeta:
        sanitized = home if isinstance(home, HomeMeta) else home_from_wire(home)
        async with self._writing() as repos:
            await repos.meta.set(MetaKey.HOME, to_wire(sanitized))
        return sanitized

    async def save_planner(self, planner: PlannerMeta | Mapping[str, Any]) -> PlannerMeta | None:
        sanitized = sanitize_planner(planner, now=self._clock())
        async with self._writing() as repos:
            await repos.meta.set(MetaKey.PLANNER, to_wire(sanitized))
        return sanitized

    async def set_unit_preference(self, unit: UnitPreference | str) -> UnitPreference:
        sanitized = unit_from_wire(unit)
        async with self._writing() as repos:
            await repos.meta.set(MetaKey.UNIT_PREFERENCE, str(sanitized))
        return sanitized

    # --- Import / export / reset ------------------------------------------

    async def export_bundle(self, *, include_deleted: bool = False) -> dict[str, Any]:
        """Version 2 bundle of the local state; tombstones only on request."""

        async with self._reading() as repos:
            records = await load_records(repos)
            home = home_from_wire(await repos.meta.get(MetaKey.HOME))
            planner = planner_from_wire(await repos.meta.get(MetaKey.PLANNER))
            attachments: dict[str, list[Attachment]] = {}
            for attachment in await repos.attachments.list_all():
                attachments.setdefault(attachment.parent_key, []).append(attachment)

        def kept(kind: EntityKind) -> list[Any]:
            return [r for r in records[kind].values() if include_deleted or r.is_live]

        return export_payload(
            exported_at=self._clock(),
            session_id=new_id("export"),
            home=home,
            planner=planner,
            rooms=kept(EntityKind.ROOM),
            measurements=kept(EntityKind.MEASUREMENT),
            items=kept(EntityKind.ITEM),
            options=kept(EntityKind.OPTION),
            stores=kept(EntityKind.STORE),
            attachments=attachments,
            app_version=self._app_version,
        )

    async def import_bundle(
        self,
        raw: object,
        *,
        mode: ImportMode | str = ImportMode.MERGE,
        ai_assisted: bool = False,
    ) -> ImportReport:
        """Normalize ``raw`` fully, then apply it in one unit of work."""

        at = self._clock()
        bundle = normalize_bundle(raw, now=at)
        mode = ImportMode(mode)
        actor = infer_actor(bundle, ai_assisted=ai_assisted)
        session_id = new_import_session_id()

        async with self._writing() as repos:
            if mode is ImportMode.REPLACE:
                await self._clear(repos)
                await repos.meta.set(MetaKey.HOME, to_wire(bundle.home))
                plan = plan_replace(bundle, actor=actor, session_id=session_id)
            else:
                existing = await load_records(repos)
                plan = plan_merge(bundle, existing, actor=actor, at=at, session_id=session_id)

            if bundle.planner is not None:
                await repos.meta.set(MetaKey.PLANNER, to_wire(bundle.planner))
            for kind in MERGE_ORDER:
                await repos.for_kind(kind).put_many(plan.writes.get(kind, []))
            for parent_key, attachments in plan.attachments.items():
                await self._replace_attachments(repos, parent_key, attachments)

        report = plan.report
        log.info(
            "Imported bundle: mode=%s, actor=%s, session=%s, inserted=%s, updated=%s, skipped=%s",
            report.mode,
            report.actor,
            report.session_id,
            dict(report.inserted),
            dict(report.updated),
            dict(report.skipped),
        )
        return report

    @staticmethod
    async def _replace_attachments(
        repos: TrackerRepositories,
        parent_key: str,
        attachments: Sequence[Attachment],
    ) -> None:
        kind, _, parent_id = parent_key.partition(":")
        parent_kind = EntityKind(kind)
        incoming = {attachment.id for attachment in attachments}
        for existing in await repos.attachments.list_for_parent(parent_kind, parent_id):
            if existing.id not in incoming:
                await repos.attachments.delete(existing.id)
        for attachment in attachments:
            await repos.attachments.put(attachment)

    @staticmethod
    async def _clear(repos: TrackerRepositories) -> None:
        for kind in EntityKind:
            await repos.for_kind(kind).clear()
        await repos.attachments.clear()
        await repos.meta.clear()

    async def reset_local(self) -> None:
        """Remove every record, attachment and meta value."""

        async with self._writing() as repos:
            await self._clear(repos)
        log.info("Local tracker state cleared")

    async def records_by_kind(self) -> dict[EntityKind, dict[str, AnyEntity]]:
        async with self._reading() as repos:
            return await load_records(repos)

    async def attachments_for(self, kind: EntityKind, parent_id: str) -> list[Attachment]:
        async with self._reading() as repos:
            return await repos.attachments.list_for_parent(kind, parent_id)

    # --- Remote sync ------------------------------------------------------

    async def sync(
        self,
        remote: RemoteRecordStore,
        *,
        view: str | None = None,
        sync_source: str = "app",
    ) -> SyncReport:
        """Push pending changes to ``remote`` and pull its records back."""

        report = await sync_now(
            remote=remote,
            unit_of_work_factory=self._uow_factory,
            clock=self._clock,
            view=view,
            sync_source=sync_source,
        )
        await self.notifier.notify()
        return report
