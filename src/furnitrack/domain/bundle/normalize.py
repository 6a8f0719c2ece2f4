"""Turn a classified bundle payload into the canonical entity graph.

Normalization is pure: it never touches storage, so a payload that cannot be
classified fails before any persistence step begins.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from furnitrack.domain.keys import normalize_room_name, normalize_store_name, room_key
from furnitrack.domain.model import (
    Actor,
    Attachment,
    ChangeLogEntry,
    DiscountType,
    Dimensions,
    EntityKind,
    ExportMeta,
    HomeMeta,
    Item,
    ItemStatus,
    Measurement,
    Option,
    PlannerMeta,
    Provenance,
    Room,
    Store,
    SyncState,
    cm_to_inches,
    make_default_rooms,
    new_id,
    now_ms,
)

from .coerce import as_number
from .schema import LegacyBundlePayload, VersionedBundlePayload, classify_bundle

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from furnitrack.domain.model import AnyEntity, Specs

    from .schema import (
        RawAttachment,
        RawDimensions,
        RawExportMeta,
        RawHome,
        RawItem,
        RawMeasurement,
        RawOption,
        RawProvenance,
        RawRecord,
        RawRoom,
        RawStore,
    )

log = getLogger(__name__)


@dataclass(slots=True, frozen=True, kw_only=True)
class NormalizedBundle:
    """Canonical, reference-repaired entity graph parsed from one bundle."""

    version: int
    exported_at: str
    export_meta: ExportMeta | None = None
    home: HomeMeta = field(default_factory=HomeMeta)
    planner: PlannerMeta | None = None
    rooms: tuple[Room, ...] = ()
    measurements: tuple[Measurement, ...] = ()
    items: tuple[Item, ...] = ()
    options: tuple[Option, ...] = ()
    stores: tuple[Store, ...] = ()
    attachments: Mapping[str, tuple[Attachment, ...]] = field(default_factory=dict)
    legacy: bool = False

    def records(self) -> Iterator[AnyEntity]:
        yield from self.rooms
        yield from self.stores
        yield from self.measurements
        yield from self.items
        yield from self.options


def iso_timestamp(at: int) -> str:
    return datetime.fromtimestamp(at / 1000, tz=UTC).isoformat()


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _int_or(value: float | None, default: int) -> int:
    return default if value is None else int(value)


def sanitize_home(raw: RawHome | None) -> HomeMeta:
    home = HomeMeta()
    if raw is None:
        return home
    return HomeMeta(
        name=raw.name or home.name,
        tags=tuple(raw.tags) if raw.tags is not None else home.tags,
        description=raw.description if raw.description is not None else home.description,
    )


def sanitize_planner(value: object, *, now: int | None = None) -> PlannerMeta | None:
    """Coerce planner data into ``{version: 1, mergedAt, template}``.

    Anything that is not already in that shape becomes the template of a new one.
    """

    if isinstance(value, PlannerMeta):
        return value
    if not isinstance(value, Mapping) or not value:
        return None
    merged_at = value.get("mergedAt")
    if not isinstance(merged_at, str) or not merged_at.strip():
        merged_at = iso_timestamp(now if now is not None else now_ms())
    if value.get("version") != 1 or isinstance(value.get("version"), bool):
        return PlannerMeta(merged_at=merged_at, template=dict(value))
    return PlannerMeta(merged_at=merged_at, template=value.get("template"))


def _freeze(value: object) -> object:
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def provenance_from_raw(raw: RawProvenance | None) -> Provenance | None:
    if raw is None:
        return None
    provenance = Provenance(
        created_by=raw.created_by,
        created_at=raw.created_at,
        last_edited_by=raw.last_edited_by,
        last_edited_at=raw.last_edited_at,
        data_source=raw.data_source,
        source_ref=raw.source_ref,
        review_status=raw.review_status,
        verified_at=raw.verified_at,
        verified_by=raw.verified_by,
        modified_fields=tuple(raw.modified_fields) if raw.modified_fields is not None else None,
        change_log=(
            tuple(
                ChangeLogEntry(
                    field=entry.field,
                    from_value=_freeze(entry.from_value),
                    to_value=_freeze(entry.to_value),
                    by=entry.by,
                    at=entry.at,
                    session_id=entry.session_id,
                )
                for entry in raw.change_log
            )
            if raw.change_log is not None
            else None
        ),
    )
    return None if provenance == Provenance() else provenance


def _export_meta(raw: RawExportMeta | None) -> ExportMeta | None:
    if raw is None or raw.exported_at is None:
        return None
    schema_version = 1 if raw.schema_version is None else max(1, _round_half_up(raw.schema_version))
    return ExportMeta(
        exported_at=int(raw.exported_at),
        exported_by=raw.exported_by,
        app_version=raw.app_version,
        schema_version=schema_version,
        session_id=raw.session_id,
    )


def _dimensions(raw: RawDimensions | None) -> Dimensions | None:
    if raw is None:
        return None
    dims = Dimensions(w_in=raw.w_in, d_in=raw.d_in, h_in=raw.h_in)
    return None if dims.is_empty else dims


def _bookkeeping(raw: RawRecord, prefix: str, now: int) -> dict[str, object]:
    created_at = _int_or(raw.created_at, now)
    return {
        "id": raw.id or new_id(prefix),
        "created_at": created_at,
        "updated_at": _int_or(raw.updated_at, created_at),
        "remote_id": raw.remote_id,
        "sync_state": raw.sync_state or SyncState.DIRTY,
        "sort": raw.sort,
        "provenance": provenance_from_raw(raw.provenance),
    }


def _attachments(
    parent_kind: EntityKind,
    parent_id: str,
    raws: Sequence[RawAttachment],
    now: int,
) -> tuple[Attachment, ...]:
    attachments: list[Attachment] = []
    for raw in raws:
        if not raw.url:
            continue
        attachments.append(
            Attachment(
                id=raw.id or new_id("att"),
                parent_kind=parent_kind,
                parent_id=parent_id,
                url=raw.url,
                name=raw.name,
                mime=raw.mime,
                size=None if raw.size is None else int(raw.size),
                created_at=_int_or(raw.created_at, now),
                updated_at=_int_or(raw.updated_at, now),
            )
        )
    return tuple(attachments)


class _RoomIndex:
    """Rooms keyed by id, with name-duplicate aliases and placeholder creation."""

    def __init__(self, now: int) -> None:
        self.now = now
        self.rooms: list[Room] = []
        self._by_id: dict[str, Room] = {}
        self._by_key: dict[str, str] = {}
        self._aliases: dict[str, str] = {}

    def add(self, room: Room) -> None:
        if room.id in self._by_id:
            return
        key = room_key(room.name)
        if room.is_live and key in self._by_key:
            self._aliases[room.id] = self._by_key[key]
            log.debug("Merged duplicate room %r into %r", room.id, self._by_key[key])
            return
        if room.is_live:
            self._by_key[key] = room.id
        self._by_id[room.id] = room
        self.rooms.append(room)

    def resolve(self, ref: str | None) -> str:
        """Id of the room ``ref`` names, creating a placeholder when it is unknown."""

        if not ref:
            return self.rooms[0].id
        room_id = self._aliases.get(ref, ref)
        if room_id not in self._by_id:
            name = normalize_room_name(room_id) or f"Room {len(self.rooms) + 1}"
            self.add(
                Room(
                    id=room_id,
                    name=name,
                    sort=len(self.rooms),
                    created_at=self.now,
                    updated_at=self.now,
                )
            )
        return self._aliases.get(room_id, room_id)

    def note(self, ref: str, notes: str) -> None:
        room_id = self.resolve(ref)
        room = self._by_id[room_id]
        updated = replace(room, notes=notes)
        self._by_id[room_id] = updated
        self.rooms[self.rooms.index(room)] = updated


def _room_from_raw(raw: RawRoom, idx: int, now: int) -> Room:
    raw_name = normalize_room_name(raw.name or raw.id or "")
    room_id = raw.id or raw_name or new_id(Room.id_prefix)
    fields = _bookkeeping(raw, Room.id_prefix, now)
    fields["id"] = room_id
    if fields["sort"] is None:
        fields["sort"] = idx
    return Room(
        **fields,  # type: ignore[arg-type]
        name=normalize_room_name(raw_name or room_id) or "Room",
        notes=raw.notes or "",
    )


def _measurement_from_raw(raw: RawMeasurement, rooms: _RoomIndex, now: int) -> Measurement:
    return Measurement(
        **_bookkeeping(raw, Measurement.id_prefix, now),  # type: ignore[arg-type]
        room=rooms.resolve(raw.room),
        label=raw.label or "Measurement",
        value_in=raw.value_in if raw.value_in is not None else 0.0,
        confidence=raw.confidence,
        for_category=raw.for_category,
        for_item_id=raw.for_item_id,
        notes=raw.notes,
    )


def _store_from_raw(raw: RawStore, now: int) -> Store:
    return Store(
        **_bookkeeping(raw, Store.id_prefix, now),  # type: ignore[arg-type]
        name=normalize_store_name(raw.name) or "Store",
        discount_type=raw.discount_type,
        discount_value=raw.discount_value,
        shipping_cost=raw.shipping_cost,
        delivery_info=raw.delivery_info,
        extra_warranty=raw.extra_warranty,
        extra_warranty_cost=raw.extra_warranty_cost,
        trial=raw.trial,
        apr=raw.apr,
        tax_cost=raw.tax_cost,
        notes=raw.notes,
    )


def _item_from_raw(raw: RawItem, rooms: _RoomIndex, now: int) -> Item:
    qty = raw.qty
    return Item(
        **_bookkeeping(raw, Item.id_prefix, now),  # type: ignore[arg-type]
        name=raw.name or "Item",
        room=rooms.resolve(raw.room),
        category=raw.category or "Other",
        status=raw.status or ItemStatus.IDEA,
        selected_option_id=raw.selected_option_id,
        price=raw.price,
        discount_type=raw.discount_type,
        discount_value=raw.discount_value,
        qty=_round_half_up(qty) if qty is not None and qty > 0 else 1,
        store=normalize_store_name(raw.store) or None,
        link=raw.link,
        notes=raw.notes,
        priority=raw.priority,
        tags=tuple(raw.tags) if raw.tags else None,
        dimensions=_dimensions(raw.dimensions),
        specs=dict(raw.specs) if raw.specs else None,
    )


def _option_from_raw(raw: RawOption, now: int) -> Option:
    legacy_discount = raw.discount
    return Option(
        **_bookkeeping(raw, Option.id_prefix, now),  # type: ignore[arg-type]
        item_id=raw.item_id or "",
        title=raw.title or "Option",
        store=normalize_store_name(raw.store) or None,
        link=raw.link,
        promo_code=raw.promo_code,
        price=raw.price,
        shipping=raw.shipping,
        tax_estimate=raw.tax_estimate,
        discount=legacy_discount,
        discount_type=raw.discount_type
        or (DiscountType.AMOUNT if legacy_discount is not None else None),
        discount_value=raw.discount_value if raw.discount_value is not None else legacy_discount,
        dimensions_text=raw.dimensions_text,
        dimensions=_dimensions(raw.dimensions),
        specs=dict(raw.specs) if raw.specs else None,
        notes=raw.notes,
        priority=raw.priority,
        tags=tuple(raw.tags) if raw.tags else None,
        selected=raw.selected,
        source_item_id=raw.source_item_id,
    )


def enforce_single_selection(
    items: Sequence[Item],
    options: Sequence[Option],
) -> tuple[list[Item], list[Option]]:
    """Leave at most one selected live option per item, agreeing with the item.

    The item's own ``selected_option_id`` wins when it names a selected option;
    otherwise the first selected option in input order is kept.
    """

    selected_by_item: dict[str, list[Option]] = {}
    for option in options:
        if option.selected and option.is_live:
            selected_by_item.setdefault(option.item_id, []).append(option)

    keep: dict[str, str] = {}
    items_by_id = {item.id: item for item in items}
    for item_id, candidates in selected_by_item.items():
        preferred = items_by_id[item_id].selected_option_id if item_id in items_by_id else None
        chosen = next((o for o in candidates if o.id == preferred), candidates[0])
        keep[item_id] = chosen.id

    fixed_options = [
        replace(option, selected=False)
        if option.selected and option.is_live and keep.get(option.item_id) != option.id
        else option
        for option in options
    ]
    fixed_items = [
        replace(item, selected_option_id=keep[item.id])
        if item.id in keep and item.selected_option_id != keep[item.id]
        else item
        for item in items
    ]
    return fixed_items, fixed_options


def _normalize_versioned(payload: VersionedBundlePayload, now: int) -> NormalizedBundle:
    rooms = _RoomIndex(now)
    raw_rooms = [_room_from_raw(raw, idx, now) for idx, raw in enumerate(payload.rooms)]
    for room in raw_rooms or make_default_rooms(now):
        rooms.add(room)

    measurements = [_measurement_from_raw(raw, rooms, now) for raw in payload.measurements]
    stores = [_store_from_raw(raw, now) for raw in payload.stores]
    items = [_item_from_raw(raw, rooms, now) for raw in payload.items]
    options: list[Option] = []
    for raw in payload.options:
        option = _option_from_raw(raw, now)
        if not option.item_id:
            log.debug("Dropping option %s without a parent item", option.id)
            continue
        options.append(option)
    items, options = enforce_single_selection(items, options)

    attachments: dict[str, tuple[Attachment, ...]] = {}
    for kind, raws in ((EntityKind.ITEM, payload.items), (EntityKind.OPTION, payload.options)):
        for raw in raws:
            if raw.id and raw.attachments is not None:
                attachments[f"{kind}:{raw.id}"] = _attachments(kind, raw.id, raw.attachments, now)

    export_meta = _export_meta(payload.export_meta)
    if payload.version == 2:
        export_meta = ExportMeta(
            exported_at=export_meta.exported_at if export_meta else now,
            exported_by=(export_meta.exported_by if export_meta else None) or Actor.IMPORT,
            app_version=export_meta.app_version if export_meta else None,
            schema_version=2,
            session_id=export_meta.session_id if export_meta else None,
        )

    return NormalizedBundle(
        version=payload.version,
        exported_at=payload.exported_at or iso_timestamp(now),
        export_meta=export_meta,
        home=sanitize_home(payload.home),
        planner=sanitize_planner(payload.planner, now=now),
        rooms=tuple(rooms.rooms),
        measurements=tuple(measurements),
        items=tuple(items),
        options=tuple(options),
        stores=tuple(stores),
        attachments=attachments,
    )


def dimensions_from_legacy_specs(specs: Specs | None) -> Dimensions | None:
    """Read ``width_in``/``depth_in``/``height_in`` (or ``length_in``) spec keys."""

    if not specs:
        return None

    def number(key: str) -> float | None:
        value = specs.get(key)
        return None if isinstance(value, bool) else as_number(value)

    width = number("width_in")
    dims = Dimensions(
        w_in=width if width is not None else number("length_in"),
        d_in=number("depth_in"),
        h_in=number("height_in"),
    )
    return None if dims.is_empty else dims


class _SortCounter:
    def __init__(self) -> None:
        self._next: dict[str, int] = {}

    def __call__(self, key: str) -> int:
        value = self._next.get(key, 0)
        self._next[key] = value + 1
        return value


def _legacy_home(title: str | None) -> HomeMeta:
    """Default home whose description leads with the legacy file's title."""

    home = HomeMeta()
    description = "\n\n".join(part for part in (title, home.description) if part)
    return replace(home, description=description)


def _normalize_legacy(payload: LegacyBundlePayload, now: int) -> NormalizedBundle:
    rooms = _RoomIndex(now)
    for room in make_default_rooms(now):
        rooms.add(room)

    item_sort = _SortCounter()
    items: list[Item] = []
    for raw in payload.items or ():
        room_id = rooms.resolve(raw.room)
        specs = dict(raw.specs) if raw.specs else None
        items.append(
            Item(
                id=new_id(Item.id_prefix),
                created_at=now,
                updated_at=now,
                sort=item_sort(room_id),
                name=raw.title or "Item",
                room=room_id,
                category=raw.category or "Other",
                status=raw.status or ItemStatus.IDEA,
                price=raw.price,
                qty=max(1, _round_half_up(raw.quantity)) if raw.quantity is not None else 1,
                store=normalize_store_name(raw.store) or None,
                link=raw.link,
                notes=raw.notes,
                priority=raw.priority,
                dimensions=dimensions_from_legacy_specs(specs),
                specs=specs,
            )
        )

    by_title = {item.name.lower(): item.id for item in items}
    option_sort = _SortCounter()
    options: list[Option] = []
    for raw in payload.options:
        item_id = by_title.get((raw.parent_title or "").lower())
        if item_id is None:
            log.debug("Dropping legacy option %r: no item titled %r", raw.title, raw.parent_title)
            continue
        options.append(
            Option(
                id=new_id(Option.id_prefix),
                created_at=now,
                updated_at=now,
                sort=option_sort(item_id),
                item_id=item_id,
                title=raw.title or "Option",
                store=normalize_store_name(raw.store) or None,
                link=raw.link,
                promo_code=raw.promo,
                price=raw.price,
                shipping=raw.shipping,
                tax_estimate=raw.tax,
                discount=raw.discount,
                discount_type=DiscountType.AMOUNT if raw.discount is not None else None,
                discount_value=raw.discount,
                dimensions_text=raw.dimensions,
                notes=raw.notes,
            )
        )

    measurement_sort = _SortCounter()
    measurements: list[Measurement] = []
    for raw in payload.measurements or ():
        room_id = rooms.resolve(raw.room)
        value = raw.value if raw.value is not None else 0.0
        unit = (raw.unit or "in").lower()
        measurements.append(
            Measurement(
                id=new_id(Measurement.id_prefix),
                created_at=now,
                updated_at=now,
                sort=measurement_sort(room_id),
                room=room_id,
                label=raw.label or "Measurement",
                value_in=cm_to_inches(value) if unit == "cm" else value,
                confidence=raw.confidence,
                notes=raw.notes,
            )
        )

    for note in payload.notes:
        if note.room and note.notes is not None:
            rooms.note(note.room, note.notes)

    return NormalizedBundle(
        version=1,
        exported_at=iso_timestamp(now),
        home=_legacy_home(payload.title),
        rooms=tuple(rooms.rooms),
        measurements=tuple(measurements),
        items=tuple(items),
        options=tuple(options),
        legacy=True,
    )


def normalize_bundle(raw: object, *, now: int | None = None) -> NormalizedBundle:
    """Classify and normalize untyped bundle JSON.

    Raises :class:`~furnitrack.domain.errors.UnrecognizedBundleError` for any shape
    other than the versioned export or the legacy single-file format.
    """

    at = now if now is not None else now_ms()
    payload = classify_bundle(raw)
    if isinstance(payload, VersionedBundlePayload):
        return _normalize_versioned(payload, at)
    return _normalize_legacy(payload, at)
