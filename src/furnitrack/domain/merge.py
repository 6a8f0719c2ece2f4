"""Apply a normalized bundle against the current local records.

The planning functions here are pure: they compute the full set of writes for
an import up front, so the caller can persist them in one unit of work.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from furnitrack.domain.diff import diff
from furnitrack.domain.keys import room_key, store_key
from furnitrack.domain.model import (
    Actor,
    EntityKind,
    ImportMode,
    Item,
    Option,
    Provenance,
    Room,
    Store,
    SyncState,
    imported_change,
    imported_new,
    new_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable, Mapping

    from furnitrack.domain.bundle import NormalizedBundle
    from furnitrack.domain.model import AnyEntity, Attachment

log = getLogger(__name__)

type ExistingRecords = Mapping[EntityKind, Mapping[str, AnyEntity]]

MERGE_ORDER: tuple[EntityKind, ...] = (
    EntityKind.ROOM,
    EntityKind.STORE,
    EntityKind.MEASUREMENT,
    EntityKind.ITEM,
    EntityKind.OPTION,
)


@dataclass(slots=True)
class ImportReport:
    mode: ImportMode
    actor: Actor
    session_id: str
    inserted: Counter[EntityKind] = field(default_factory=Counter)
    updated: Counter[EntityKind] = field(default_factory=Counter)
    skipped: Counter[EntityKind] = field(default_factory=Counter)

    def summary(self) -> dict[str, dict[str, int]]:
        return {
            "inserted": {str(k): v for k, v in self.inserted.items()},
            "updated": {str(k): v for k, v in self.updated.items()},
            "skipped": {str(k): v for k, v in self.skipped.items()},
        }


@dataclass(slots=True)
class ImportPlan:
    """Every record write an import needs, grouped by kind in dependency order."""

    report: ImportReport
    writes: dict[EntityKind, list[AnyEntity]] = field(default_factory=dict)
    attachments: Mapping[str, tuple[Attachment, ...]] = field(default_factory=dict)

    def records(self) -> Iterable[AnyEntity]:
        for kind in MERGE_ORDER:
            yield from self.writes.get(kind, ())


def new_import_session_id() -> str:
    return new_id("import")


def infer_actor(bundle: NormalizedBundle, *, ai_assisted: bool = False) -> Actor:
    """``ai`` when the caller says so or the bundle shows AI authorship, else ``import``."""

    if ai_assisted:
        return Actor.AI
    if bundle.export_meta is not None and bundle.export_meta.exported_by is Actor.AI:
        return Actor.AI
    for record in bundle.records():
        provenance = record.provenance
        if provenance and Actor.AI in (provenance.created_by, provenance.last_edited_by):
            return Actor.AI
    return Actor.IMPORT


def _incoming_state(incoming: AnyEntity) -> SyncState:
    return SyncState.DELETED if incoming.sync_state is SyncState.DELETED else SyncState.DIRTY


def _with_stated_provenance(existing: AnyEntity, incoming: AnyEntity) -> AnyEntity:
    """Treat provenance fields the incoming record leaves unset as unchanged."""

    before = existing.provenance or Provenance()
    after = incoming.provenance or Provenance()
    if after.data_source is not None and after.source_ref is not None:
        return incoming
    filled = replace(
        after,
        data_source=after.data_source if after.data_source is not None else before.data_source,
        source_ref=after.source_ref if after.source_ref is not None else before.source_ref,
    )
    return incoming.evolve(provenance=filled)


def merge_record(
    existing: AnyEntity | None,
    incoming: AnyEntity,
    *,
    actor: Actor,
    at: int,
    session_id: str,
) -> AnyEntity | None:
    """The record to write for ``incoming``, or ``None`` when nothing changes."""

    if existing is None:
        return incoming.evolve(
            sync_state=_incoming_state(incoming),
            updated_at=at,
            provenance=imported_new(incoming.provenance, actor=actor, at=at),
        )

    compared = _with_stated_provenance(existing, incoming)
    changes = diff(existing, compared)
    if not changes:
        if incoming.sync_state is SyncState.DELETED and existing.is_live:
            return existing.tombstoned(at)
        return None

    return compared.evolve(
        created_at=existing.created_at,
        remote_id=existing.remote_id if existing.remote_id is not None else incoming.remote_id,
        sync_state=_incoming_state(incoming),
        updated_at=at,
        provenance=imported_change(
            existing.provenance,
            incoming.provenance,
            changes,
            actor=actor,
            at=at,
            session_id=session_id,
        ),
    )


def _bundle_records(bundle: NormalizedBundle, kind: EntityKind) -> tuple[AnyEntity, ...]:
    match kind:
        case EntityKind.ROOM:
            return bundle.rooms
        case EntityKind.STORE:
            return bundle.stores
        case EntityKind.MEASUREMENT:
            return bundle.measurements
        case EntityKind.ITEM:
            return bundle.items
        case EntityKind.OPTION:
            return bundle.options


def _fold_by_name[R: (Room, Store)](
    incoming: tuple[R, ...],
    local: Mapping[str, AnyEntity],
    key: Callable[[object], str],
    folded: dict[str, str],
) -> tuple[R, ...]:
    """Drop or re-id live newcomers whose name key a live record already owns.

    ``folded`` collects ``incoming id -> owner id`` for every re-targeted record.
    """

    owners: dict[str, Room | Store] = {
        key(record.name): record
        for record in local.values()
        if isinstance(record, Room | Store) and record.is_live
    }
    incoming_ids = {record.id for record in incoming}
    kept: list[R] = []
    for record in incoming:
        name_key = key(record.name)
        owner = owners.get(name_key)
        if not record.is_live or record.id in local or owner is None or owner.id == record.id:
            if record.is_live:
                owners.setdefault(name_key, record)
            kept.append(record)
            continue
        folded[record.id] = owner.id
        log.debug("Folding incoming %s %s into %s", record.kind, record.id, owner.id)
        if owner.id in local and owner.id not in incoming_ids:
            incoming_ids.add(owner.id)
            kept.append(record.evolve(id=owner.id, name=owner.name, created_at=owner.created_at))
    return tuple(kept)


def fold_named_records(bundle: NormalizedBundle, existing: ExistingRecords) -> NormalizedBundle:
    """Keep room names and store keys unique across the bundle and the local records.

    An incoming room or store whose normalized name matches a different live record
    is merged into that record; items and measurements follow a folded room.
    """

    rooms_folded: dict[str, str] = {}
    rooms = _fold_by_name(bundle.rooms, existing.get(EntityKind.ROOM, {}), room_key, rooms_folded)
    stores = _fold_by_name(bundle.stores, existing.get(EntityKind.STORE, {}), store_key, {})
    return replace(
        bundle,
        rooms=rooms,
        stores=stores,
        items=tuple(
            item.evolve(room=rooms_folded[item.room]) if item.room in rooms_folded else item
            for item in bundle.items
        ),
        measurements=tuple(
            m.evolve(room=rooms_folded[m.room]) if m.room in rooms_folded else m
            for m in bundle.measurements
        ),
    )


def drop_orphan_options(
    bundle: NormalizedBundle,
    known_items: Collection[str],
    report: ImportReport,
) -> NormalizedBundle:
    """Leave out options whose item is neither in the bundle nor in ``known_items``."""

    item_ids = {item.id for item in bundle.items}
    kept = tuple(o for o in bundle.options if o.item_id in item_ids or o.item_id in known_items)
    dropped = {o.id for o in bundle.options} - {o.id for o in kept}
    if not dropped:
        return bundle
    log.debug("Dropping %d option(s) without a parent item", len(dropped))
    report.skipped[EntityKind.OPTION] += len(dropped)
    dropped_keys = {f"{EntityKind.OPTION}:{option_id}" for option_id in dropped}
    attachments = {k: v for k, v in bundle.attachments.items() if k not in dropped_keys}
    return replace(bundle, options=kept, attachments=attachments)


def _reconcile_selection(
    plan: ImportPlan,
    existing: ExistingRecords,
    incoming_selected: set[str],
    at: int,
) -> None:
    """Keep one selected option per item after merging, preferring incoming picks."""

    written_options = {o.id: o for o in plan.writes.get(EntityKind.OPTION, ()) if isinstance(o, Option)}
    written_items = {i.id: i for i in plan.writes.get(EntityKind.ITEM, ()) if isinstance(i, Item)}
    options = {
        **{oid: o for oid, o in existing.get(EntityKind.OPTION, {}).items() if isinstance(o, Option)},
        **written_options,
    }
    items = {
        **{iid: i for iid, i in existing.get(EntityKind.ITEM, {}).items() if isinstance(i, Item)},
        **written_items,
    }

    selected_by_item: dict[str, list[Option]] = {}
    for option in options.values():
        if option.selected and option.is_live:
            selected_by_item.setdefault(option.item_id, []).append(option)

    for item_id, selected in selected_by_item.items():
        if len(selected) < 2:  # noqa: PLR2004
            continue
        item = items.get(item_id)
        preferred = [o for o in selected if o.id in incoming_selected] or selected
        keep = next(
            (o for o in preferred if item is not None and o.id == item.selected_option_id),
            preferred[0],
        )
        for option in selected:
            if option.id != keep.id:
                written_options[option.id] = option.touched(at, selected=False)
        if item is not None and item.is_live and item.selected_option_id != keep.id:
            written_items[item_id] = item.touched(at, selected_option_id=keep.id)

    plan.writes[EntityKind.OPTION] = list(written_options.values())
    plan.writes[EntityKind.ITEM] = list(written_items.values())


def plan_merge(
    bundle: NormalizedBundle,
    existing: ExistingRecords,
    *,
    actor: Actor,
    at: int,
    session_id: str,
) -> ImportPlan:
    """Insert new records, apply field changes to known ones, skip identical ones."""

    plan = ImportPlan(ImportReport(ImportMode.MERGE, actor, session_id))
    bundle = fold_named_records(bundle, existing)
    bundle = drop_orphan_options(bundle, existing.get(EntityKind.ITEM, {}).keys(), plan.report)
    for kind in MERGE_ORDER:
        current = existing.get(kind, {})
        writes: list[AnyEntity] = []
        for incoming in _bundle_records(bundle, kind):
            prior = current.get(incoming.id)
            merged = merge_record(prior, incoming, actor=actor, at=at, session_id=session_id)
            if merged is None:
                plan.report.skipped[kind] += 1
                continue
            if prior is None:
                plan.report.inserted[kind] += 1
            else:
                plan.report.updated[kind] += 1
            writes.append(merged)
        plan.writes[kind] = writes
    plan.attachments = bundle.attachments

    incoming_selected = {o.id for o in bundle.options if o.selected and o.is_live}
    _reconcile_selection(plan, existing, incoming_selected, at)
    return plan


def plan_replace(bundle: NormalizedBundle, *, actor: Actor, session_id: str) -> ImportPlan:
    """Persist the bundle as never-synced local records."""

    plan = ImportPlan(ImportReport(ImportMode.REPLACE, actor, session_id))
    bundle = drop_orphan_options(fold_named_records(bundle, {}), (), plan.report)
    for kind in MERGE_ORDER:
        writes: list[AnyEntity] = [
            record.evolve(sync_state=_incoming_state(record), remote_id=None)
            for record in _bundle_records(bundle, kind)
        ]
        plan.report.inserted[kind] += len(writes)
        plan.writes[kind] = writes
    plan.attachments = bundle.attachments
    return plan
