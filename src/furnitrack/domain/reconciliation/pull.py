"""Pull the remote table and rebuild canonical local records from it."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from furnitrack.domain.model import EntityKind, Item, Measurement, Option, Room, SyncState

from .idmap import IdMap
from .translate import KIND_BY_RECORD_TYPE, RECORD_TYPE, decode_record, local_entity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from furnitrack.domain.merge import ExistingRecords
    from furnitrack.domain.model import AnyEntity
    from furnitrack.domain.ports import RemoteRecord, RemoteRecordStore

log = getLogger(__name__)

COMPANION_KINDS: tuple[EntityKind, ...] = (
    EntityKind.OPTION,
    EntityKind.ROOM,
    EntityKind.MEASUREMENT,
)


def _kinds_present(records: Sequence[RemoteRecord]) -> set[EntityKind]:
    present: set[EntityKind] = set()
    for record in records:
        kind = KIND_BY_RECORD_TYPE.get(str(record.fields.get(RECORD_TYPE) or "").strip())
        if kind is not None:
            present.add(kind)
    return present


def is_partial_graph(records: Sequence[RemoteRecord]) -> bool:
    """Items came back without one of the kinds that normally accompany them."""

    present = _kinds_present(records)
    return EntityKind.ITEM in present and any(kind not in present for kind in COMPANION_KINDS)


async def fetch_records(remote: RemoteRecordStore, *, view: str | None = None) -> list[RemoteRecord]:
    """List remote records, refetching unfiltered when ``view`` hides related kinds."""

    records = await remote.list_records(view=view)
    if view and is_partial_graph(records):
        log.info("View %r filtered out related record types; refetching without it", view)
        records = await remote.list_records()
    return records


@dataclass(slots=True)
class PulledGraph:
    """Clean local records rebuilt from one pull, plus rooms only referenced by name."""

    records: dict[EntityKind, list[AnyEntity]] = field(default_factory=dict)
    placeholder_rooms: list[Room] = field(default_factory=list)
    skipped: int = 0

    def counts(self) -> Counter[EntityKind]:
        return Counter({kind: len(records) for kind, records in self.records.items() if records})


def _placeholder_rooms(graph: PulledGraph, now: int) -> list[Room]:
    pulled_rooms = {room.id for room in graph.records.get(EntityKind.ROOM, ())}
    referenced: dict[str, None] = {}
    placed = (*graph.records.get(EntityKind.ITEM, ()), *graph.records.get(EntityKind.MEASUREMENT, ()))
    for record in placed:
        if isinstance(record, Item | Measurement) and record.room not in pulled_rooms:
            referenced.setdefault(record.room)
    return [
        Room(id=room_id, name=room_id, created_at=now, updated_at=now, sync_state=SyncState.CLEAN)
        for room_id in referenced
    ]


def build_graph(
    records: Sequence[RemoteRecord],
    existing: ExistingRecords,
    *,
    now: int,
) -> PulledGraph:
    """Translate remote rows into canonical local records, all ``clean``."""

    decoded = [record for raw in records if (record := decode_record(raw)) is not None]
    ids = IdMap.from_pull(decoded, existing)
    known = IdMap.from_local(existing)

    def resolve_local(kind: EntityKind, remote_id: str | None) -> str | None:
        return ids.local_id(kind, remote_id) or known.local_id(kind, remote_id)

    graph = PulledGraph(records={kind: [] for kind in EntityKind})
    skipped = len(records) - len(decoded)
    for record in decoded:
        entity = local_entity(
            record,
            local_id=ids.local_id(record.kind, record.remote_id) or record.remote_id,
            resolve_local=resolve_local,
            now=now,
        )
        if isinstance(entity, Option) and not entity.item_id:
            log.debug("Dropping pulled option %s without a parent item", record.remote_id)
            skipped += 1
            continue
        graph.records[record.kind].append(entity)

    graph.placeholder_rooms = _placeholder_rooms(graph, now)
    graph.skipped = skipped
    return graph


async def pull(
    remote: RemoteRecordStore,
    existing: ExistingRecords,
    *,
    now: int,
    view: str | None = None,
) -> PulledGraph:
    records = await fetch_records(remote, view=view)
    graph = build_graph(records, existing, now=now)
    log.info(
        "Pulled %d remote records (%d skipped): %s",
        len(records),
        graph.skipped,
        {str(kind): count for kind, count in graph.counts().items()},
    )
    return graph
