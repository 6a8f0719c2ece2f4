"""Push pending local records to the remote table, the mirror image of a pull.

Kinds go out parents first so that an option's parent item already has a remote
id when the option is written. Within a kind, tombstones become deletes, linked
records become updates and the rest become creates. Every write call carries at
most :data:`BATCH_SIZE` records.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from furnitrack.domain.bundle import iso_timestamp
from furnitrack.domain.merge import MERGE_ORDER
from furnitrack.domain.model import EntityKind, Option
from furnitrack.domain.ports import RemoteUpdate

from .idmap import IdMap
from .translate import LAST_SYNC_AT, LAST_SYNC_SOURCE, remote_fields

if TYPE_CHECKING:
    from collections.abc import Sequence

    from furnitrack.domain.merge import ExistingRecords
    from furnitrack.domain.model import AnyEntity
    from furnitrack.domain.ports import RemoteRecordStore

log = getLogger(__name__)

BATCH_SIZE: Final = 10
PUSH_ORDER = MERGE_ORDER


class PushAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True, frozen=True)
class PushOutcome:
    kind: EntityKind
    local_id: str
    remote_id: str | None
    action: PushAction


class _Pusher:
    def __init__(
        self,
        remote: RemoteRecordStore,
        ids: IdMap,
        *,
        sync_source: str,
        now: int,
    ) -> None:
        self._remote = remote
        self._ids = ids
        self._stamp = {LAST_SYNC_SOURCE: sync_source, LAST_SYNC_AT: iso_timestamp(now)}
        self.outcomes: list[PushOutcome] = []

    def _fields(self, entity: AnyEntity) -> dict[str, Any]:
        return {**remote_fields(entity, self._ids.remote_id), **self._stamp}

    def _parent_known(self, entity: AnyEntity) -> bool:
        if not isinstance(entity, Option):
            return True
        if self._ids.remote_id(EntityKind.ITEM, entity.item_id) is not None:
            return True
        log.warning("Skipping option %s: parent item %s has no remote id", entity.id, entity.item_id)
        return False

    async def delete(self, kind: EntityKind, tombstones: Sequence[AnyEntity]) -> None:
        linked = {record.remote_id: record.id for record in tombstones if record.remote_id}
        for record in tombstones:
            if not record.remote_id:
                self.outcomes.append(PushOutcome(kind, record.id, None, PushAction.DELETE))
        for batch in batched(linked, BATCH_SIZE):
            for remote_id in await self._remote.delete_records(list(batch)):
                local_id = linked.get(remote_id)
                if local_id is not None:
                    self.outcomes.append(PushOutcome(kind, local_id, remote_id, PushAction.DELETE))

    async def update(self, kind: EntityKind, records: Sequence[AnyEntity]) -> None:
        for batch in batched(records, BATCH_SIZE):
            updates = [RemoteUpdate(record.remote_id or "", self._fields(record)) for record in batch]
            await self._remote.update_records(updates)
            self.outcomes.extend(
                PushOutcome(kind, record.id, record.remote_id, PushAction.UPDATE) for record in batch
            )

    async def create(self, kind: EntityKind, records: Sequence[AnyEntity]) -> None:
        for batch in batched(records, BATCH_SIZE):
            created = await self._remote.create_records([self._fields(record) for record in batch])
            for record, remote in zip(batch, created, strict=True):
                self._ids.link(kind, record.id, remote.id)
                self.outcomes.append(PushOutcome(kind, record.id, remote.id, PushAction.CREATE))

    async def push_kind(self, kind: EntityKind, records: Sequence[AnyEntity]) -> None:
        pending = [record for record in records if not record.is_clean]
        tombstones = [record for record in pending if not record.is_live]
        live = [record for record in pending if record.is_live and self._parent_known(record)]
        await self.delete(kind, tombstones)
        await self.update(kind, [record for record in live if record.remote_id])
        await self.create(kind, [record for record in live if not record.remote_id])


async def push(
    remote: RemoteRecordStore,
    records: ExistingRecords,
    *,
    sync_source: str,
    now: int,
) -> list[PushOutcome]:
    """Write every non-clean record to ``remote`` and report what happened to each."""

    pusher = _Pusher(remote, IdMap.from_local(records), sync_source=sync_source, now=now)
    for kind in PUSH_ORDER:
        await pusher.push_kind(kind, list(records.get(kind, {}).values()))
    log.info("Pushed %d local records", len(pusher.outcomes))
    return pusher.outcomes
