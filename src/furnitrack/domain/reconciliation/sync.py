"""One full push-then-pull round trip against the remote table."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from furnitrack.domain.bundle import to_wire
from furnitrack.domain.model import EntityKind, MetaKey, SyncState, SyncSummary, now_ms
from furnitrack.domain.snapshot import load_records

from .pull import pull
from .push import PushAction, push

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from furnitrack.domain.merge import ExistingRecords
    from furnitrack.domain.ports import RemoteRecordStore, TrackerRepositories, UnitOfWorkFactory

    from .pull import PulledGraph
    from .push import PushOutcome

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SyncReport:
    at: int
    outcomes: tuple[PushOutcome, ...] = ()
    pulled: Counter[EntityKind] = field(default_factory=Counter)

    def summary(self) -> SyncSummary:
        pushed = Counter(str(outcome.action) for outcome in self.outcomes)
        return SyncSummary(
            push={str(action): pushed.get(str(action), 0) for action in PushAction},
            pull={str(kind): count for kind, count in self.pulled.items()},
        )


async def _apply_push(
    repos: TrackerRepositories,
    pushed: ExistingRecords,
    outcomes: Sequence[PushOutcome],
) -> None:
    """Link remote ids and settle records that did not change while the push ran."""

    for outcome in outcomes:
        repo = repos.for_kind(outcome.kind)
        current = await repo.get(outcome.local_id)
        if current is None:
            continue
        unchanged = current.updated_at == pushed[outcome.kind][outcome.local_id].updated_at
        if outcome.action is PushAction.DELETE:
            if unchanged and not current.is_live:
                await repo.purge([current.id])
            continue
        settled = current.evolve(remote_id=outcome.remote_id)
        if unchanged:
            settled = settled.evolve(sync_state=SyncState.CLEAN)
        await repo.put(settled)


async def _apply_pull(
    repos: TrackerRepositories,
    current: ExistingRecords,
    graph: PulledGraph,
) -> Counter[EntityKind]:
    """Store pulled records over absent or clean local ones; pending local edits win."""

    applied: Counter[EntityKind] = Counter()
    for kind, records in graph.records.items():
        local = current.get(kind, {})
        accepted = [r for r in records if (prior := local.get(r.id)) is None or prior.is_clean]
        await repos.for_kind(kind).put_many(accepted)
        if accepted:
            applied[kind] += len(accepted)
    rooms = current.get(EntityKind.ROOM, {})
    missing = [room for room in graph.placeholder_rooms if room.id not in rooms]
    await repos.rooms.put_many(missing)
    return applied


async def sync_now(
    *,
    remote: RemoteRecordStore,
    unit_of_work_factory: UnitOfWorkFactory,
    clock: Callable[[], int] = now_ms,
    view: str | None = None,
    sync_source: str = "app",
) -> SyncReport:
    """Push pending local changes, then pull the remote table into the local store.

    Each phase talks to the remote before it writes anything locally, so a remote
    failure leaves that phase's local state untouched.
    """

    started = clock()
    async with unit_of_work_factory() as uow:
        local = await load_records(uow.repositories)

    outcomes = await push(remote, local, sync_source=sync_source, now=started)
    async with unit_of_work_factory() as uow:
        await _apply_push(uow.repositories, local, outcomes)
        await uow.commit()

    async with unit_of_work_factory() as uow:
        existing = await load_records(uow.repositories)
    graph = await pull(remote, existing, now=clock(), view=view)

    async with unit_of_work_factory() as uow:
        repos = uow.repositories
        current = await load_records(repos)
        pulled = await _apply_pull(repos, current, graph)
        report = SyncReport(at=clock(), outcomes=tuple(outcomes), pulled=pulled)
        await repos.meta.set(MetaKey.LAST_SYNC_AT, report.at)
        await repos.meta.set(MetaKey.LAST_SYNC_SUMMARY, to_wire(report.summary()))
        await uow.commit()

    summary = report.summary()
    log.info("Sync finished: push=%s, pull=%s", summary.push, summary.pull)
    return report
