"""Application orchestration entry points."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Any

from furnitrack.adapters.airtable import AirtableRecordStore
from furnitrack.adapters.sqlalchemy import SqlAlchemyTrackerUnitOfWork, is_started, startup
from furnitrack.config import get_remote_config
from furnitrack.domain.model import ImportMode
from furnitrack.domain.tracker import Tracker

if TYPE_CHECKING:
    from pathlib import Path

    from furnitrack.config import RemoteConfig
    from furnitrack.domain.merge import ImportReport
    from furnitrack.domain.ports import RemoteRecordStore, UnitOfWorkFactory
    from furnitrack.domain.reconciliation import SyncReport

log = getLogger(__name__)


async def open_tracker(
    *,
    database_uri: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Tracker:
    """A ``Tracker`` over the configured local store, starting the adapter if needed."""

    if unit_of_work_factory is None:
        if not is_started():
            await startup(database_uri=database_uri)
        unit_of_work_factory = SqlAlchemyTrackerUnitOfWork
    return Tracker(unit_of_work_factory)


async def export_to_file(
    tracker: Tracker,
    destination: Path | None,
    *,
    include_deleted: bool = False,
) -> dict[str, Any]:
    payload = await tracker.export_bundle(include_deleted=include_deleted)
    if destination is not None:
        destination.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        log.info("Exported bundle to %s", destination)
    return payload


async def import_from_file(
    tracker: Tracker,
    source: Path,
    *,
    mode: ImportMode | str = ImportMode.MERGE,
    ai_assisted: bool = False,
) -> ImportReport:
    raw = json.loads(source.read_text(encoding="utf-8"))
    return await tracker.import_bundle(raw, mode=mode, ai_assisted=ai_assisted)


async def sync_remote(
    tracker: Tracker,
    *,
    remote: RemoteRecordStore | None = None,
    config: RemoteConfig | None = None,
    view: str | None = None,
) -> SyncReport:
    """Synchronise with the remote table using the configured adapters."""

    effective_config = config or get_remote_config()
    effective_remote = remote or AirtableRecordStore(config=effective_config)
    effective_view = view if view is not None else effective_config.view
    log.info(
        "Starting remote sync: table=%s, view=%s, source=%s",
        effective_config.table_path,
        effective_view,
        effective_config.sync_source,
    )
    return await tracker.sync(
        effective_remote,
        view=effective_view,
        sync_source=effective_config.sync_source,
    )


async def tracker_status(tracker: Tracker) -> dict[str, Any]:
    snapshot = await tracker.snapshot()
    return {
        "home": snapshot.home.name,
        "pending": {str(kind): count for kind, count in snapshot.dirty_counts().items()},
        "lastSyncAt": snapshot.last_sync_at,
        "lastSyncSummary": (
            {"push": snapshot.last_sync_summary.push, "pull": snapshot.last_sync_summary.pull}
            if snapshot.last_sync_summary
            else None
        ),
    }
