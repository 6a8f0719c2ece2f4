from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from furnitrack.domain.model import EntityKind, SyncState
from furnitrack.domain.reconciliation import BATCH_SIZE, PushAction, decode_notes, push
from furnitrack.domain.reconciliation.translate import (
    LAST_SYNC_AT,
    LAST_SYNC_SOURCE,
    NOTES,
    PARENT_ITEM,
    PRICE,
    RECORD_TYPE,
    TITLE,
)
from tests.helpers.records import AT, clean, make_item, make_option, make_room, make_store
from tests.support.remote import FakeRemoteStore

if TYPE_CHECKING:
    from furnitrack.domain.model import AnyEntity

NOW = AT + 30_000


def _records(*records: AnyEntity) -> dict[EntityKind, dict[str, AnyEntity]]:
    grouped: dict[EntityKind, dict[str, AnyEntity]] = {kind: {} for kind in EntityKind}
    for record in records:
        grouped[record.kind][record.id] = record
    return grouped


async def test_new_records_are_created_parents_first() -> None:
    remote = FakeRemoteStore()

    outcomes = await push(
        remote,
        _records(
            make_option("o_1", item_id="i_1"),
            make_item("i_1", price=500.0),
            make_store("s_1"),
            make_room("Living"),
        ),
        sync_source="web",
        now=NOW,
    )

    assert [(o.kind, o.action) for o in outcomes] == [
        (EntityKind.ROOM, PushAction.CREATE),
        (EntityKind.STORE, PushAction.CREATE),
        (EntityKind.ITEM, PushAction.CREATE),
        (EntityKind.OPTION, PushAction.CREATE),
    ]
    by_local = {o.local_id: o.remote_id for o in outcomes}
    (option_row,) = remote.of_type("Option")
    assert option_row.fields[PARENT_ITEM] == by_local["i_1"]
    (item_row,) = remote.of_type("Item")
    assert item_row.fields[PRICE] == 500.0
    assert item_row.fields[LAST_SYNC_SOURCE] == "web"
    assert item_row.fields[LAST_SYNC_AT].startswith("2023-11-14T")
    notes = decode_notes(item_row.fields[NOTES])
    assert notes.meta is not None
    assert notes.meta["localId"] == "i_1"


async def test_clean_records_are_not_pushed() -> None:
    remote = FakeRemoteStore()

    outcomes = await push(
        remote, _records(clean(make_item("i_1"), "rec1")), sync_source="app", now=NOW
    )

    assert outcomes == []
    assert remote.calls == []


async def test_writes_are_batched() -> None:
    items = [make_item(f"i_{n:02d}") for n in range(2 * BATCH_SIZE + 3)]
    remote = FakeRemoteStore()

    outcomes = await push(remote, _records(*items), sync_source="app", now=NOW)

    assert remote.batch_sizes("create") == [BATCH_SIZE, BATCH_SIZE, 3]
    assert len({o.remote_id for o in outcomes}) == len(items)


async def test_linked_records_update_and_tombstones_delete() -> None:
    remote = FakeRemoteStore()
    remote.add({RECORD_TYPE: "Item", TITLE: "Old sofa"}, remote_id="recSofa")
    remote.add({RECORD_TYPE: "Item", TITLE: "Chair"}, remote_id="recChair")
    sofa = make_item("i_sofa", name="New sofa", remote_id="recSofa")
    chair = make_item("i_chair", remote_id="recChair", sync_state=SyncState.DELETED)
    never_synced = make_item("i_draft", sync_state=SyncState.DELETED)

    outcomes = await push(
        remote, _records(sofa, chair, never_synced), sync_source="app", now=NOW
    )

    assert {(o.local_id, o.remote_id, o.action) for o in outcomes} == {
        ("i_sofa", "recSofa", PushAction.UPDATE),
        ("i_chair", "recChair", PushAction.DELETE),
        ("i_draft", None, PushAction.DELETE),
    }
    assert remote.records["recSofa"].fields[TITLE] == "New sofa"
    assert "recChair" not in remote.records
    assert remote.batch_sizes("delete") == [1]
    assert remote.batch_sizes("create") == []


async def test_option_without_remote_parent_is_held_back(caplog: pytest.LogCaptureFixture) -> None:
    remote = FakeRemoteStore()
    parent = make_item("i_1", sync_state=SyncState.DELETED)

    with caplog.at_level(logging.WARNING, logger="furnitrack.domain.reconciliation.push"):
        outcomes = await push(
            remote,
            _records(parent, make_option("o_1", item_id="i_1")),
            sync_source="app",
            now=NOW,
        )

    assert [(o.kind, o.action) for o in outcomes] == [(EntityKind.ITEM, PushAction.DELETE)]
    assert remote.of_type("Option") == []
    assert "parent item i_1 has no remote id" in caplog.text
