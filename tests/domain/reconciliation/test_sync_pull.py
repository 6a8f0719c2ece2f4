from __future__ import annotations

from typing import TYPE_CHECKING

from furnitrack.domain.model import EntityKind, SyncState
from furnitrack.domain.ports import RemoteRecord
from furnitrack.domain.reconciliation import (
    build_graph,
    encode_notes,
    fetch_records,
    is_partial_graph,
    pull,
)
from furnitrack.domain.reconciliation.translate import (
    NOTES,
    PARENT_ITEM,
    RECORD_TYPE,
    ROOM,
    TITLE,
)
from tests.helpers.records import AT, clean, make_item, make_room
from tests.support.remote import FakeRemoteStore

if TYPE_CHECKING:
    from typing import Any

    from furnitrack.domain.model import AnyEntity

NOW = AT + 10_000


def _row(remote_id: str, record_type: str, **fields: Any) -> RemoteRecord:
    return RemoteRecord(id=remote_id, fields={RECORD_TYPE: record_type, **fields})


def _existing(*records: AnyEntity) -> dict[EntityKind, dict[str, AnyEntity]]:
    grouped: dict[EntityKind, dict[str, AnyEntity]] = {kind: {} for kind in EntityKind}
    for record in records:
        grouped[record.kind][record.id] = record
    return grouped


def _remote_table() -> FakeRemoteStore:
    return FakeRemoteStore(
        [
            _row("recR", "Note", **{TITLE: "Den notes", ROOM: "Den"}),
            _row(
                "recI",
                "Item",
                **{TITLE: "Sofa", ROOM: "Den", NOTES: encode_notes("", {"localId": "i_sofa"})},
            ),
            _row("recO", "Option", **{TITLE: "Oat", PARENT_ITEM: "recI"}),
            _row("recM", "Measurement", **{TITLE: "Wall", ROOM: "Den", "Value (in)": 100}),
        ],
        hidden_types={"Option", "Note", "Measurement"},
    )


def test_partial_graph_detection() -> None:
    item = _row("rec1", "Item")
    option = _row("rec2", "Option")
    room = _row("rec3", "Note")
    measurement = _row("rec4", "Measurement")

    assert is_partial_graph([item, option])
    assert not is_partial_graph([item, option, room, measurement])
    assert not is_partial_graph([option, room])
    assert not is_partial_graph([])


async def test_view_hiding_related_kinds_is_refetched_without_view() -> None:
    remote = _remote_table()

    records = await fetch_records(remote, view="Items only")

    assert remote.list_views == ["Items only", None]
    assert len(records) == 4


async def test_view_with_full_graph_is_used_as_is() -> None:
    remote = _remote_table()
    remote.hidden_types.clear()

    await fetch_records(remote, view="Everything")

    assert remote.list_views == ["Everything"]


async def test_pull_resolves_ids_and_links_children() -> None:
    graph = await pull(_remote_table(), _existing(), now=NOW, view="Items only")

    (item,) = graph.records[EntityKind.ITEM]
    (option,) = graph.records[EntityKind.OPTION]
    (room,) = graph.records[EntityKind.ROOM]
    (measurement,) = graph.records[EntityKind.MEASUREMENT]
    assert (item.id, item.remote_id) == ("i_sofa", "recI")
    assert option.id == "recO"
    assert option.item_id == "i_sofa"
    assert (room.id, room.remote_id) == ("Den", "recR")
    assert measurement.room == "Den"
    assert all(
        record.sync_state is SyncState.CLEAN
        for records in graph.records.values()
        for record in records
    )
    assert graph.placeholder_rooms == []
    assert graph.counts() == {
        EntityKind.ITEM: 1,
        EntityKind.OPTION: 1,
        EntityKind.ROOM: 1,
        EntityKind.MEASUREMENT: 1,
    }


def test_pull_reuses_local_ids_already_linked() -> None:
    local = clean(make_item("i_local", name="Sofa"), "recI")

    graph = build_graph(
        [
            _row("recI", "Item", **{TITLE: "Sofa"}),
            _row("recO", "Option", **{TITLE: "Oat", PARENT_ITEM: "recI"}),
        ],
        _existing(local),
        now=NOW,
    )

    assert graph.records[EntityKind.ITEM][0].id == "i_local"
    assert graph.records[EntityKind.OPTION][0].item_id == "i_local"


def test_rooms_referenced_only_by_name_become_placeholders() -> None:
    graph = build_graph(
        [
            _row("rec1", "Item", **{TITLE: "Desk", ROOM: "Office"}),
            _row("rec2", "Measurement", **{TITLE: "Nook", ROOM: "Office"}),
            _row("rec3", "Item", **{TITLE: "Sofa", ROOM: "Den"}),
            _row("rec4", "Note", **{ROOM: "Den"}),
        ],
        _existing(make_room("Office")),
        now=NOW,
    )

    placeholders = {room.id: room for room in graph.placeholder_rooms}
    assert list(placeholders) == ["Office"]
    assert placeholders["Office"].name == "Office"
    assert placeholders["Office"].sync_state is SyncState.CLEAN
    assert placeholders["Office"].created_at == NOW


def test_unknown_types_and_orphan_options_are_skipped() -> None:
    graph = build_graph(
        [
            _row("rec1", "Invoice"),
            _row("rec2", "Option", **{TITLE: "Loose"}),
            _row("rec3", "Store", **{TITLE: "IKEA", "Store": "IKEA"}),
        ],
        _existing(),
        now=NOW,
    )

    assert graph.skipped == 2
    assert graph.records[EntityKind.OPTION] == []
    assert [store.name for store in graph.records[EntityKind.STORE]] == ["IKEA"]
