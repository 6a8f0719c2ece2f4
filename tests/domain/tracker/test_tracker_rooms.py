from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from furnitrack.domain.errors import EntityNotFoundError, RoomNameConflictError, RoomNotEmptyError
from furnitrack.domain.model import (
    DEFAULT_ROOM_NAMES,
    Actor,
    EntityKind,
    HomeMeta,
    ReviewStatus,
    SyncState,
    UnitPreference,
)

if TYPE_CHECKING:
    from furnitrack.domain.tracker import Tracker


async def test_first_snapshot_seeds_default_rooms_and_meta(tracker: Tracker) -> None:
    snapshot = await tracker.snapshot()

    assert [room.id for room in snapshot.ordered_rooms()] == list(DEFAULT_ROOM_NAMES)
    assert snapshot.home == HomeMeta()
    assert snapshot.unit_preference is UnitPreference.INCHES
    assert snapshot.default_room_id == "Living"
    assert snapshot.last_sync_summary is None

    again = await tracker.snapshot()
    assert again.rooms == snapshot.rooms


async def test_create_room_reuses_live_room_with_same_name(tracker: Tracker) -> None:
    await tracker.snapshot()

    created = await tracker.create_room("  Home   Office ")
    reused = await tracker.create_room("home office")
    blank = await tracker.create_room("   ")

    assert created == "Home Office"
    assert reused == created
    assert blank is None
    snapshot = await tracker.snapshot()
    office = next(room for room in snapshot.rooms if room.id == created)
    assert office.sort == len(DEFAULT_ROOM_NAMES)
    assert office.sync_state is SyncState.DIRTY
    assert office.provenance is not None
    assert office.provenance.created_by is Actor.HUMAN


async def test_rename_room_keeps_id(tracker: Tracker) -> None:
    await tracker.snapshot()

    await tracker.update_room("Living", name="Lounge", notes="South facing")

    snapshot = await tracker.snapshot()
    lounge = next(room for room in snapshot.rooms if room.id == "Living")
    assert (lounge.name, lounge.notes) == ("Lounge", "South facing")
    assert snapshot.room_name_by_id()["Living"] == "Lounge"


async def test_rename_room_onto_existing_name_is_rejected(tracker: Tracker) -> None:
    await tracker.snapshot()

    with pytest.raises(RoomNameConflictError):
        await tracker.update_room("Living", name=" dining ")

    snapshot = await tracker.snapshot()
    assert next(room for room in snapshot.rooms if room.id == "Living").name == "Living"


async def test_update_unknown_room_creates_it(tracker: Tracker) -> None:
    await tracker.update_room("Garage", notes="Tools")

    rooms = {room.id: room for room in (await tracker.snapshot()).rooms}
    assert rooms["Garage"].name == "Garage"
    assert rooms["Garage"].notes == "Tools"


async def test_room_bookkeeping_fields_cannot_be_patched(tracker: Tracker) -> None:
    with pytest.raises(TypeError, match="sync_state"):
        await tracker.update_room("Living", sync_state=SyncState.CLEAN)


async def test_delete_room_with_children_requires_destination(tracker: Tracker) -> None:
    await tracker.snapshot()
    item_id = await tracker.create_item(name="Desk", room="Master")
    measurement_id = await tracker.create_measurement(room="Master", label="Wall", value_in=120)

    with pytest.raises(RoomNotEmptyError):
        await tracker.delete_room("Master")

    await tracker.delete_room("Master", move_to="Bedroom2")

    snapshot = await tracker.snapshot()
    by_id = snapshot.by_id()
    assert by_id[EntityKind.ROOM]["Master"].sync_state is SyncState.DELETED
    assert by_id[EntityKind.ITEM][item_id].room == "Bedroom2"
    assert by_id[EntityKind.MEASUREMENT][measurement_id].room == "Bedroom2"
    assert "Master" not in [room.id for room in snapshot.ordered_rooms()]


async def test_empty_room_is_tombstoned_without_destination(tracker: Tracker) -> None:
    await tracker.snapshot()

    await tracker.delete_room("Balcony")
    await tracker.delete_room("Nowhere")

    rooms = {room.id: room for room in (await tracker.snapshot()).rooms}
    assert rooms["Balcony"].sync_state is SyncState.DELETED
    assert "Nowhere" not in rooms


async def test_reorder_rooms_rewrites_sort(tracker: Tracker) -> None:
    await tracker.snapshot()

    await tracker.reorder_rooms(["Bath", "Kitchen"])

    ordered = [room.id for room in (await tracker.snapshot()).ordered_rooms()]
    assert ordered[:3] == ["Bath", "Kitchen", "Living"]
    assert sorted(ordered) == sorted(DEFAULT_ROOM_NAMES)


async def test_review_transitions(tracker: Tracker) -> None:
    await tracker.snapshot()

    await tracker.mark_needs_review("room", "Kitchen")
    pending = next(r for r in (await tracker.snapshot()).rooms if r.id == "Kitchen")
    await tracker.mark_verified("room", "Kitchen")
    verified = next(r for r in (await tracker.snapshot()).rooms if r.id == "Kitchen")

    assert pending.provenance is not None
    assert pending.provenance.review_status is ReviewStatus.NEEDS_REVIEW
    assert verified.provenance is not None
    assert verified.provenance.review_status is ReviewStatus.VERIFIED
    assert verified.provenance.verified_by is Actor.HUMAN
    assert verified.updated_at > pending.updated_at


async def test_meta_values_are_saved_and_sanitized(tracker: Tracker) -> None:
    home = await tracker.save_home({"name": "  Loft ", "tags": ["rental", 3], "description": 7})
    unit = await tracker.set_unit_preference("cm")
    planner = await tracker.save_planner({"layout": "open"})

    snapshot = await tracker.snapshot()
    assert home == HomeMeta(name="Loft", tags=("rental", "3"))
    assert snapshot.home == home
    assert unit is UnitPreference.CENTIMETERS
    assert snapshot.unit_preference is UnitPreference.CENTIMETERS
    assert planner is not None
    assert snapshot.planner == planner


async def test_writes_notify_subscribers(tracker: Tracker) -> None:
    reloads: list[int] = []
    tracker.notifier.subscribe(lambda: reloads.append(1))

    await tracker.create_room("Studio")
    with pytest.raises(TypeError):
        await tracker.update_room("Studio", id="other")

    assert reloads == [1]


async def test_review_of_unknown_record_is_rejected(tracker: Tracker) -> None:
    reloads: list[int] = []
    tracker.notifier.subscribe(lambda: reloads.append(1))

    with pytest.raises(EntityNotFoundError, match="item not found: i_missing"):
        await tracker.mark_verified(EntityKind.ITEM, "i_missing")

    assert reloads == []
