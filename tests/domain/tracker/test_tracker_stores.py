from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from furnitrack.domain.errors import StoreNameConflictError
from furnitrack.domain.keys import store_key
from furnitrack.domain.model import DiscountType, SyncState

if TYPE_CHECKING:
    from furnitrack.domain.tracker import Tracker


async def test_create_store_deduplicates_by_normalized_name(tracker: Tracker) -> None:
    ikea = await tracker.create_store(" IKEA ")
    again = await tracker.create_store("ikea")
    blank = await tracker.create_store("  ")

    stores = (await tracker.snapshot()).stores
    assert again == ikea
    assert blank is None
    assert [(store.id, store.name) for store in stores] == [(ikea, "IKEA")]


async def test_live_store_names_stay_distinct(tracker: Tracker) -> None:
    await tracker.create_store("IKEA")
    west_elm = await tracker.create_store("West Elm")
    assert west_elm is not None

    with pytest.raises(StoreNameConflictError, match="IKEA"):
        await tracker.update_store(west_elm, name=" ikea")

    live = [store for store in (await tracker.snapshot()).stores if store.is_live]
    keys = [store_key(store.name) for store in live]
    assert sorted(keys) == ["ikea", "west elm"]


async def test_rename_store_cascades_to_items_and_options(tracker: Tracker) -> None:
    await tracker.snapshot()
    store_id = await tracker.create_store("IKEA")
    assert store_id is not None
    item_id = await tracker.create_item(name="Shelf", store="IKEA")
    option_id = await tracker.create_option(item_id, title="Birch", store="ikea ")
    other_id = await tracker.create_item(name="Lamp", store="Article")

    await tracker.update_store(
        store_id, name="IKEA Family", shipping_cost=49, discount_type="percent", discount_value=5
    )

    snapshot = await tracker.snapshot()
    items = {item.id: item for item in snapshot.items}
    assert items[item_id].store == "IKEA Family"
    assert items[other_id].store == "Article"
    assert next(o for o in snapshot.options if o.id == option_id).store == "IKEA Family"
    store = snapshot.store_for("ikea family")
    assert store is not None
    assert store.id == store_id
    assert store.shipping_cost == 49
    assert store.discount_type is DiscountType.PERCENT


async def test_renamed_store_may_take_a_deleted_stores_name(tracker: Tracker) -> None:
    old = await tracker.create_store("Article")
    new = await tracker.create_store("Article Co")
    assert old is not None
    assert new is not None

    await tracker.delete_store(old)
    await tracker.update_store(new, name="article")

    live = [store.name for store in (await tracker.snapshot()).stores if store.is_live]
    assert live == ["article"]


async def test_delete_store_clears_references(tracker: Tracker) -> None:
    await tracker.snapshot()
    store_id = await tracker.create_store("Wayfair")
    assert store_id is not None
    item_id = await tracker.create_item(name="Rug", store="wayfair")

    await tracker.delete_store(store_id)

    snapshot = await tracker.snapshot()
    assert next(i for i in snapshot.items if i.id == item_id).store is None
    assert next(s for s in snapshot.stores if s.id == store_id).sync_state is SyncState.DELETED
    assert snapshot.ordered_stores() == []


async def test_snapshot_creates_stores_referenced_by_records(tracker: Tracker) -> None:
    await tracker.create_store("IKEA")
    await tracker.snapshot()
    item_id = await tracker.create_item(name="Sofa", store="Article")
    await tracker.create_option(item_id, title="Loveseat", store=" CB2 ")
    await tracker.create_item(name="Bed", store="ikea")
    gone = await tracker.create_item(name="Chair", store="Ghost")
    await tracker.delete_item(gone)

    first = await tracker.snapshot()
    second = await tracker.snapshot()

    assert [store.name for store in first.ordered_stores()] == ["IKEA", "Article", "CB2"]
    assert [store.sort for store in first.ordered_stores()] == [0, 1, 2]
    assert second.stores == first.stores


async def test_store_costs_are_charged_once_per_store(tracker: Tracker) -> None:
    await tracker.snapshot()
    store_id = await tracker.create_store("IKEA")
    assert store_id is not None
    await tracker.update_store(store_id, shipping_cost=50)
    anchor = await tracker.create_item(name="Sofa", store="IKEA", price=500, priority=1)
    follower = await tracker.create_item(name="Lamp", store="IKEA", price=40, priority=2)

    allocation = (await tracker.snapshot()).store_allocation()

    assert allocation.item_totals[anchor] == pytest.approx(550.0)
    assert allocation.item_totals[follower] == pytest.approx(40.0)
    assert allocation.store_totals["ikea"].total == pytest.approx(590.0)


async def test_reorder_stores(tracker: Tracker) -> None:
    first = await tracker.create_store("IKEA")
    second = await tracker.create_store("Article")
    assert first is not None
    assert second is not None

    await tracker.reorder_stores([second])

    assert [s.id for s in (await tracker.snapshot()).ordered_stores()] == [second, first]


async def test_merge_import_keeps_store_keys_unique(tracker: Tracker) -> None:
    ikea = await tracker.create_store("IKEA")
    bundle = {
        "version": 2,
        "exportedAt": "2024-03-01T12:00:00+00:00",
        "rooms": [{"id": "Living", "name": "Living"}],
        "items": [{"id": "i_shelf", "name": "Shelf", "room": "Living", "store": "ikea"}],
        "stores": [
            {"id": "s_other_device", "name": "ikea", "shippingCost": 59},
            {"id": "s_copy", "name": " IKEA "},
        ],
    }

    await tracker.import_bundle(bundle, mode="merge")

    live = [store for store in (await tracker.snapshot()).stores if store.is_live]
    keys = [store_key(store.name) for store in live]
    assert len(keys) == len(set(keys))
    (store,) = live
    assert (store.id, store.name, store.shipping_cost) == (ikea, "IKEA", 59)
