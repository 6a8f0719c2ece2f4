"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING

from furnitrack.domain.model import (
    Actor,
    Attachment,
    ChangeLogEntry,
    Confidence,
    Dimensions,
    DiscountType,
    EntityKind,
    ItemStatus,
    MetaKey,
    Provenance,
    ReviewStatus,
    SyncState,
)
from tests.helpers.records import (
    AT,
    clean,
    make_item,
    make_measurement,
    make_option,
    make_room,
    make_store,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from furnitrack.adapters.sqlalchemy import SqlAlchemyTrackerUnitOfWork


def _attachment(attachment_id: str, parent_id: str, created_at: int) -> Attachment:
    return Attachment(
        id=attachment_id,
        parent_kind=EntityKind.ITEM,
        parent_id=parent_id,
        url=f"blob:{attachment_id}",
        created_at=created_at,
        updated_at=created_at,
    )


async def test_records_round_trip_with_every_column_type(
    sqlite_unit_of_work: Callable[[], SqlAlchemyTrackerUnitOfWork],
) -> None:
    item = make_item(
        "i_1",
        status=ItemStatus.DELIVERED,
        price=1200.0,
        discount_type=DiscountType.PERCENT,
        discount_value=15.0,
        qty=2,
        tags=("oak", "mid-century"),
        dimensions=Dimensions(w_in=60.0, d_in=None, h_in=30.0),
        specs={"finish": "oiled", "seats": 6, "extendable": True},
        provenance=Provenance(
            created_by=Actor.AI,
            review_status=ReviewStatus.AI_MODIFIED,
            modified_fields=("price",),
            change_log=(
                ChangeLogEntry(
                    field="price", from_value=1100.0, to_value=1200.0, by=Actor.AI, at=AT
                ),
            ),
        ),
    )
    records = [
        make_room("Den", sort=2.5, notes="Bay window"),
        make_measurement("m_1", confidence=Confidence.LOW, for_item_id="i_1"),
        item,
        clean(make_option("o_1", selected=True, dimensions_text="60x40x30"), "rec9"),
        make_store("s_1", sync_state=SyncState.DELETED, shipping_cost=0.0),
    ]

    async with sqlite_unit_of_work() as uow:
        for record in records:
            await uow.repositories.for_kind(record.kind).put(record)
        await uow.commit()

    async with sqlite_unit_of_work() as uow:
        for record in records:
            assert await uow.repositories.for_kind(record.kind).get(record.id) == record


async def test_put_overwrites_and_list_keeps_insertion_order(
    sqlite_unit_of_work: Callable[[], SqlAlchemyTrackerUnitOfWork],
) -> None:
    async with sqlite_unit_of_work() as uow:
        rooms = uow.repositories.rooms
        await rooms.put_many([make_room("Living"), make_room("Den"), make_room("Attic")])
        await rooms.put(make_room("Living", name="Lounge"))
        await rooms.purge(["Attic", "Nowhere"])
        await uow.commit()

    async with sqlite_unit_of_work() as uow:
        listed = await uow.repositories.rooms.list_all()

    assert [(room.id, room.name) for room in listed] == [("Living", "Lounge"), ("Den", "Den")]


async def test_attachments_follow_their_parent(
    sqlite_unit_of_work: Callable[[], SqlAlchemyTrackerUnitOfWork],
) -> None:
    async with sqlite_unit_of_work() as uow:
        attachments = uow.repositories.attachments
        await attachments.put(_attachment("a_2", "i_1", AT + 1))
        await attachments.put(_attachment("a_1", "i_1", AT))
        await attachments.put(_attachment("a_3", "i_2", AT))
        moved = await attachments.move_parent(EntityKind.ITEM, "i_1", EntityKind.OPTION, "o_1")
        await attachments.delete("a_3")
        await uow.commit()

    async with sqlite_unit_of_work() as uow:
        attachments = uow.repositories.attachments
        on_option = await attachments.list_for_parent(EntityKind.OPTION, "o_1")
        on_item = await attachments.list_for_parent(EntityKind.ITEM, "i_1")
        everything = await attachments.list_all()

    assert moved == 2
    assert [a.id for a in on_option] == ["a_1", "a_2"]
    assert on_item == []
    assert [a.id for a in everything] == ["a_2", "a_1"]


async def test_meta_values_are_json(
    sqlite_unit_of_work: Callable[[], SqlAlchemyTrackerUnitOfWork],
) -> None:
    async with sqlite_unit_of_work() as uow:
        meta = uow.repositories.meta
        await meta.set(MetaKey.HOME, {"name": "Loft", "tags": ["rental"]})
        await meta.set(MetaKey.LAST_SYNC_AT, AT)
        await meta.set(MetaKey.LAST_SYNC_AT, AT + 1)
        await uow.commit()

    async with sqlite_unit_of_work() as uow:
        meta = uow.repositories.meta
        assert await meta.get(MetaKey.HOME) == {"name": "Loft", "tags": ["rental"]}
        assert await meta.get(MetaKey.LAST_SYNC_AT) == AT + 1
        assert await meta.get(MetaKey.PLANNER) is None
        await meta.clear()
        assert await meta.get(MetaKey.HOME) is None
