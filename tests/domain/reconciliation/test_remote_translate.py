from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from furnitrack.domain.model import (
    Confidence,
    Dimensions,
    DiscountType,
    EntityKind,
    ItemStatus,
    Provenance,
    ReviewStatus,
    SyncState,
)
from furnitrack.domain.ports import RemoteRecord
from furnitrack.domain.reconciliation import (
    decode_notes,
    decode_record,
    local_entity,
    parse_dimensions,
    remote_fields,
)
from furnitrack.domain.reconciliation.translate import (
    NOTES,
    PARENT_ITEM,
    PRIORITY,
    RECORD_TYPE,
    ROOM,
    SELECTED_OPTION,
    TITLE,
    UNIT_ENTERED,
    VALUE,
    VALUE_CM,
    VALUE_IN,
)
from tests.helpers.records import AT, make_item, make_measurement, make_option, make_room, make_store

if TYPE_CHECKING:
    from typing import Any

    from furnitrack.domain.model import AnyEntity

NOW = AT + 60_000

REMOTE_IDS = {
    (EntityKind.ITEM, "i_1"): "recItem",
    (EntityKind.OPTION, "o_1"): "recOption",
}
LOCAL_IDS = {(kind, remote): local for (kind, local), remote in REMOTE_IDS.items()}


def _resolve_remote(kind: EntityKind, local_id: str | None) -> str | None:
    return REMOTE_IDS.get((kind, local_id or ""))


def _resolve_local(kind: EntityKind, remote_id: str | None) -> str | None:
    return LOCAL_IDS.get((kind, remote_id or ""))


def _round_trip(entity: AnyEntity, remote_id: str = "recX") -> AnyEntity:
    fields = remote_fields(entity, _resolve_remote)
    decoded = decode_record(RemoteRecord(id=remote_id, fields=fields))
    assert decoded is not None
    return local_entity(decoded, local_id=entity.id, resolve_local=_resolve_local, now=NOW)


@pytest.mark.parametrize(
    "entity",
    [
        make_room("Den", name="Study", notes="North light", sort=3),
        make_store(
            "s_1",
            name="Article",
            shipping_cost=49.0,
            discount_type=DiscountType.PERCENT,
            discount_value=10.0,
            trial="30 days",
        ),
        make_measurement(
            "m_1", room="Den", label="Wall", value_in=144.0, confidence=Confidence.HIGH
        ),
        make_item(
            "i_1",
            room="Den",
            price=899.0,
            qty=2,
            status=ItemStatus.SHORTLIST,
            store="Article",
            notes="Check fabric",
            priority=1.0,
            tags=("boucle",),
            dimensions=Dimensions(w_in=84.0, d_in=36.0, h_in=30.0),
            specs={"seats": 3},
            selected_option_id="o_1",
            provenance=Provenance(review_status=ReviewStatus.VERIFIED, verified_at=AT),
        ),
        make_option(
            "o_1",
            item_id="i_1",
            title="Oat",
            price=850.0,
            discount=50.0,
            discount_type=DiscountType.AMOUNT,
            discount_value=50.0,
            selected=True,
            tags=("warm",),
        ),
    ],
    ids=lambda entity: str(entity.kind),
)
def test_records_survive_the_remote_row_format(entity: AnyEntity) -> None:
    assert _round_trip(entity) == entity.evolve(sync_state=SyncState.CLEAN, remote_id="recX")


def test_room_row_is_keyed_by_room_reference() -> None:
    fields = remote_fields(make_room("Den", name="Study"), _resolve_remote)

    assert fields[RECORD_TYPE] == "Note"
    assert fields[TITLE] == "Den notes"
    assert fields[ROOM] == "Den"
    assert decode_notes(fields[NOTES]).meta == {
        "localId": "Den",
        "createdAt": AT,
        "updatedAt": AT,
        "name": "Study",
    }


def test_links_use_remote_ids() -> None:
    item_fields = remote_fields(make_item("i_1", selected_option_id="o_1"), _resolve_remote)
    option_fields = remote_fields(make_option("o_1", item_id="i_1"), _resolve_remote)
    orphan_fields = remote_fields(make_option("o_2", item_id="i_unsynced"), _resolve_remote)

    assert item_fields[SELECTED_OPTION] == "recOption"
    assert option_fields[PARENT_ITEM] == "recItem"
    assert orphan_fields[PARENT_ITEM] is None


def test_fractional_item_priority_survives_while_the_column_is_untouched() -> None:
    item = make_item("i_1", priority=2.5)
    fields = remote_fields(item, _resolve_remote)

    assert fields[PRIORITY] == 2
    assert _round_trip(item).priority == 2.5

    edited = decode_record(RemoteRecord(id="recX", fields={**fields, PRIORITY: 4}))
    assert edited is not None
    pulled = local_entity(edited, local_id="i_1", resolve_local=_resolve_local, now=NOW)
    assert pulled.priority == 4


def test_measurement_row_carries_both_units() -> None:
    fields = remote_fields(make_measurement(value_in=100.0), _resolve_remote)

    assert fields[VALUE_IN] == 100.0
    assert fields[VALUE_CM] == pytest.approx(254.0)


def test_unknown_record_type_is_skipped() -> None:
    assert decode_record(RemoteRecord(id="rec1", fields={RECORD_TYPE: "Invoice"})) is None
    assert decode_record(RemoteRecord(id="rec2", fields={TITLE: "untyped"})) is None


def test_rows_written_by_hand_get_sensible_defaults() -> None:
    fields: dict[str, Any] = {
        RECORD_TYPE: " Item ",
        TITLE: "Bookcase",
        "Status": "Ordered",
        "Price": "$1,200",
        "Quantity": 0,
        "Dimensions": "36 x 12 x 80 in",
        NOTES: "Bought at the flea market",
    }
    decoded = decode_record(RemoteRecord(id="recHand", fields=fields, created_time="2024"))
    assert decoded is not None

    item = local_entity(decoded, local_id="recHand", resolve_local=_resolve_local, now=NOW)

    assert item.id == "recHand"
    assert item.remote_id == "recHand"
    assert item.sync_state is SyncState.CLEAN
    assert (item.created_at, item.updated_at) == (NOW, NOW)
    assert item.room == "Living"
    assert item.category == "Other"
    assert item.status is ItemStatus.ORDERED
    assert item.price == 1200.0
    assert item.qty == 1
    assert item.dimensions == Dimensions(w_in=36.0, d_in=12.0, h_in=80.0)
    assert item.notes == "Bought at the flea market"


def test_pulled_option_resolves_parent_through_remote_id() -> None:
    decoded = decode_record(
        RemoteRecord(
            id="recOpt",
            fields={RECORD_TYPE: "Option", TITLE: "Green", PARENT_ITEM: "recItem", "Discount": 30},
        )
    )
    assert decoded is not None

    option = local_entity(decoded, local_id="o_9", resolve_local=_resolve_local, now=NOW)

    assert option.item_id == "i_1"
    assert option.discount_type is DiscountType.AMOUNT
    assert option.discount_value == 30.0
    assert option.selected is False


def test_measurement_entered_in_centimeters() -> None:
    decoded = decode_record(
        RemoteRecord(
            id="recM",
            fields={RECORD_TYPE: "Measurement", VALUE: 254, UNIT_ENTERED: "cm", ROOM: "Den"},
        )
    )
    assert decoded is not None

    measurement = local_entity(decoded, local_id="recM", resolve_local=_resolve_local, now=NOW)

    assert measurement.value_in == pytest.approx(100.0)
    assert measurement.room == "Den"
    assert measurement.label == "Measurement"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("84x36x30", Dimensions(w_in=84.0, d_in=36.0, h_in=30.0)),
        ("84.5 × 36 X 30 in", Dimensions(w_in=84.5, d_in=36.0, h_in=30.0)),
        ("84x36", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_dimensions(text: object, expected: Dimensions | None) -> None:
    assert parse_dimensions(text) == expected
