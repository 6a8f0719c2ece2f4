from __future__ import annotations

import pytest

from furnitrack.domain.diff import FieldChange, diff
from furnitrack.domain.model import (
    DataSource,
    Dimensions,
    DiscountType,
    Provenance,
    ReviewStatus,
    SyncState,
)
from tests.helpers.records import make_item, make_option, make_room, make_store


def test_identical_records_have_no_changes() -> None:
    item = make_item(price=100.0, tags=("velvet",), specs={"seats": 3})

    assert diff(item, item.evolve()) == []


def test_bookkeeping_fields_never_count_as_changes() -> None:
    item = make_item()
    other = item.evolve(
        updated_at=item.updated_at + 10,
        sync_state=SyncState.CLEAN,
        remote_id="rec9",
        provenance=Provenance(review_status=ReviewStatus.VERIFIED),
    )

    assert diff(item, other) == []


def test_whitespace_and_number_formats_are_normalized() -> None:
    before = make_item(notes="Grey", price=100, tags=("a", " b "))
    after = make_item(notes="  Grey  ", price=100.0, tags=(" a", "b", ""))

    assert diff(before, after) == []


def test_changed_fields_use_wire_names_in_order() -> None:
    before = make_item(price=100.0, selected_option_id=None, dimensions=Dimensions(w_in=80))
    after = make_item(
        price=120.0,
        selected_option_id="o_1",
        discount_type=DiscountType.PERCENT,
        dimensions=Dimensions(w_in=84),
    )

    assert diff(before, after) == [
        FieldChange("selectedOptionId", None, "o_1"),
        FieldChange("price", 100.0, 120.0),
        FieldChange("discountType", None, DiscountType.PERCENT),
        FieldChange("dimensions.wIn", 80, 84),
    ]


def test_specs_are_compared_per_key() -> None:
    before = make_item(specs={"seats": 3, "fabric": "linen"})
    after = make_item(specs={"seats": 3, "color": "oat"})

    assert diff(before, after) == [
        FieldChange("specs.color", None, "oat"),
        FieldChange("specs.fabric", "linen", None),
    ]


def test_provenance_source_fields_are_tracked() -> None:
    before = make_room(provenance=Provenance(data_source=DataSource.ESTIMATED))
    after = make_room(provenance=Provenance(data_source=DataSource.CONCRETE, source_ref="tape"))

    assert [change.field for change in diff(before, after)] == [
        "provenance.dataSource",
        "provenance.sourceRef",
    ]


def test_booleans_do_not_equal_numbers() -> None:
    before = make_option(specs={"outdoor": True})
    after = make_option(specs={"outdoor": 1})

    assert diff(before, after) == [FieldChange("specs.outdoor", True, 1)]


def test_store_diff_tracks_policy_fields() -> None:
    before = make_store(shipping_cost=49.0)
    after = make_store(shipping_cost=59.0, trial="100 nights")

    assert [change.field for change in diff(before, after)] == ["shippingCost", "trial"]


def test_diff_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        diff(object(), object())
