from __future__ import annotations

import json
from typing import Any

from furnitrack.domain.bundle import attachment_key, export_payload, normalize_bundle, to_wire
from furnitrack.domain.model import (
    Actor,
    Attachment,
    ChangeLogEntry,
    DataSource,
    Dimensions,
    DiscountType,
    EntityKind,
    HomeMeta,
    ItemStatus,
    PlannerMeta,
    Provenance,
    ReviewStatus,
)
from tests.helpers.records import AT, make_item, make_measurement, make_option, make_room, make_store


def _payload(**overrides: Any) -> dict[str, Any]:
    item = make_item(
        "i_1",
        status=ItemStatus.SHORTLIST,
        price=899.0,
        qty=2,
        store="IKEA",
        tags=("velvet",),
        dimensions=Dimensions(w_in=84.0, h_in=30.0),
        specs={"seats": 3, "washable": True},
        selected_option_id="o_1",
        provenance=Provenance(
            created_by=Actor.AI,
            data_source=DataSource.ESTIMATED,
            review_status=ReviewStatus.AI_MODIFIED,
            modified_fields=("price",),
            change_log=(
                ChangeLogEntry(field="price", from_value=799.0, to_value=899.0, by=Actor.AI, at=AT),
            ),
        ),
    )
    option = make_option(
        "o_1",
        price=850.0,
        discount_type=DiscountType.PERCENT,
        discount_value=10.0,
        selected=True,
    )
    photo = Attachment(
        id="a_1",
        parent_kind=EntityKind.ITEM,
        parent_id="i_1",
        url="blob:photo",
        name="sofa.jpg",
        mime="image/jpeg",
        size=2048,
        created_at=AT,
        updated_at=AT,
    )
    arguments: dict[str, Any] = {
        "exported_at": AT,
        "session_id": "sess-1",
        "home": HomeMeta(name="Loft", tags=("rental",)),
        "planner": PlannerMeta(merged_at="2024-01-01T00:00:00+00:00", template={"walls": 4}),
        "rooms": [make_room("Living", sort=0, notes="South light")],
        "measurements": [make_measurement("m_1", value_in=96.5)],
        "items": [item],
        "options": [option],
        "stores": [make_store("s_1", shipping_cost=49.0)],
        "attachments": {attachment_key(EntityKind.ITEM, "i_1"): [photo]},
        "app_version": "1.4.0",
    }
    arguments.update(overrides)
    return export_payload(**arguments)


def test_export_payload_uses_camel_case_wire_names() -> None:
    payload = _payload()

    assert payload["version"] == 2
    assert payload["exportedAt"] == "2023-11-14T22:13:20+00:00"
    assert payload["exportMeta"] == {
        "exportedAt": AT,
        "exportedBy": "human",
        "appVersion": "1.4.0",
        "schemaVersion": 2,
        "sessionId": "sess-1",
    }
    item = payload["items"][0]
    assert item["selectedOptionId"] == "o_1"
    assert item["syncState"] == "dirty"
    assert item["dimensions"] == {"wIn": 84.0, "dIn": None, "hIn": 30.0}
    assert item["provenance"]["changeLog"][0]["from"] == 799.0
    assert item["attachments"][0]["url"] == "blob:photo"
    assert payload["options"][0]["attachments"] == []
    assert payload["planner"] == {
        "version": 1,
        "mergedAt": "2024-01-01T00:00:00+00:00",
        "template": {"walls": 4},
    }


def test_export_payload_is_json_serializable() -> None:
    text = json.dumps(_payload())

    assert json.loads(text)["stores"][0]["shippingCost"] == 49.0


def test_exported_bundle_normalizes_back_to_the_same_records() -> None:
    payload = _payload()

    bundle = normalize_bundle(json.loads(json.dumps(payload)), now=AT + 1)

    assert bundle.rooms == (make_room("Living", sort=0, notes="South light"),)
    assert bundle.measurements == (make_measurement("m_1", value_in=96.5),)
    assert bundle.stores == (make_store("s_1", shipping_cost=49.0),)
    (item,) = bundle.items
    assert item.selected_option_id == "o_1"
    assert item.qty == 2
    assert item.dimensions == Dimensions(w_in=84.0, h_in=30.0)
    assert item.provenance is not None
    assert item.provenance.change_log is not None
    assert item.provenance.change_log[0].by is Actor.AI
    assert bundle.options[0].selected
    assert bundle.attachments[attachment_key(EntityKind.ITEM, "i_1")][0].size == 2048
    assert bundle.home == HomeMeta(name="Loft", tags=("rental",))
    assert bundle.planner == PlannerMeta(
        merged_at="2024-01-01T00:00:00+00:00", template={"walls": 4}
    )
    assert bundle.export_meta is not None
    assert bundle.export_meta.exported_by is Actor.HUMAN


def test_to_wire_converts_nested_values() -> None:
    assert to_wire({"kind": EntityKind.OPTION, "tags": ("a", "b")}) == {
        "kind": "option",
        "tags": ["a", "b"],
    }
    assert to_wire(None) is None
