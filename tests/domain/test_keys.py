from __future__ import annotations

from furnitrack.domain.keys import normalize_room_name, normalize_store_name, room_key, store_key


def test_room_names_collapse_whitespace() -> None:
    assert normalize_room_name("  Master   Bedroom ") == "Master Bedroom"
    assert normalize_room_name(None) == ""
    assert room_key(" Living\tRoom ") == "living room"


def test_store_keys_are_trimmed_and_lowercased() -> None:
    assert normalize_store_name("  West Elm ") == "West Elm"
    assert store_key(" IKEA ") == store_key("ikea") == "ikea"
    assert store_key(None) == ""
