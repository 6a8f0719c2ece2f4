"""Codec for the JSON block embedded in a remote record's free-text notes.

The remote table has one free-text ``Notes`` field. Everything the local model
needs beyond the typed columns travels there, after the human-visible notes,
between two delimiter lines::

    Measure twice.

    --- app_meta ---
    {"localId":"i_...","category":"Sofa"}
    --- /app_meta ---

Decoding uses the last occurrence of each delimiter, so text pasted above an
older block never confuses it, and never raises.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any

log = getLogger(__name__)

META_START = "--- app_meta ---"
META_END = "--- /app_meta ---"


@dataclass(slots=True, frozen=True)
class DecodedNotes:
    notes: str
    meta: Mapping[str, Any] | None = field(default=None)


def encode_notes(notes: str | None, meta: Mapping[str, Any] | None) -> str:
    """Human notes followed by the metadata block; an empty block is omitted."""

    user_notes = (notes or "").rstrip()
    if not meta:
        return user_notes
    block = f"{META_START}\n{json.dumps(dict(meta), separators=(',', ':'))}\n{META_END}"
    return f"{user_notes}\n\n{block}" if user_notes else block


def decode_notes(text: object) -> DecodedNotes:
    """Split ``text`` into human notes and the decoded metadata object.

    Text outside the block, before or after it, is kept as notes. A missing,
    malformed or non-object block yields ``meta=None``.
    """

    raw = text if isinstance(text, str) else ""
    start = raw.rfind(META_START)
    end = raw.rfind(META_END)
    if start == -1 or end == -1 or end < start:
        return DecodedNotes(raw)

    before = raw[:start].rstrip()
    after = raw[end + len(META_END) :].strip()
    notes = f"{before}\n\n{after}" if before and after else before or after

    payload = raw[start + len(META_START) : end].strip()
    if not payload:
        return DecodedNotes(notes)
    try:
        meta = json.loads(payload)
    except json.JSONDecodeError:
        log.debug("Ignoring malformed metadata block")
        return DecodedNotes(notes)
    return DecodedNotes(notes, meta if isinstance(meta, dict) else None)
