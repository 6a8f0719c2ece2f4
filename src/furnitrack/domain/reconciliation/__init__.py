"""Reconciliation between local records and the flat remote record table."""

from __future__ import annotations

from .idmap import IdMap
from .metadata import META_END, META_START, DecodedNotes, decode_notes, encode_notes
from .pull import PulledGraph, build_graph, fetch_records, is_partial_graph, pull
from .push import BATCH_SIZE, PushAction, PushOutcome, push
from .sync import SyncReport, sync_now
from .translate import (
    KIND_BY_RECORD_TYPE,
    RECORD_TYPES,
    DecodedRecord,
    decode_record,
    local_entity,
    parse_dimensions,
    remote_fields,
)

__all__ = [
    "BATCH_SIZE",
    "KIND_BY_RECORD_TYPE",
    "META_END",
    "META_START",
    "RECORD_TYPES",
    "DecodedNotes",
    "DecodedRecord",
    "IdMap",
    "PulledGraph",
    "PushAction",
    "PushOutcome",
    "SyncReport",
    "build_graph",
    "decode_notes",
    "decode_record",
    "encode_notes",
    "fetch_records",
    "is_partial_graph",
    "local_entity",
    "parse_dimensions",
    "pull",
    "push",
    "remote_fields",
    "sync_now",
]
