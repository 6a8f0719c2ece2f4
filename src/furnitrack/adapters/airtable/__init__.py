"""Public interface for the Airtable remote record store."""

from __future__ import annotations

from .client import PAGE_SIZE, WRITE_BATCH_SIZE, AirtableRecordStore, RemoteAPIError
from .schema import ErrorResponse, ListRecordsResponse, RecordPayload

__all__ = [
    "PAGE_SIZE",
    "WRITE_BATCH_SIZE",
    "AirtableRecordStore",
    "ErrorResponse",
    "ListRecordsResponse",
    "RecordPayload",
    "RemoteAPIError",
]
