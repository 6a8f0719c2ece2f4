"""In-memory stand-in for the remote record table."""

from __future__ import annotations

from itertools import count
from typing import TYPE_CHECKING, Any

from furnitrack.domain.ports import RemoteRecord
from furnitrack.domain.reconciliation.translate import RECORD_TYPE

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from furnitrack.domain.ports import RemoteRecordStore, RemoteUpdate

CREATED_TIME = "2024-01-01T00:00:00.000Z"


class RemoteUnavailableError(RuntimeError):
    """Raised by :class:`FakeRemoteStore` for an operation configured to fail."""


class FakeRemoteStore:
    """Dict-backed remote table that records every call it receives.

    ``hidden_types`` lists the record types a saved view filters out; they are
    only returned when :meth:`list_records` is called without a view.
    """

    def __init__(
        self,
        records: Iterable[RemoteRecord] = (),
        *,
        hidden_types: Iterable[str] = (),
        fail_on: Iterable[str] = (),
    ) -> None:
        self.records: dict[str, RemoteRecord] = {record.id: record for record in records}
        self.hidden_types = set(hidden_types)
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, int]] = []
        self.list_views: list[str | None] = []
        self._ids = count(1)

    def _check(self, operation: str, size: int) -> None:
        self.calls.append((operation, size))
        if operation in self.fail_on:
            raise RemoteUnavailableError(f"{operation} failed")

    def add(self, fields: Mapping[str, Any], *, remote_id: str | None = None) -> RemoteRecord:
        record = RemoteRecord(
            id=remote_id or f"rec{next(self._ids)}",
            fields=dict(fields),
            created_time=CREATED_TIME,
        )
        self.records[record.id] = record
        return record

    def of_type(self, record_type: str) -> list[RemoteRecord]:
        return [r for r in self.records.values() if r.fields.get(RECORD_TYPE) == record_type]

    async def list_records(self, *, view: str | None = None) -> list[RemoteRecord]:
        self.list_views.append(view)
        self._check("list", len(self.records))
        records = list(self.records.values())
        if view is not None:
            records = [r for r in records if r.fields.get(RECORD_TYPE) not in self.hidden_types]
        return records

    async def create_records(self, records: Sequence[Mapping[str, Any]]) -> list[RemoteRecord]:
        self._check("create", len(records))
        return [self.add(fields) for fields in records]

    async def update_records(self, updates: Sequence[RemoteUpdate]) -> list[RemoteRecord]:
        self._check("update", len(updates))
        updated: list[RemoteRecord] = []
        for update in updates:
            current = self.records[update.id]
            record = RemoteRecord(
                id=update.id,
                fields={**current.fields, **update.fields},
                created_time=current.created_time,
            )
            self.records[update.id] = record
            updated.append(record)
        return updated

    async def delete_records(self, record_ids: Sequence[str]) -> list[str]:
        self._check("delete", len(record_ids))
        return [rid for rid in record_ids if self.records.pop(rid, None) is not None]

    def batch_sizes(self, operation: str) -> list[int]:
        return [size for name, size in self.calls if name == operation]


if TYPE_CHECKING:
    _remote_check: RemoteRecordStore = FakeRemoteStore()
