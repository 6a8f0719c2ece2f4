"""Ports for the remote record store the tracker synchronizes with."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


@dataclass(slots=True, frozen=True)
class RemoteRecord:
    """One remote row: its persistent id plus the flat field map."""

    id: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    created_time: str | None = None


@dataclass(slots=True, frozen=True)
class RemoteUpdate:
    id: str
    fields: Mapping[str, Any]


@runtime_checkable
class RemoteRecordStore(Protocol):
    """Remote table operations; each write call carries at most one batch.

    Created records come back in request order, which is how callers correlate
    them with the local records they were built from.
    """

    async def list_records(self, *, view: str | None = None) -> list[RemoteRecord]: ...

    async def create_records(
        self, records: Sequence[Mapping[str, Any]]
    ) -> list[RemoteRecord]: ...

    async def update_records(self, updates: Sequence[RemoteUpdate]) -> list[RemoteRecord]: ...

    async def delete_records(self, record_ids: Sequence[str]) -> list[str]: ...
