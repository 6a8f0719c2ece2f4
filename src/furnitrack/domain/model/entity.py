"""Shared shape of every persisted record."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, ClassVar, Self

from .enums import EntityKind, SyncState
from .provenance import Provenance


@dataclass(slots=True, frozen=True, kw_only=True)
class Entity:
    """Base record: identity, sync bookkeeping, ordering and provenance.

    Records are immutable; every mutation produces a new instance that the caller
    writes back in full.
    """

    kind: ClassVar[EntityKind]
    id_prefix: ClassVar[str]

    id: str
    created_at: int
    updated_at: int
    remote_id: str | None = None
    sync_state: SyncState = SyncState.DIRTY
    sort: float | None = None
    provenance: Provenance | None = None

    @property
    def is_live(self) -> bool:
        return self.sync_state is not SyncState.DELETED

    @property
    def is_clean(self) -> bool:
        return self.sync_state is SyncState.CLEAN

    def touched(self, at: int, **changes: Any) -> Self:
        """Apply ``changes`` and mark the record as a pending local mutation.

        A tombstone stays deleted: edits never bring a record back to life.
        """

        state = SyncState.DIRTY if self.is_live else self.sync_state
        return replace(self, **changes, updated_at=at, sync_state=state)

    def tombstoned(self, at: int) -> Self:
        return replace(self, updated_at=at, sync_state=SyncState.DELETED)

    def evolve(self, **changes: Any) -> Self:
        return replace(self, **changes)
