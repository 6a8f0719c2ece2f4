"""Correlation between locally generated ids and remote record ids."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from furnitrack.domain.model import EntityKind

from .translate import room_ref

if TYPE_CHECKING:
    from collections.abc import Iterable

    from furnitrack.domain.merge import ExistingRecords

    from .translate import DecodedRecord


def _per_kind() -> dict[EntityKind, dict[str, str]]:
    return {kind: {} for kind in EntityKind}


@dataclass(slots=True)
class IdMap:
    """Two lookup tables per entity kind, ``local -> remote`` and ``remote -> local``."""

    local_to_remote: dict[EntityKind, dict[str, str]] = field(default_factory=_per_kind)
    remote_to_local: dict[EntityKind, dict[str, str]] = field(default_factory=_per_kind)

    def link(self, kind: EntityKind, local_id: str, remote_id: str) -> None:
        self.local_to_remote[kind][local_id] = remote_id
        self.remote_to_local[kind][remote_id] = local_id

    def remote_id(self, kind: EntityKind, local_id: str | None) -> str | None:
        return self.local_to_remote[kind].get(local_id) if local_id else None

    def local_id(self, kind: EntityKind, remote_id: str | None) -> str | None:
        return self.remote_to_local[kind].get(remote_id) if remote_id else None

    @classmethod
    def from_local(cls, existing: ExistingRecords) -> IdMap:
        """Links already recorded on local records."""

        ids = cls()
        for kind, records in existing.items():
            for record in records.values():
                if record.remote_id:
                    ids.link(kind, record.id, record.remote_id)
        return ids

    @classmethod
    def from_pull(cls, decoded: Iterable[DecodedRecord], existing: ExistingRecords) -> IdMap:
        """Assign a local id to every pulled record and link it to its remote id.

        The embedded ``localId`` wins, then a local record already linked to the
        same remote id. Rooms fall back to their room reference, every other kind
        to the remote id itself.
        """

        known = cls.from_local(existing)
        ids = cls()
        for record in decoded:
            local = (
                record.embedded_local_id
                or known.local_id(record.kind, record.remote_id)
                or (room_ref(record) if record.kind is EntityKind.ROOM else record.remote_id)
            )
            ids.link(record.kind, local, record.remote_id)
        return ids
