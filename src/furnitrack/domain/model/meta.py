"""Project-level metadata stored beside the entity tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from .enums import Actor, EntityKind
from .furnishing import Room


class MetaKey(StrEnum):
    """Keys of the JSON values stored beside the entity tables."""

    HOME = "home"
    PLANNER = "planner"
    UNIT_PREFERENCE = "unitPreference"
    LAST_SYNC_AT = "lastSyncAt"
    LAST_SYNC_SUMMARY = "lastSyncSummary"


DEFAULT_ROOM_NAMES: tuple[str, ...] = (
    "Living",
    "Dining",
    "Master",
    "Bedroom2",
    "Balcony",
    "Entry",
    "Kitchen",
    "Bath",
)


@dataclass(slots=True, frozen=True, kw_only=True)
class HomeMeta:
    name: str = "My Home"
    tags: tuple[str, ...] = ()
    description: str = ""


@dataclass(slots=True, frozen=True, kw_only=True)
class PlannerMeta:
    """Opaque planner template plus when it was merged in."""

    version: int = 1
    merged_at: str = field(default_factory=lambda: datetime.now(tz=UTC).isoformat())
    template: object = None


@dataclass(slots=True, frozen=True, kw_only=True)
class SyncSummary:
    push: dict[str, int] = field(default_factory=dict)
    pull: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True, frozen=True, kw_only=True)
class Attachment:
    """Metadata for a file linked to an item or option; blobs live elsewhere."""

    id: str
    parent_kind: EntityKind
    parent_id: str
    url: str
    name: str | None = None
    mime: str | None = None
    size: int | None = None
    created_at: int
    updated_at: int

    @property
    def parent_key(self) -> str:
        return f"{self.parent_kind}:{self.parent_id}"


@dataclass(slots=True, frozen=True, kw_only=True)
class ExportMeta:
    exported_at: int
    exported_by: Actor | None = None
    app_version: str | None = None
    schema_version: int = 1
    session_id: str | None = None


def make_default_rooms(at: int) -> tuple[Room, ...]:
    """Starter rooms, keyed by their own names."""

    return tuple(
        Room(id=name, name=name, sort=idx, created_at=at, updated_at=at)
        for idx, name in enumerate(DEFAULT_ROOM_NAMES)
    )
