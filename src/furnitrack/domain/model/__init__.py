"""Entity model for the furnishing tracker."""

from __future__ import annotations

from .entity import Entity
from .enums import (
    Actor,
    Confidence,
    DataSource,
    DiscountType,
    EntityKind,
    ImportMode,
    ItemStatus,
    ReviewStatus,
    SyncState,
    UnitPreference,
    parse_enum,
)
from .furnishing import ENTITY_CLASSES, AnyEntity, Item, Measurement, Option, Room, Store
from .meta import (
    DEFAULT_ROOM_NAMES,
    Attachment,
    ExportMeta,
    HomeMeta,
    MetaKey,
    PlannerMeta,
    SyncSummary,
    make_default_rooms,
)
from .primitives import (
    INCHES_TO_CM,
    Dimensions,
    SpecValue,
    Specs,
    cm_to_inches,
    inches_to_cm,
    new_id,
    now_ms,
)
from .provenance import (
    ChangeLogEntry,
    Provenance,
    human_created,
    human_edited,
    imported_change,
    imported_new,
    mark_needs_review,
    mark_verified,
    merge_modified_fields,
)

__all__ = [
    "DEFAULT_ROOM_NAMES",
    "ENTITY_CLASSES",
    "INCHES_TO_CM",
    "Actor",
    "AnyEntity",
    "Attachment",
    "ChangeLogEntry",
    "Confidence",
    "DataSource",
    "Dimensions",
    "DiscountType",
    "Entity",
    "EntityKind",
    "ExportMeta",
    "HomeMeta",
    "ImportMode",
    "Item",
    "ItemStatus",
    "Measurement",
    "MetaKey",
    "Option",
    "PlannerMeta",
    "Provenance",
    "ReviewStatus",
    "Room",
    "SpecValue",
    "Specs",
    "Store",
    "SyncState",
    "SyncSummary",
    "UnitPreference",
    "cm_to_inches",
    "human_created",
    "human_edited",
    "imported_change",
    "imported_new",
    "inches_to_cm",
    "make_default_rooms",
    "mark_needs_review",
    "mark_verified",
    "merge_modified_fields",
    "new_id",
    "now_ms",
    "parse_enum",
]
