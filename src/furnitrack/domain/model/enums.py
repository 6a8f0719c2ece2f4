"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SyncState(StrEnum):
    CLEAN = "clean"
    DIRTY = "dirty"
    DELETED = "deleted"


class Actor(StrEnum):
    HUMAN = "human"
    AI = "ai"
    IMPORT = "import"
    SYSTEM = "system"


class DataSource(StrEnum):
    CONCRETE = "concrete"
    ESTIMATED = "estimated"


class ReviewStatus(StrEnum):
    NEEDS_REVIEW = "needs_review"
    VERIFIED = "verified"
    AI_MODIFIED = "ai_modified"


class ItemStatus(StrEnum):
    IDEA = "Idea"
    SHORTLIST = "Shortlist"
    SELECTED = "Selected"
    ORDERED = "Ordered"
    DELIVERED = "Delivered"
    INSTALLED = "Installed"


class DiscountType(StrEnum):
    AMOUNT = "amount"
    PERCENT = "percent"


class Confidence(StrEnum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


class EntityKind(StrEnum):
    """Discriminator for the five persisted record kinds."""

    ROOM = "room"
    MEASUREMENT = "measurement"
    ITEM = "item"
    OPTION = "option"
    STORE = "store"


class UnitPreference(StrEnum):
    INCHES = "in"
    CENTIMETERS = "cm"


class ImportMode(StrEnum):
    MERGE = "merge"
    REPLACE = "replace"


def parse_enum[E: StrEnum](enum_type: type[E], value: object) -> E | None:
    """Return the member whose value equals ``value`` (trimmed), else ``None``."""

    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_type(value.strip())
    except ValueError:
        return None
