"""Errors raised by tracker operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class UnrecognizedBundleError(ValueError):
    """Raised when an import payload matches none of the known bundle shapes."""

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self.keys = tuple(keys)
        suffix = f" (keys: {', '.join(self.keys)})" if self.keys else ""
        super().__init__(f"Unrecognized import format{suffix}")


class StoreNameConflictError(ValueError):
    """Raised when a store rename collides with another live store."""

    def __init__(self, existing_name: str) -> None:
        self.existing_name = existing_name
        super().__init__(f"Store name already exists: {existing_name}")


class RoomNotEmptyError(ValueError):
    """Raised when deleting a room that still has live children and no destination."""

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__("Room has items or measurements. Choose a destination room.")


class InvalidConversionError(ValueError):
    """Raised when an item cannot be converted into an option of another item."""


class DuplicateOptionError(ValueError):
    """Raised when converting an item that already exists as an option of the parent."""

    def __init__(self) -> None:
        super().__init__("Option already exists for this item.")


class EntityNotFoundError(LookupError):
    """Raised when an operation requires a record that does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class RoomNameConflictError(ValueError):
    """Raised when a room rename collides with another live room."""

    def __init__(self, existing_name: str) -> None:
        self.existing_name = existing_name
        super().__init__(f"Room name already exists: {existing_name}")
