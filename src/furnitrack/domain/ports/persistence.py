"""Ports for persisting tracker records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from furnitrack.domain.model import Item, Measurement, Option, Room, Store

if TYPE_CHECKING:
    from collections.abc import Iterable

    from furnitrack.domain.model import Attachment, EntityKind


@runtime_checkable
class EntityRepository[TEntity](Protocol):
    """Keyed record store; ``put`` replaces the whole record."""

    async def get(self, entity_id: str) -> TEntity | None: ...

    async def list_all(self) -> list[TEntity]: ...

    async def put(self, entity: TEntity) -> None: ...

    async def put_many(self, entities: Iterable[TEntity]) -> None: ...

    async def purge(self, entity_ids: Iterable[str]) -> None: ...

    async def clear(self) -> None: ...


@runtime_checkable
class RoomRepository(EntityRepository[Room], Protocol):
    """Repository contract for rooms."""


@runtime_checkable
class MeasurementRepository(EntityRepository[Measurement], Protocol):
    """Repository contract for measurements."""


@runtime_checkable
class ItemRepository(EntityRepository[Item], Protocol):
    """Repository contract for items."""


@runtime_checkable
class OptionRepository(EntityRepository[Option], Protocol):
    """Repository contract for options."""


@runtime_checkable
class StoreRepository(EntityRepository[Store], Protocol):
    """Repository contract for stores."""


@runtime_checkable
class AttachmentRepository(Protocol):
    """Attachment metadata grouped by parent record."""

    async def list_for_parent(self, parent_kind: EntityKind, parent_id: str) -> list[Attachment]: ...

    async def list_all(self) -> list[Attachment]: ...

    async def put(self, attachment: Attachment) -> None: ...

    async def delete(self, attachment_id: str) -> None: ...

    async def move_parent(
        self,
        from_kind: EntityKind,
        from_id: str,
        to_kind: EntityKind,
        to_id: str,
    ) -> int: ...

    async def clear(self) -> None: ...


@runtime_checkable
class MetaRepository(Protocol):
    """JSON values stored under well-known keys."""

    async def get(self, key: str) -> object | None: ...

    async def set(self, key: str, value: object) -> None: ...

    async def clear(self) -> None: ...
