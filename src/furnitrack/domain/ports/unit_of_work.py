"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from furnitrack.domain.model import EntityKind

if TYPE_CHECKING:
    from types import TracebackType

    from furnitrack.domain.ports.persistence import (
        AttachmentRepository,
        EntityRepository,
        ItemRepository,
        MeasurementRepository,
        MetaRepository,
        OptionRepository,
        RoomRepository,
        StoreRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Async transaction boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    async def __aenter__(self) -> UnitOfWork[TRepositories]: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


@dataclass(slots=True)
class TrackerRepositories(RepositoryCollection):
    """Every store the tracker reads and writes."""

    rooms: RoomRepository
    measurements: MeasurementRepository
    items: ItemRepository
    options: OptionRepository
    stores: StoreRepository
    attachments: AttachmentRepository
    meta: MetaRepository

    def for_kind(self, kind: EntityKind) -> EntityRepository:  # type: ignore[type-arg]
        match kind:
            case EntityKind.ROOM:
                return self.rooms
            case EntityKind.MEASUREMENT:
                return self.measurements
            case EntityKind.ITEM:
                return self.items
            case EntityKind.OPTION:
                return self.options
            case EntityKind.STORE:
                return self.stores


type TrackerUnitOfWork = UnitOfWork[TrackerRepositories]
type UnitOfWorkFactory = Callable[[], TrackerUnitOfWork]
