"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    AttachmentRepository,
    EntityRepository,
    ItemRepository,
    MeasurementRepository,
    MetaRepository,
    OptionRepository,
    RoomRepository,
    StoreRepository,
)
from .remote import RemoteRecord, RemoteRecordStore, RemoteUpdate
from .unit_of_work import (
    RepositoryCollection,
    TrackerRepositories,
    TrackerUnitOfWork,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "AttachmentRepository",
    "EntityRepository",
    "ItemRepository",
    "MeasurementRepository",
    "MetaRepository",
    "OptionRepository",
    "RemoteRecord",
    "RemoteRecordStore",
    "RemoteUpdate",
    "RepositoryCollection",
    "RoomRepository",
    "StoreRepository",
    "TrackerRepositories",
    "TrackerUnitOfWork",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
