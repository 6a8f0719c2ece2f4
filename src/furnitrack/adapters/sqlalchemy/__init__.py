"""SQLAlchemy adapter package for the tracker's local store."""

from __future__ import annotations

from .repositories import (
    SqlAlchemyAttachmentRepository,
    SqlAlchemyEntityRepository,
    SqlAlchemyItemRepository,
    SqlAlchemyMeasurementRepository,
    SqlAlchemyMetaRepository,
    SqlAlchemyOptionRepository,
    SqlAlchemyRoomRepository,
    SqlAlchemyStoreRepository,
)
from .tables import TABLE_BY_KIND, metadata
from .unit_of_work import (
    SqlAlchemyTrackerUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "TABLE_BY_KIND",
    "SqlAlchemyAttachmentRepository",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyItemRepository",
    "SqlAlchemyMeasurementRepository",
    "SqlAlchemyMetaRepository",
    "SqlAlchemyOptionRepository",
    "SqlAlchemyRoomRepository",
    "SqlAlchemyStoreRepository",
    "SqlAlchemyTrackerUnitOfWork",
    "StartupError",
    "configured_engine",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
