"""SQLAlchemy-backed unit of work for the tracker's local store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from furnitrack.adapters.sqlalchemy.repositories import (
    SqlAlchemyAttachmentRepository,
    SqlAlchemyItemRepository,
    SqlAlchemyMeasurementRepository,
    SqlAlchemyMetaRepository,
    SqlAlchemyOptionRepository,
    SqlAlchemyRoomRepository,
    SqlAlchemyStoreRepository,
)
from furnitrack.adapters.sqlalchemy.tables import metadata
from furnitrack.config.storage import get_database_config
from furnitrack.domain.ports import TrackerRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.ext.asyncio import AsyncEngine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: AsyncEngine | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    @engine.setter
    def engine(self, value: AsyncEngine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call furnitrack.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _create_engine(database_uri: str | None) -> AsyncEngine:
    if database_uri is not None:
        return create_async_engine(database_uri)
    config = get_database_config()
    return create_async_engine(config.uri, echo=config.echo)


async def startup(
    *,
    engine: AsyncEngine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the async engine, create missing tables, reset the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or _create_engine(database_uri)
    async with resolved_engine.begin() as connection:
        await connection.run_sync(metadata.create_all)

    if _STATE.engine is not None and _STATE.engine is not resolved_engine:
        await _STATE.engine.dispose()
    _STATE.engine = resolved_engine


def configured_engine() -> AsyncEngine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


async def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        await _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyTrackerUnitOfWork:
    """Async unit of work handing out one session's worth of tracker repositories."""

    def __init__(self) -> None:
        self.session_factory: async_sessionmaker[AsyncSession] = _STATE.session_factory
        self._session: AsyncSession | None = None
        self._repositories: TrackerRepositories | None = None

    def _build_repositories(self, session: AsyncSession) -> TrackerRepositories:
        return TrackerRepositories(
            rooms=SqlAlchemyRoomRepository(session),
            measurements=SqlAlchemyMeasurementRepository(session),
            items=SqlAlchemyItemRepository(session),
            options=SqlAlchemyOptionRepository(session),
            stores=SqlAlchemyStoreRepository(session),
            attachments=SqlAlchemyAttachmentRepository(session),
            meta=SqlAlchemyMetaRepository(session),
        )

    async def __aenter__(self) -> SqlAlchemyTrackerUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = self.session_factory()
        self._repositories = self._build_repositories(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        if exc_type is not None:
            await session.rollback()
        await session.close()
        self._session = None
        self._repositories = None
        return False

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    @property
    def repositories(self) -> TrackerRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


if TYPE_CHECKING:
    from furnitrack.domain.ports import TrackerUnitOfWork

    _uow_check: TrackerUnitOfWork = SqlAlchemyTrackerUnitOfWork()
