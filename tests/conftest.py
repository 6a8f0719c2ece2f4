from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from furnitrack.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyTrackerUnitOfWork,
    shutdown,
    startup,
)
from furnitrack.domain.tracker import Tracker

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that advances a fixed step on every reading."""

    def __init__(self, start: int = START_MS, step: int = 1_000) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> int:
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def sqlite_engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def sqlite_unit_of_work(
    sqlite_engine: AsyncEngine,
) -> AsyncIterator[Callable[[], SqlAlchemyTrackerUnitOfWork]]:
    await startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyTrackerUnitOfWork:
        return SqlAlchemyTrackerUnitOfWork()

    try:
        yield factory
    finally:
        await shutdown()


@pytest.fixture
def tracker(
    sqlite_unit_of_work: Callable[[], SqlAlchemyTrackerUnitOfWork],
    clock: FakeClock,
) -> Tracker:
    return Tracker(sqlite_unit_of_work, clock=clock)
