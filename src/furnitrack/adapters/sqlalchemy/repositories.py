"""Repository implementations backed by SQLAlchemy async sessions."""

from __future__ import annotations

from dataclasses import fields
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, literal_column, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from furnitrack.adapters.sqlalchemy.tables import TABLE_BY_KIND, attachments_table, meta_table
from furnitrack.domain.model import Attachment, Entity, Item, Measurement, Option, Room, Store

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Row, Table
    from sqlalchemy.ext.asyncio import AsyncSession

    from furnitrack.domain.model import EntityKind

_ROWID = literal_column("rowid")


def _as_row(record: object) -> dict[str, Any]:
    return {f.name: getattr(record, f.name) for f in fields(cast("Any", record))}


def _as_values(row: Row[Any]) -> dict[str, Any]:
    return dict(row._mapping)  # noqa: SLF001


async def _upsert(session: AsyncSession, table: Table, rows: Sequence[dict[str, Any]]) -> None:
    if not rows:
        return
    stmt = sqlite_insert(table)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(table.primary_key.columns),
        set_={
            column.name: stmt.excluded[column.name]
            for column in table.columns
            if not column.primary_key
        },
    )
    await session.execute(stmt, list(rows))


class SqlAlchemyEntityRepository[TEntity: Entity]:
    """Whole-record upserts for one entity kind."""

    def __init__(self, session: AsyncSession, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls
        self._table = TABLE_BY_KIND[entity_cls.kind]

    def _from_row(self, row: Row[Any]) -> TEntity:
        return self._entity_cls(**_as_values(row))

    async def get(self, entity_id: str) -> TEntity | None:
        stmt = select(self._table).where(self._table.c.id == entity_id)
        row = (await self.session.execute(stmt)).one_or_none()
        return None if row is None else self._from_row(row)

    async def list_all(self) -> list[TEntity]:
        stmt = select(self._table).order_by(_ROWID)
        return [self._from_row(row) for row in (await self.session.execute(stmt)).all()]

    async def put(self, entity: TEntity) -> None:
        await self.put_many([entity])

    async def put_many(self, entities: Iterable[TEntity]) -> None:
        await _upsert(self.session, self._table, [_as_row(entity) for entity in entities])

    async def purge(self, entity_ids: Iterable[str]) -> None:
        ids = list(entity_ids)
        if ids:
            await self.session.execute(delete(self._table).where(self._table.c.id.in_(ids)))

    async def clear(self) -> None:
        await self.session.execute(delete(self._table))


class SqlAlchemyRoomRepository(SqlAlchemyEntityRepository[Room]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Room)


class SqlAlchemyMeasurementRepository(SqlAlchemyEntityRepository[Measurement]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Measurement)


class SqlAlchemyItemRepository(SqlAlchemyEntityRepository[Item]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Item)


class SqlAlchemyOptionRepository(SqlAlchemyEntityRepository[Option]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Option)


class SqlAlchemyStoreRepository(SqlAlchemyEntityRepository[Store]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Store)


class SqlAlchemyAttachmentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_parent(self, parent_kind: EntityKind, parent_id: str) -> list[Attachment]:
        stmt = (
            select(attachments_table)
            .where(attachments_table.c.parent_kind == parent_kind)
            .where(attachments_table.c.parent_id == parent_id)
            .order_by(attachments_table.c.created_at, _ROWID)
        )
        rows = (await self.session.execute(stmt)).all()
        return [Attachment(**_as_values(row)) for row in rows]

    async def list_all(self) -> list[Attachment]:
        stmt = select(attachments_table).order_by(_ROWID)
        return [Attachment(**_as_values(row)) for row in (await self.session.execute(stmt)).all()]

    async def put(self, attachment: Attachment) -> None:
        await _upsert(self.session, attachments_table, [_as_row(attachment)])

    async def delete(self, attachment_id: str) -> None:
        await self.session.execute(
            delete(attachments_table).where(attachments_table.c.id == attachment_id)
        )

    async def move_parent(
        self,
        from_kind: EntityKind,
        from_id: str,
        to_kind: EntityKind,
        to_id: str,
    ) -> int:
        stmt = (
            update(attachments_table)
            .where(attachments_table.c.parent_kind == from_kind)
            .where(attachments_table.c.parent_id == from_id)
            .values(parent_kind=to_kind, parent_id=to_id)
        )
        result = await self.session.execute(stmt)
        return cast("int", getattr(result, "rowcount", 0))

    async def clear(self) -> None:
        await self.session.execute(delete(attachments_table))


class SqlAlchemyMetaRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, key: str) -> object | None:
        stmt = select(meta_table.c.value).where(meta_table.c.key == str(key))
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def set(self, key: str, value: object) -> None:
        await _upsert(self.session, meta_table, [{"key": str(key), "value": value}])

    async def clear(self) -> None:
        await self.session.execute(delete(meta_table))


if TYPE_CHECKING:
    from furnitrack.domain.ports import (
        AttachmentRepository,
        ItemRepository,
        MeasurementRepository,
        MetaRepository,
        OptionRepository,
        RoomRepository,
        StoreRepository,
    )

    _session_stub = cast("AsyncSession", object())
    _room_repo: RoomRepository = SqlAlchemyRoomRepository(_session_stub)
    _measurement_repo: MeasurementRepository = SqlAlchemyMeasurementRepository(_session_stub)
    _item_repo: ItemRepository = SqlAlchemyItemRepository(_session_stub)
    _option_repo: OptionRepository = SqlAlchemyOptionRepository(_session_stub)
    _store_repo: StoreRepository = SqlAlchemyStoreRepository(_session_stub)
    _attachment_repo: AttachmentRepository = SqlAlchemyAttachmentRepository(_session_stub)
    _meta_repo: MetaRepository = SqlAlchemyMetaRepository(_session_stub)
