"""
SQLAlchemy record store.

Same contract as the PostgREST store, backed by a local database through
SQLAlchemy Core statements on the ORM tables. Used for local development and
tests (sqlite + aiosqlite) or a self-hosted PostgreSQL (asyncpg).
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Optional, Sequence

from sqlalchemy import MetaData, Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from raceplanner.models import Base
from .base import Record, RecordStoreError

logger = logging.getLogger(__name__)


def _to_record(row: Mapping) -> Record:
    """Row mapping -> plain dict; datetimes become ISO strings like PostgREST returns."""
    record: Record = {}
    for key, value in row.items():
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        record[key] = value
    return record


class SqlRecordStore:
    """Record store over an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine, metadata: MetaData = Base.metadata):
        self.engine = engine
        self.metadata = metadata

    def _table(self, name: str) -> Table:
        try:
            return self.metadata.tables[name]
        except KeyError:
            raise RecordStoreError(f"Unknown table: {name}") from None

    @staticmethod
    def _where(table: Table, filters: Record) -> list:
        clauses = []
        for column, value in filters.items():
            if column not in table.c:
                raise RecordStoreError(f"Unknown column {table.name}.{column}")
            col = table.c[column]
            clauses.append(col.is_(None) if value is None else col == value)
        return clauses

    async def insert(self, table: str, rows: Record | Sequence[Record]) -> list[Record]:
        tbl = self._table(table)
        rows = [rows] if isinstance(rows, Mapping) else list(rows)
        created: list[Record] = []

        try:
            # One transaction: a bulk insert lands completely or not at all
            async with self.engine.begin() as conn:
                for row in rows:
                    result = await conn.execute(
                        insert(tbl).values(**row).returning(*tbl.c)
                    )
                    created.append(_to_record(result.mappings().one()))
        except SQLAlchemyError as e:
            logger.error(f"Record store insert on {table} failed: {e}")
            raise RecordStoreError(f"insert on {table} failed: {e}") from e

        return created

    async def patch(self, table: str, filters: Record, fields: Record) -> list[Record]:
        tbl = self._table(table)
        if not filters:
            raise ValueError("Refusing to write without a filter")

        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(
                    update(tbl)
                    .where(*self._where(tbl, filters))
                    .values(**fields)
                    .returning(*tbl.c)
                )
                return [_to_record(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error(f"Record store patch on {table} failed: {e}")
            raise RecordStoreError(f"patch on {table} failed: {e}") from e

    async def select(
        self,
        table: str,
        filters: Record,
        columns: Optional[Sequence[str]] = None,
        order: Optional[Sequence[tuple[str, str]]] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        tbl = self._table(table)
        try:
            selected = [tbl.c[column] for column in columns] if columns else list(tbl.c)
        except KeyError as e:
            raise RecordStoreError(f"Unknown column {table}.{e.args[0]}") from None

        query = select(*selected).where(*self._where(tbl, filters))
        for column, direction in order or ():
            col = tbl.c[column]
            query = query.order_by(col.desc() if direction == "desc" else col.asc())
        if limit is not None:
            query = query.limit(limit)

        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(query)
                return [_to_record(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error(f"Record store select on {table} failed: {e}")
            raise RecordStoreError(f"select on {table} failed: {e}") from e

    async def delete(self, table: str, filters: Record) -> None:
        tbl = self._table(table)
        if not filters:
            raise ValueError("Refusing to write without a filter")

        try:
            async with self.engine.begin() as conn:
                await conn.execute(delete(tbl).where(*self._where(tbl, filters)))
        except SQLAlchemyError as e:
            logger.error(f"Record store delete on {table} failed: {e}")
            raise RecordStoreError(f"delete on {table} failed: {e}") from e
