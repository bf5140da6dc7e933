"""SQLAlchemy-backed implementation of the scheduler's record store."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Type

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.srs.errors import StorageError
from src.srs.ports import PERFORMANCE_TABLE, REMINDERS_TABLE, TOPICS_TABLE, Row

from . import Base, PerformanceRow, ReminderRow, StudyTopicRow


LOGGER = logging.getLogger(__name__)

_MODELS: Dict[str, Type[Base]] = {
    TOPICS_TABLE: StudyTopicRow,
    PERFORMANCE_TABLE: PerformanceRow,
    REMINDERS_TABLE: ReminderRow,
}

_OPERATORS = {
    "eq": lambda column, value: column == value,
    "gte": lambda column, value: column >= value,
    "lte": lambda column, value: column <= value,
    "gt": lambda column, value: column > value,
    "lt": lambda column, value: column < value,
    "in": lambda column, value: column.in_(list(value)),
}


def _model_for(table: str) -> Type[Base]:
    try:
        return _MODELS[table]
    except KeyError:
        raise StorageError(f"Unknown table {table!r}") from None


def _column(model: Type[Base], name: str) -> Any:
    if name not in model.__table__.columns:
        raise StorageError(f"Unknown column {name!r} on {model.__tablename__}")
    return getattr(model, name)


def _conditions(model: Type[Base], filters: Mapping[str, Any]) -> List[Any]:
    conditions = []
    for key, value in filters.items():
        name, _, op = key.partition("__")
        operator = _OPERATORS.get(op or "eq")
        if operator is None:
            raise StorageError(f"Unsupported filter operator {op!r}")
        column = _column(model, name)
        if value is None and operator is _OPERATORS["eq"]:
            conditions.append(column.is_(None))
        else:
            conditions.append(operator(column, value))
    return conditions


def _ordering(model: Type[Base], order_by: Sequence[str]) -> List[Any]:
    clauses = []
    for entry in order_by:
        if entry.startswith("-"):
            clauses.append(_column(model, entry[1:]).desc())
        else:
            clauses.append(_column(model, entry).asc())
    return clauses


def _to_row(instance: Base) -> Row:
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}


class SqlAlchemyRecordStore:
    """Record store where each call runs in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            LOGGER.warning("Record store failed to %s: %s", action, exc)
            raise StorageError(f"Failed to {action}") from exc

    async def find_one(self, table: str, filters: Mapping[str, Any]) -> Optional[Row]:
        model = _model_for(table)
        stmt = select(model).where(*_conditions(model, filters)).limit(1)
        async with self._transaction(f"read from {table}") as session:
            result = await session.execute(stmt)
            instance = result.scalars().first()
            return _to_row(instance) if instance is not None else None

    async def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        model = _model_for(table)
        for name in values:
            _column(model, name)
        async with self._transaction(f"insert into {table}") as session:
            instance = model(**values)
            session.add(instance)
            await session.flush()
            await session.refresh(instance)
            return _to_row(instance)

    async def update(
        self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> int:
        model = _model_for(table)
        for name in patch:
            _column(model, name)
        stmt = (
            update(model)
            .where(*_conditions(model, filters))
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        async with self._transaction(f"update {table}") as session:
            result = await session.execute(stmt)
            return result.rowcount or 0

    async def query(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Row]:
        model = _model_for(table)
        stmt = select(model).where(*_conditions(model, filters)).order_by(*_ordering(model, order_by))
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._transaction(f"query {table}") as session:
            result = await session.execute(stmt)
            return [_to_row(instance) for instance in result.scalars().all()]

    async def count(self, table: str, filters: Mapping[str, Any]) -> int:
        model = _model_for(table)
        stmt = select(func.count()).select_from(model).where(*_conditions(model, filters))
        async with self._transaction(f"count {table}") as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())
