from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from src.db import Base
from src.db.store import SqlAlchemyRecordStore
from src.srs import ReviewScheduler
from src.srs.ports import TOPICS_TABLE
from tests.support import OWNER, FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> async_sessionmaker:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'srs.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlAlchemyRecordStore:
    return SqlAlchemyRecordStore(session_factory)


@pytest.fixture
def scheduler(store, clock) -> ReviewScheduler:
    return ReviewScheduler(store, clock=clock)


@pytest.fixture
def make_topic(store):
    async def _make(owner: str = OWNER, title: str = "Photosynthesis") -> str:
        row = await store.insert(TOPICS_TABLE, {"owner_user_id": owner, "title": title})
        return row["id"]

    return _make
