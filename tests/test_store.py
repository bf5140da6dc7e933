from __future__ import annotations

from datetime import timedelta

import pytest

from src.srs import RecordStore, StorageError
from src.srs.ports import PERFORMANCE_TABLE, REMINDERS_TABLE, TOPICS_TABLE
from tests.support import OWNER, START, STRANGER


async def _reminder(store, topic_id, scheduled_at, **overrides):
    values = {
        "owner_user_id": OWNER,
        "topic_id": topic_id,
        "scheduled_at": scheduled_at,
        "kind": "spaced_repetition",
        "completed": False,
    }
    values.update(overrides)
    return await store.insert(REMINDERS_TABLE, values)


def test_store_satisfies_protocol(store) -> None:
    assert isinstance(store, RecordStore)


@pytest.mark.asyncio
async def test_insert_returns_generated_columns(store) -> None:
    row = await store.insert(TOPICS_TABLE, {"owner_user_id": OWNER, "title": "Optics"})

    assert len(row["id"]) == 36
    assert row["created_at"] is not None
    assert await store.find_one(TOPICS_TABLE, {"id": row["id"]}) == row


@pytest.mark.asyncio
async def test_reminder_defaults_are_applied(store, make_topic) -> None:
    topic_id = await make_topic()

    row = await store.insert(
        REMINDERS_TABLE,
        {"owner_user_id": OWNER, "topic_id": topic_id, "scheduled_at": START, "kind": "srs_review"},
    )

    assert row["completed"] is False
    assert row["priority"] == "medium"
    assert row["completed_at"] is None


@pytest.mark.asyncio
async def test_query_filters_and_orders(store, make_topic) -> None:
    topic_id = await make_topic()
    late = await _reminder(store, topic_id, START + timedelta(hours=2))
    early = await _reminder(store, topic_id, START)
    await _reminder(store, topic_id, START + timedelta(days=3))
    await _reminder(store, topic_id, START, kind="assignment")

    rows = await store.query(
        REMINDERS_TABLE,
        {
            "owner_user_id": OWNER,
            "scheduled_at__lte": START + timedelta(hours=2),
            "kind__in": ("spaced_repetition", "srs_review"),
        },
        order_by=("scheduled_at",),
    )
    newest = await store.query(
        REMINDERS_TABLE, {"topic_id": topic_id}, order_by=("-scheduled_at",), limit=1
    )

    assert [row["id"] for row in rows] == [early["id"], late["id"]]
    expected = START + timedelta(days=3)
    assert newest[0]["scheduled_at"].replace(tzinfo=None) == expected.replace(tzinfo=None)


@pytest.mark.asyncio
async def test_strict_bounds(store, make_topic) -> None:
    topic_id = await make_topic()
    await _reminder(store, topic_id, START)

    assert await store.count(REMINDERS_TABLE, {"scheduled_at__gte": START}) == 1
    assert await store.count(REMINDERS_TABLE, {"scheduled_at__gt": START}) == 0
    assert await store.count(REMINDERS_TABLE, {"scheduled_at__lt": START}) == 0


@pytest.mark.asyncio
async def test_update_reports_matched_rows(store, make_topic) -> None:
    topic_id = await make_topic()
    reminder = await _reminder(store, topic_id, START)
    pending = {"id": reminder["id"], "completed": False}

    first = await store.update(REMINDERS_TABLE, pending, {"completed": True, "completed_at": START})
    second = await store.update(REMINDERS_TABLE, pending, {"completed": True, "completed_at": START})

    assert (first, second) == (1, 0)
    assert (await store.find_one(REMINDERS_TABLE, {"id": reminder["id"]}))["completed"] is True


@pytest.mark.asyncio
async def test_none_filter_matches_null(store, make_topic) -> None:
    topic_id = await make_topic()
    await _reminder(store, topic_id, START)
    await _reminder(store, topic_id, START, completed=True, completed_at=START)

    assert await store.count(REMINDERS_TABLE, {"completed_at": None}) == 1


@pytest.mark.asyncio
async def test_owner_filter_isolates_rows(store, make_topic) -> None:
    await make_topic()
    await make_topic(owner=STRANGER)

    assert await store.count(TOPICS_TABLE, {"owner_user_id": OWNER}) == 1
    assert await store.find_one(TOPICS_TABLE, {"owner_user_id": "nobody"}) is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "table, filters",
    [
        ("lessons", {}),
        (TOPICS_TABLE, {"colour": "red"}),
        (TOPICS_TABLE, {"title__like": "Opt%"}),
    ],
)
async def test_unknown_names_raise_storage_error(store, table, filters) -> None:
    with pytest.raises(StorageError):
        await store.query(table, filters)


@pytest.mark.asyncio
async def test_constraint_violation_becomes_storage_error(store, make_topic) -> None:
    topic_id = await make_topic()

    with pytest.raises(StorageError):
        await store.insert(
            PERFORMANCE_TABLE,
            {
                "owner_user_id": OWNER,
                "topic_id": topic_id,
                "reviewed_at": START,
                "quality_rating": 9,
                "ease_factor": 2.5,
                "interval_days": 1,
                "next_interval_days": 1,
                "repetition_number": 1,
            },
        )

    assert await store.count(PERFORMANCE_TABLE, {}) == 0
