"""Creation, completion and lookup of spaced-repetition reminders."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from src.srs.models import (
    DUE_REMINDER_KINDS,
    SPACED_REPETITION_KIND,
    Reminder,
    StudyTopic,
    is_successful_recall,
)
from src.srs.ports import REMINDERS_TABLE, Clock, RecordStore


LOGGER = logging.getLogger(__name__)


def reminder_priority(quality_rating: Optional[int]) -> str:
    """Difficult topics get pushed ahead of routine reviews."""
    if quality_rating is not None and not is_successful_recall(quality_rating):
        return "high"
    return "medium"


class ReminderEmitter:
    """Writes reminder rows that an external delivery sweep fans out later."""

    def __init__(self, store: RecordStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    async def schedule(
        self,
        topic: StudyTopic,
        scheduled_at: datetime,
        *,
        quality_rating: Optional[int] = None,
    ) -> Reminder:
        """Insert a pending reminder for ``topic`` at ``scheduled_at``."""
        row = await self._store.insert(
            REMINDERS_TABLE,
            {
                "owner_user_id": topic.owner_user_id,
                "topic_id": topic.id,
                "scheduled_at": scheduled_at,
                "kind": SPACED_REPETITION_KIND,
                "completed": False,
                "title": f"Review: {topic.title}",
                "body": f'Time to review "{topic.title}" to strengthen your memory',
                "priority": reminder_priority(quality_rating),
            },
        )
        reminder = Reminder.from_row(row)
        LOGGER.info(
            "Scheduled reminder %s for topic %s at %s.",
            reminder.id,
            topic.id,
            reminder.scheduled_at.isoformat(),
        )
        return reminder

    async def schedule_in(
        self,
        topic: StudyTopic,
        days: int,
        *,
        quality_rating: Optional[int] = None,
    ) -> Reminder:
        return await self.schedule(
            topic,
            self._clock.now() + timedelta(days=days),
            quality_rating=quality_rating,
        )

    async def complete(self, owner_user_id: str, reminder_id: str) -> bool:
        """Mark a pending reminder completed.

        Returns False when nothing changed, which includes a reminder that was
        already completed; completing twice is not an error.
        """
        updated = await self._store.update(
            REMINDERS_TABLE,
            {"id": reminder_id, "owner_user_id": owner_user_id, "completed": False},
            {"completed": True, "completed_at": self._clock.now()},
        )
        if not updated:
            LOGGER.debug("Reminder %s was already completed or is not owned.", reminder_id)
        return bool(updated)

    def _due_filters(self, owner_user_id: str, now: datetime) -> dict:
        return {
            "owner_user_id": owner_user_id,
            "kind__in": DUE_REMINDER_KINDS,
            "completed": False,
            "scheduled_at__lte": now,
        }

    async def due(self, owner_user_id: str, now: datetime, limit: int) -> List[Reminder]:
        """Pending reminders at or before ``now``, oldest first."""
        rows = await self._store.query(
            REMINDERS_TABLE,
            self._due_filters(owner_user_id, now),
            order_by=("scheduled_at",),
            limit=limit,
        )
        return [Reminder.from_row(row) for row in rows]

    async def count_due(self, owner_user_id: str, now: datetime) -> int:
        return await self._store.count(REMINDERS_TABLE, self._due_filters(owner_user_id, now))
