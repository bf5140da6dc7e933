"""Detection of reviews that happen implausibly close together."""

from __future__ import annotations

import logging
from datetime import timedelta

from src.srs.ports import PERFORMANCE_TABLE, Clock, RecordStore


LOGGER = logging.getLogger(__name__)

DEFAULT_CRAM_WINDOW_HOURS = 24


class CrammingDetector:
    """Flags a topic reviewed again within the cram window."""

    def __init__(self, store: RecordStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    async def detect(
        self,
        owner_user_id: str,
        topic_id: str,
        hours_window: int = DEFAULT_CRAM_WINDOW_HOURS,
    ) -> bool:
        """Return True when a prior review of the topic falls inside the window.

        The review about to be recorded counts as one, so a single earlier
        review inside the window already makes more than one.
        """
        since = self._clock.now() - timedelta(hours=hours_window)
        recent = await self._store.query(
            PERFORMANCE_TABLE,
            {
                "owner_user_id": owner_user_id,
                "topic_id": topic_id,
                "reviewed_at__gte": since,
            },
            limit=1,
        )
        return bool(recent)

    async def detect_or_false(
        self,
        owner_user_id: str,
        topic_id: str,
        hours_window: int = DEFAULT_CRAM_WINDOW_HOURS,
    ) -> bool:
        """Like ``detect`` but treats any evaluation failure as "not cramming"."""
        try:
            return await self.detect(owner_user_id, topic_id, hours_window)
        except Exception:
            LOGGER.warning(
                "Cramming check failed for topic %s; continuing without penalty.",
                topic_id,
                exc_info=True,
            )
            return False
