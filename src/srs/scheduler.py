"""Orchestration of review recording and the supporting read operations."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from src.srs.cramming import DEFAULT_CRAM_WINDOW_HOURS, CrammingDetector
from src.srs.errors import ConflictError, NotFoundError, StorageError, ValidationError
from src.srs.interval import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL_DAYS,
    compute_next_interval,
    penalize_ease_factor,
)
from src.srs.models import (
    MAX_QUALITY,
    MIN_QUALITY,
    PerformanceRecord,
    Reminder,
    ReviewSubmission,
    StatisticsSummary,
    StudyTopic,
    TopicPerformance,
    is_successful_recall,
    normalize_identifier,
    normalize_user_id,
)
from src.srs.ports import (
    PERFORMANCE_TABLE,
    TOPICS_TABLE,
    Clock,
    RecordStore,
    SystemClock,
    ensure_utc,
)
from src.srs.reminders import ReminderEmitter


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DUE_PAGE_SIZE = 10
MAX_DUE_PAGE_SIZE = 100
DEFAULT_REVIEW_LOG_LIMIT = 50
RANKED_TOPICS_LIMIT = 5

# Concurrent submissions can tie on both timestamps and repetitions; the id settles it.
_LATEST_FIRST = ("-reviewed_at", "-repetition_number", "-id")


def feedback_message(quality_rating: int, next_interval_days: int) -> str:
    """Short encouragement shown after a review is recorded."""
    if is_successful_recall(quality_rating):
        unit = "day" if next_interval_days == 1 else "days"
        return f"Great job! Next review in {next_interval_days} {unit}"
    return "Let's review this again tomorrow to strengthen your memory"


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    """Everything produced by recording one review."""

    record: PerformanceRecord
    cramming: bool
    reminder_resolved: bool = False
    next_reminder: Optional[Reminder] = None

    @property
    def message(self) -> str:
        return feedback_message(self.record.quality_rating, self.record.next_interval_days)


class ReviewScheduler:
    """Records graded reviews and decides when each topic is due again.

    Collaborators are injected; nothing here holds process-wide state.
    Only the ownership check, history load and insert are on the critical
    path. Resolving the triggering reminder and scheduling the next one are
    best effort and never undo a recorded review.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Optional[Clock] = None,
        reminders: Optional[ReminderEmitter] = None,
        cramming: Optional[CrammingDetector] = None,
        cram_window_hours: int = DEFAULT_CRAM_WINDOW_HOURS,
        due_page_size: int = DEFAULT_DUE_PAGE_SIZE,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        if cram_window_hours < 1:
            raise ValueError("cram_window_hours must be positive.")
        if not 1 <= due_page_size <= MAX_DUE_PAGE_SIZE:
            raise ValueError(f"due_page_size must be between 1 and {MAX_DUE_PAGE_SIZE}.")

        self._store = store
        self._clock = clock or SystemClock()
        self._reminders = reminders or ReminderEmitter(store, self._clock)
        self._cramming = cramming or CrammingDetector(store, self._clock)
        self._cram_window_hours = cram_window_hours
        self._due_page_size = due_page_size
        self._timeout_seconds = timeout_seconds

    # ------------------------------------------------------------------
    # Recording reviews
    # ------------------------------------------------------------------

    async def record_review(
        self,
        caller_user_id: str,
        topic_id: str,
        quality_rating: int,
        reminder_id: Optional[str] = None,
        response_time_seconds: Optional[int] = None,
        schedule_next: bool = True,
        *,
        expected_last_record_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> PerformanceRecord:
        """Record a graded review and return the new performance record."""
        outcome = await self.submit_review(
            caller_user_id,
            ReviewSubmission(
                topic_id=topic_id,
                quality_rating=quality_rating,
                reminder_id=reminder_id,
                response_time_seconds=response_time_seconds,
                schedule_next=schedule_next,
                expected_last_record_id=expected_last_record_id,
            ),
            timeout=timeout,
        )
        return outcome.record

    async def submit_review(
        self,
        caller_user_id: str,
        submission: ReviewSubmission,
        *,
        timeout: Optional[float] = None,
    ) -> ReviewOutcome:
        """Validate, grade and persist a review, then run the follow-ups.

        ``timeout`` is one deadline for the whole call. The follow-ups only get
        what the critical path left over. A timeout that fires after the insert
        committed but before it returned still raises ``StorageError`` even
        though the review was kept; retrying with ``expected_last_record_id``
        detects that case.
        """
        caller = normalize_user_id(caller_user_id)
        submission = submission.validated()
        limit = timeout if timeout is not None else self._timeout_seconds
        loop = asyncio.get_running_loop()
        deadline = loop.time() + limit if limit is not None else None

        LOGGER.info(
            "Recording review for topic %s by %s with quality %s.",
            submission.topic_id,
            caller,
            submission.quality_rating,
        )

        topic, record, cramming = await self._bounded(
            self._record(caller, submission), limit, "recording the review"
        )

        remaining = max(0.0, deadline - loop.time()) if deadline is not None else None
        resolved, next_reminder = await asyncio.gather(
            self._resolve_reminder(caller, submission.reminder_id, remaining),
            self._schedule_next(topic, record, submission.schedule_next, remaining),
        )

        LOGGER.info(
            "Review %s recorded. Next interval: %s days, ease factor: %s.",
            record.id,
            record.next_interval_days,
            record.ease_factor,
        )
        return ReviewOutcome(
            record=record,
            cramming=cramming,
            reminder_resolved=resolved,
            next_reminder=next_reminder,
        )

    async def _record(
        self, caller: str, submission: ReviewSubmission
    ) -> tuple[StudyTopic, PerformanceRecord, bool]:
        topic = await self._load_owned_topic(caller, submission.topic_id)
        last = await self._latest_record(caller, topic.id)

        if submission.expected_last_record_id is not None:
            actual = last.id if last is not None else None
            if actual != submission.expected_last_record_id:
                raise ConflictError(submission.expected_last_record_id, actual)

        if last is None:
            current_interval = DEFAULT_INTERVAL_DAYS
            ease_factor = DEFAULT_EASE_FACTOR
            previous_repetition = 0
        else:
            current_interval = last.next_interval_days or DEFAULT_INTERVAL_DAYS
            ease_factor = last.ease_factor or DEFAULT_EASE_FACTOR
            previous_repetition = last.repetition_number or 0
        repetition_number = previous_repetition + 1

        cramming = await self._cramming.detect_or_false(
            caller, topic.id, self._cram_window_hours
        )
        if cramming:
            penalized = penalize_ease_factor(ease_factor)
            LOGGER.info(
                "Cramming detected for topic %s; ease factor %s lowered to %s.",
                topic.id,
                ease_factor,
                penalized,
            )
            ease_factor = penalized

        result = compute_next_interval(
            submission.quality_rating, current_interval, ease_factor, repetition_number
        )

        row = await self._store.insert(
            PERFORMANCE_TABLE,
            {
                "owner_user_id": caller,
                "topic_id": topic.id,
                "triggering_reminder_id": submission.reminder_id,
                "reviewed_at": self._clock.now(),
                "quality_rating": submission.quality_rating,
                "response_time_seconds": submission.response_time_seconds,
                "ease_factor": result.new_ease_factor,
                "interval_days": current_interval,
                "next_interval_days": result.next_interval_days,
                "repetition_number": repetition_number,
            },
        )
        return topic, PerformanceRecord.from_row(row), cramming

    async def _resolve_reminder(
        self, caller: str, reminder_id: Optional[str], limit: Optional[float]
    ) -> bool:
        if reminder_id is None:
            return False
        try:
            return await self._bounded(
                self._reminders.complete(caller, reminder_id), limit, "resolving the reminder"
            )
        except Exception:
            LOGGER.exception("Failed to resolve reminder %s; the review is kept.", reminder_id)
            return False

    async def _schedule_next(
        self,
        topic: StudyTopic,
        record: PerformanceRecord,
        schedule_next: bool,
        limit: Optional[float],
    ) -> Optional[Reminder]:
        if not schedule_next:
            return None
        try:
            return await self._bounded(
                self._reminders.schedule_in(
                    topic, record.next_interval_days, quality_rating=record.quality_rating
                ),
                limit,
                "scheduling the next reminder",
            )
        except Exception:
            LOGGER.exception(
                "Failed to schedule the next review for topic %s; the review is kept.", topic.id
            )
            return None

    async def schedule_review(
        self, caller_user_id: str, topic_id: str, review_at: datetime
    ) -> Reminder:
        """Create a pending reminder for an owned topic at an explicit time."""
        caller = normalize_user_id(caller_user_id)
        topic_id = normalize_identifier(topic_id, "topic_id")
        if not isinstance(review_at, datetime):
            raise ValidationError("review_at", "must be a datetime")

        topic = await self._load_owned_topic(caller, topic_id)
        return await self._reminders.schedule(topic, ensure_utc(review_at))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_performance_history(
        self, caller_user_id: str, topic_id: str
    ) -> PerformanceRecord:
        """Return the most recent review of an owned topic."""
        caller = normalize_user_id(caller_user_id)
        topic_id = normalize_identifier(topic_id, "topic_id")
        record = await self._latest_record(caller, topic_id)
        if record is None:
            raise NotFoundError("Performance record not found")
        return record

    async def get_review_log(
        self,
        caller_user_id: str,
        topic_id: str,
        limit: int = DEFAULT_REVIEW_LOG_LIMIT,
    ) -> List[PerformanceRecord]:
        """Return the review history of an owned topic, newest first."""
        caller = normalize_user_id(caller_user_id)
        topic_id = normalize_identifier(topic_id, "topic_id")
        if limit < 1:
            raise ValidationError("limit", "must be positive")

        await self._load_owned_topic(caller, topic_id)
        rows = await self._store.query(
            PERFORMANCE_TABLE,
            {"owner_user_id": caller, "topic_id": topic_id},
            order_by=_LATEST_FIRST,
            limit=limit,
        )
        return [PerformanceRecord.from_row(row) for row in rows]

    async def get_due_reviews(
        self,
        caller_user_id: str,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Reminder]:
        """Pending spaced-repetition reminders that are due, oldest first."""
        caller = normalize_user_id(caller_user_id)
        if limit is None:
            limit = self._due_page_size
        if limit < 1:
            raise ValidationError("limit", "must be positive")
        limit = min(limit, MAX_DUE_PAGE_SIZE)
        if now is None:
            now = self._clock.now()

        return await self._reminders.due(caller, ensure_utc(now), limit)

    async def get_statistics(self, caller_user_id: str) -> StatisticsSummary:
        """Aggregate every review the caller has recorded."""
        caller = normalize_user_id(caller_user_id)
        rows = await self._store.query(PERFORMANCE_TABLE, {"owner_user_id": caller})
        due_count = await self._reminders.count_due(caller, self._clock.now())

        distribution: Dict[int, int] = {
            rating: 0 for rating in range(MIN_QUALITY, MAX_QUALITY + 1)
        }
        if not rows:
            return StatisticsSummary(
                total_topics=0,
                total_reviews=0,
                average_quality=0.0,
                due_count=due_count,
                quality_distribution=distribution,
            )

        distribution.update(Counter(row["quality_rating"] for row in rows))
        total = len(rows)
        successes = sum(1 for row in rows if is_successful_recall(row["quality_rating"]))

        ranked = await self._rank_topics(rows)
        strongest = sorted(
            ranked, key=lambda item: (item.average_quality, item.average_ease_factor), reverse=True
        )
        weakest = sorted(ranked, key=lambda item: (item.average_quality, item.average_ease_factor))

        return StatisticsSummary(
            total_topics=len(ranked),
            total_reviews=total,
            average_quality=round(sum(row["quality_rating"] for row in rows) / total, 2),
            due_count=due_count,
            quality_distribution=distribution,
            retention_rate=round(successes * 100 / total, 2),
            average_ease_factor=round(sum(float(row["ease_factor"]) for row in rows) / total, 2),
            strongest_topics=strongest[:RANKED_TOPICS_LIMIT],
            weakest_topics=weakest[:RANKED_TOPICS_LIMIT],
        )

    async def _rank_topics(self, rows: List[Dict[str, Any]]) -> List[TopicPerformance]:
        grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for row in rows:
            grouped[row["topic_id"]].append(row)

        topic_rows = await self._store.query(TOPICS_TABLE, {"id__in": tuple(grouped)})
        titles = {row["id"]: row["title"] for row in topic_rows}

        return [
            TopicPerformance(
                topic_id=topic_id,
                title=titles.get(topic_id),
                average_quality=round(
                    sum(row["quality_rating"] for row in reviews) / len(reviews), 2
                ),
                average_ease_factor=round(
                    sum(float(row["ease_factor"]) for row in reviews) / len(reviews), 2
                ),
                review_count=len(reviews),
            )
            for topic_id, reviews in grouped.items()
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_owned_topic(self, caller: str, topic_id: str) -> StudyTopic:
        row = await self._store.find_one(TOPICS_TABLE, {"id": topic_id, "owner_user_id": caller})
        if row is None:
            raise NotFoundError("Study topic not found or access denied")
        return StudyTopic.from_row(row)

    async def _latest_record(self, caller: str, topic_id: str) -> Optional[PerformanceRecord]:
        rows = await self._store.query(
            PERFORMANCE_TABLE,
            {"owner_user_id": caller, "topic_id": topic_id},
            order_by=_LATEST_FIRST,
            limit=1,
        )
        return PerformanceRecord.from_row(rows[0]) if rows else None

    @staticmethod
    async def _bounded(awaitable: Awaitable[T], limit: Optional[float], step: str) -> T:
        if limit is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, limit)
        except asyncio.TimeoutError as exc:
            raise StorageError(f"Timed out after {limit}s while {step}") from exc
