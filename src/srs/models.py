"""Domain records exchanged between the scheduler, the store and callers."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from src.srs.errors import ValidationError
from src.srs.ports import ensure_utc


MIN_QUALITY = 0
MAX_QUALITY = 5
SUCCESS_QUALITY = 3

SPACED_REPETITION_KIND = "spaced_repetition"
DUE_REMINDER_KINDS = (SPACED_REPETITION_KIND, "srs_review")


def normalize_identifier(value: Any, field_name: str) -> str:
    """Return the canonical form of a UUID identifier or raise ``ValidationError``."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field_name, "must be a UUID string")
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError as exc:
        raise ValidationError(field_name, "must be a UUID string") from exc


def normalize_user_id(value: Any) -> str:
    """Caller identities are opaque, but must be non-empty strings."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("caller_user_id", "must be a non-empty string")
    return value.strip()


def is_successful_recall(quality_rating: int) -> bool:
    return quality_rating >= SUCCESS_QUALITY


@dataclass(frozen=True, slots=True)
class StudyTopic:
    """A unit of study material owned by the surrounding application."""

    id: str
    owner_user_id: str
    title: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StudyTopic":
        return cls(id=row["id"], owner_user_id=row["owner_user_id"], title=row["title"])


@dataclass(frozen=True, slots=True)
class PerformanceRecord:
    """One immutable review event for a topic."""

    id: str
    owner_user_id: str
    topic_id: str
    reviewed_at: datetime
    quality_rating: int
    ease_factor: float
    interval_days: int
    next_interval_days: int
    repetition_number: int
    triggering_reminder_id: Optional[str] = None
    response_time_seconds: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PerformanceRecord":
        return cls(
            id=row["id"],
            owner_user_id=row["owner_user_id"],
            topic_id=row["topic_id"],
            reviewed_at=ensure_utc(row["reviewed_at"]),
            quality_rating=row["quality_rating"],
            ease_factor=float(row["ease_factor"]),
            interval_days=row["interval_days"],
            next_interval_days=row["next_interval_days"],
            repetition_number=row["repetition_number"],
            triggering_reminder_id=row.get("triggering_reminder_id"),
            response_time_seconds=row.get("response_time_seconds"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["reviewed_at"] = self.reviewed_at.isoformat()
        return data


@dataclass(frozen=True, slots=True)
class Reminder:
    """A scheduled "time to review" event delivered by an external subsystem."""

    id: str
    owner_user_id: str
    topic_id: str
    scheduled_at: datetime
    kind: str
    completed: bool
    completed_at: Optional[datetime] = None
    title: Optional[str] = None
    body: Optional[str] = None
    priority: str = "medium"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Reminder":
        completed_at = row.get("completed_at")
        return cls(
            id=row["id"],
            owner_user_id=row["owner_user_id"],
            topic_id=row["topic_id"],
            scheduled_at=ensure_utc(row["scheduled_at"]),
            kind=row["kind"],
            completed=bool(row["completed"]),
            completed_at=ensure_utc(completed_at) if completed_at is not None else None,
            title=row.get("title"),
            body=row.get("body"),
            priority=row.get("priority") or "medium",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["scheduled_at"] = self.scheduled_at.isoformat()
        data["completed_at"] = self.completed_at.isoformat() if self.completed_at else None
        return data


@dataclass(frozen=True, slots=True)
class TopicPerformance:
    """Per-topic averages used to rank strongest and weakest topics."""

    topic_id: str
    title: Optional[str]
    average_quality: float
    average_ease_factor: float
    review_count: int


@dataclass(frozen=True, slots=True)
class StatisticsSummary:
    """Aggregate review statistics for one user."""

    total_topics: int
    total_reviews: int
    average_quality: float
    due_count: int
    quality_distribution: Dict[int, int]
    retention_rate: float = 0.0
    average_ease_factor: float = 0.0
    strongest_topics: List[TopicPerformance] = field(default_factory=list)
    weakest_topics: List[TopicPerformance] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ReviewSubmission:
    """Raw input for recording a review, validated before any store access."""

    topic_id: Any
    quality_rating: Any
    reminder_id: Any = None
    response_time_seconds: Any = None
    schedule_next: bool = True
    expected_last_record_id: Any = None

    def validated(self) -> "ReviewSubmission":
        """Return a copy with canonical identifiers, raising on any bad field."""
        rating = self.quality_rating
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError("quality_rating", "must be an integer")
        if not MIN_QUALITY <= rating <= MAX_QUALITY:
            raise ValidationError(
                "quality_rating", f"must be between {MIN_QUALITY} and {MAX_QUALITY}"
            )

        response_time = self.response_time_seconds
        if response_time is not None:
            if isinstance(response_time, bool) or not isinstance(response_time, int):
                raise ValidationError("response_time_seconds", "must be an integer")
            if response_time <= 0:
                raise ValidationError("response_time_seconds", "must be positive")

        return ReviewSubmission(
            topic_id=normalize_identifier(self.topic_id, "topic_id"),
            quality_rating=rating,
            reminder_id=(
                normalize_identifier(self.reminder_id, "reminder_id")
                if self.reminder_id is not None
                else None
            ),
            response_time_seconds=response_time,
            schedule_next=bool(self.schedule_next),
            expected_last_record_id=(
                normalize_identifier(self.expected_last_record_id, "expected_last_record_id")
                if self.expected_last_record_id is not None
                else None
            ),
        )
