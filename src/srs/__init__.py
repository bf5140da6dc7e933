"""Spaced-repetition scheduling engine."""

from .cramming import CrammingDetector
from .errors import ConflictError, NotFoundError, SRSError, StorageError, ValidationError
from .interval import IntervalResult, compute_next_interval
from .models import PerformanceRecord, Reminder, ReviewSubmission, StatisticsSummary, StudyTopic
from .ports import Clock, RecordStore, SystemClock
from .reminders import ReminderEmitter
from .scheduler import ReviewOutcome, ReviewScheduler

__all__ = [
    "Clock",
    "ConflictError",
    "CrammingDetector",
    "IntervalResult",
    "NotFoundError",
    "PerformanceRecord",
    "RecordStore",
    "Reminder",
    "ReminderEmitter",
    "ReviewOutcome",
    "ReviewScheduler",
    "ReviewSubmission",
    "SRSError",
    "StatisticsSummary",
    "StorageError",
    "StudyTopic",
    "SystemClock",
    "ValidationError",
    "compute_next_interval",
]
