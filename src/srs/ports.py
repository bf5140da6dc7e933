"""Collaborator interfaces consumed by the scheduler.

The scheduler depends on these Protocols rather than on a concrete backend.
The SQLAlchemy implementation lives in ``src.db.store`` and is wired at
construction time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable


Row = Dict[str, Any]

TOPICS_TABLE = "study_topics"
PERFORMANCE_TABLE = "srs_performance"
REMINDERS_TABLE = "reminders"


@runtime_checkable
class RecordStore(Protocol):
    """Generic async record store.

    ``filters`` map column names to values; a ``column__op`` key applies one of
    ``gte``, ``lte``, ``gt``, ``lt`` or ``in``. ``order_by`` entries prefixed
    with ``-`` sort descending. Failures surface as ``StorageError``.
    """

    async def find_one(self, table: str, filters: Mapping[str, Any]) -> Optional[Row]: ...

    async def insert(self, table: str, values: Mapping[str, Any]) -> Row: ...

    async def update(
        self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> int: ...

    async def query(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Row]: ...

    async def count(self, table: str, filters: Mapping[str, Any]) -> int: ...


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock returning timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normalize to UTC; naive timestamps read back from the store are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
