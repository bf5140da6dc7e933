"""Test doubles shared across the suite."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence


OWNER = "user-a"
STRANGER = "user-b"
START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


class InMemoryRecordStore:
    """Dict-backed record store honouring the same filter syntax as the SQL store."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}

    @staticmethod
    def _matches(row: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        for key, expected in filters.items():
            name, _, op = key.partition("__")
            value = row.get(name)
            if op == "":
                if value != expected:
                    return False
            elif op == "in":
                if value not in expected:
                    return False
            elif value is None:
                return False
            elif op == "gte" and not value >= expected:
                return False
            elif op == "lte" and not value <= expected:
                return False
            elif op == "gt" and not value > expected:
                return False
            elif op == "lt" and not value < expected:
                return False
        return True

    def seed(self, table: str, **values: Any) -> Dict[str, Any]:
        row = {"id": str(uuid.uuid4()), **values}
        self.tables.setdefault(table, []).append(row)
        return dict(row)

    async def find_one(self, table, filters):
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                return dict(row)
        return None

    async def insert(self, table, values):
        return self.seed(table, **values)

    async def update(self, table, filters, patch):
        updated = 0
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(patch)
                updated += 1
        return updated

    async def query(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        rows = [dict(row) for row in self.tables.get(table, []) if self._matches(row, filters)]
        for entry in reversed(order_by):
            name = entry.lstrip("-")
            rows.sort(key=lambda row: row[name], reverse=entry.startswith("-"))
        return rows[:limit] if limit is not None else rows

    async def count(self, table, filters):
        return len(await self.query(table, filters))
