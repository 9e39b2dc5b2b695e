"""
Practice streaks

A streak counts consecutive calendar days with at least one finished session.
Practicing twice on one day counts once; missing a day starts over at 1.

The rules live in two pure functions (advance_streak, visible_streak) and one
engine. Only the backend differs between the shared family store and the
device-local store, so both behave identically for the same inputs.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Callable, Dict, Optional

from src.models import StreakRecord
from src.services import paths
from src.services.clock import Clock
from src.services.store import DocumentStore


def advance_streak(record: StreakRecord, today: date) -> StreakRecord:
    """The record after a session finished on `today`."""
    if record.last_date == today:
        return record
    if record.last_date == today - timedelta(days=1):
        return StreakRecord(count=record.count + 1, last_date=today)
    # No history, a gap of 2+ days, or a last_date in the future (clock skew)
    return StreakRecord(count=1, last_date=today)


def visible_streak(record: StreakRecord, today: date) -> int:
    """What to show today: the count while it is still alive, otherwise 0."""
    if record.last_date in (today, today - timedelta(days=1)):
        return record.count
    return 0


# ============================================================================
# Backends
# ============================================================================

RecordFn = Callable[[Optional[Dict[str, Any]]], Dict[str, Any]]


class StreakBackend(ABC):
    """Where streak records for one family (or one device) are kept."""

    @abstractmethod
    async def load(self, profile_id: str) -> Optional[Dict[str, Any]]:
        """Stored record for the profile, or None."""

    @abstractmethod
    async def apply(self, profile_id: str, fn: RecordFn) -> Dict[str, Any]:
        """Atomically replace the record with fn(current) and return the result."""


class DocumentStreakBackend(StreakBackend):
    """Streaks under family_data/{familyId}/streaks, updated by store transaction."""

    def __init__(self, store: DocumentStore, family_id: str):
        self.store = store
        self.family_id = family_id

    async def load(self, profile_id: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(paths.streak(self.family_id, profile_id))

    async def apply(self, profile_id: str, fn: RecordFn) -> Dict[str, Any]:
        return await self.store.transaction(paths.streak(self.family_id, profile_id), fn)


class LocalStreakBackend(StreakBackend):
    """Streaks in the device-local key-value store, one dict keyed by profile id."""

    def __init__(self, kv, key: str):
        self.kv = kv
        self.key = key

    def _all(self) -> Dict[str, Any]:
        data = self.kv.get(self.key)
        return data if isinstance(data, dict) else {}

    async def load(self, profile_id: str) -> Optional[Dict[str, Any]]:
        return self._all().get(profile_id)

    async def apply(self, profile_id: str, fn: RecordFn) -> Dict[str, Any]:
        # One device, no awaits between read and write
        data = self._all()
        data[profile_id] = fn(data.get(profile_id))
        self.kv.set(self.key, data)
        return data[profile_id]


# ============================================================================
# Engine
# ============================================================================

class StreakEngine:
    """Reads and advances per-profile streaks on one backend."""

    def __init__(self, backend: StreakBackend, clock: Optional[Clock] = None, logger=None):
        self.backend = backend
        self.clock = clock or Clock()
        self.logger = logger

    async def update(self, profile_id: str) -> int:
        """Credit today's practice and return the resulting count."""
        today = self.clock.today()
        seen = {}

        def _advance(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            record = StreakRecord.from_record(current)
            seen["previous"] = record.count
            return advance_streak(record, today).to_record()

        committed = await self.backend.apply(profile_id, _advance)
        count = StreakRecord.from_record(committed).count

        if self.logger:
            self.logger.streak_updated(profile_id, count, seen.get("previous", 0))
        return count

    async def read(self, profile_id: str) -> int:
        """Current streak for display. Never writes, even when the streak has lapsed."""
        record = StreakRecord.from_record(await self.backend.load(profile_id))
        return visible_streak(record, self.clock.today())

    async def record(self, profile_id: str) -> StreakRecord:
        """The raw stored record (count and last credited date)."""
        return StreakRecord.from_record(await self.backend.load(profile_id))
