"""
State repository: the single owner of the persisted MonitorState.

Every mutation is a named operation. Operations are serialized through one
asyncio lock so the read and the write of an operation never interleave with
another operation's, even though both are suspension points.
"""

import asyncio
from typing import Iterable, Optional

import structlog

from seat_monitor.models.schemas import (
    DEFAULT_CHECK_URL,
    DEFAULT_INTERVAL_SECONDS,
    CheckResult,
    LogEntry,
    MonitorState,
    TrackedItem,
)
from seat_monitor.services.storage import KeyValueStore

logger = structlog.get_logger(__name__)

STATE_KEYS = (
    "courses",
    "intervalSeconds",
    "monitoring",
    "logs",
    "lastAvailability",
    "lastCheck",
    "theme",
    "checkUrl",
)
LEGACY_INTERVAL_KEY = "intervalMinutes"
MAX_LOG_ENTRIES = 50


def prepend_log(
    logs: list[LogEntry], entry: LogEntry, limit: int = MAX_LOG_ENTRIES
) -> list[LogEntry]:
    """Newest first, oldest evicted past ``limit``."""
    return [entry, *logs][:limit]


class StateRepository:
    """Named, atomic read-modify-write operations over the key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        check_url: str = DEFAULT_CHECK_URL,
        default_interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
    ):
        self.store = store
        self.check_url = check_url
        self.default_interval_seconds = default_interval_seconds
        self._lock = asyncio.Lock()

    def _defaults(self) -> MonitorState:
        return MonitorState(
            check_url=self.check_url,
            interval_seconds=self.default_interval_seconds,
        )

    async def _migrate(self, raw: dict) -> dict:
        """Convert the legacy minutes interval and drop the legacy key."""
        if LEGACY_INTERVAL_KEY not in raw:
            return raw

        minutes = raw.pop(LEGACY_INTERVAL_KEY)
        if not raw.get("intervalSeconds") and minutes:
            try:
                seconds = max(1, int(round(float(minutes) * 60)))
            except (TypeError, ValueError):
                logger.warning("Dropping invalid legacy interval", interval_minutes=minutes)
            else:
                raw["intervalSeconds"] = seconds
                await self.store.set({"intervalSeconds": seconds})
                logger.info(
                    "Migrated legacy interval",
                    interval_minutes=minutes,
                    interval_seconds=seconds,
                )
        await self.store.remove([LEGACY_INTERVAL_KEY])
        return raw

    async def _read(self) -> MonitorState:
        raw = await self.store.get((*STATE_KEYS, LEGACY_INTERVAL_KEY))
        raw = await self._migrate(raw)
        merged = {**self._defaults().storage_dict(), **raw}
        return MonitorState.model_validate(merged)

    async def load(self) -> MonitorState:
        """Read the full state, defaults filled in."""
        async with self._lock:
            return await self._read()

    async def initialize(self, check_url: Optional[str] = None) -> MonitorState:
        """Persist the merged state so first-run defaults become concrete."""
        async with self._lock:
            state = await self._read()
            if check_url:
                state.check_url = check_url
            await self.store.set(state.storage_dict())
            return state

    async def add_course(self, item: TrackedItem) -> bool:
        """Append ``item`` unless its key is already tracked."""
        async with self._lock:
            state = await self._read()
            if any(course.key == item.key for course in state.courses):
                return False
            courses = [*state.courses, item]
            await self.store.set(
                {"courses": [c.model_dump(mode="json") for c in courses]}
            )
            return True

    async def remove_course(self, key: str) -> bool:
        """Drop the course with ``key``; False when it was not tracked."""
        async with self._lock:
            state = await self._read()
            courses = [course for course in state.courses if course.key != key]
            if len(courses) == len(state.courses):
                return False
            await self.store.set(
                {"courses": [c.model_dump(mode="json") for c in courses]}
            )
            return True

    async def record_check(
        self, results: Iterable[CheckResult], checked_at: str
    ) -> dict[str, bool]:
        """Merge availability by key and stamp the check time in one write."""
        async with self._lock:
            state = await self._read()
            availability = dict(state.last_availability)
            for result in results:
                availability[result.key] = result.available
            await self.store.set(
                {"lastAvailability": availability, "lastCheck": checked_at}
            )
            return availability

    async def append_log(self, entry: LogEntry) -> list[LogEntry]:
        async with self._lock:
            state = await self._read()
            logs = prepend_log(state.logs, entry)
            await self.store.set({"logs": [e.model_dump(mode="json") for e in logs]})
            return logs

    async def set_monitoring(
        self, enabled: bool, interval_seconds: Optional[int] = None
    ) -> MonitorState:
        async with self._lock:
            state = await self._read()
            state.monitoring = enabled
            update: dict = {"monitoring": enabled}
            if interval_seconds is not None:
                if interval_seconds < 1:
                    raise ValueError("interval_seconds must be at least 1")
                state.interval_seconds = interval_seconds
                update["intervalSeconds"] = interval_seconds
            await self.store.set(update)
            return state
