"""
User-visible activity log.
Bounded to the newest entries; older history is dropped.
"""

import structlog

from seat_monitor.models.schemas import LogEntry, LogType
from seat_monitor.services.state import StateRepository

logger = structlog.get_logger(__name__)

_PROCESS_LOG_LEVEL = {
    "info": "info",
    "success": "info",
    "warning": "warning",
    "error": "error",
}


class ActivityLog:
    """Appends entries to the persisted log and mirrors them to the process log."""

    def __init__(self, repository: StateRepository):
        self.repository = repository

    async def append(self, message: str, type: LogType = "info") -> LogEntry:
        entry = LogEntry(message=message, type=type)
        await self.repository.append_log(entry)
        getattr(logger, _PROCESS_LOG_LEVEL[type])(
            message, activity_type=type, timestamp_iso=entry.timestamp
        )
        return entry

    async def entries(self) -> list[LogEntry]:
        state = await self.repository.load()
        return state.logs
