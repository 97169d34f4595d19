"""
Repeating check timer tied to the persisted monitoring flag.
"""

import asyncio
from typing import Optional

import structlog

from seat_monitor.services.activity_log import ActivityLog
from seat_monitor.services.coordinator import CheckCoordinator
from seat_monitor.services.state import StateRepository

logger = structlog.get_logger(__name__)


class CheckScheduler:
    """Owns the timer that triggers the coordinator every interval."""

    def __init__(
        self,
        repository: StateRepository,
        activity_log: ActivityLog,
        coordinator: CheckCoordinator,
    ):
        self.repository = repository
        self.activity_log = activity_log
        self.coordinator = coordinator
        self._timer: Optional[asyncio.Task] = None
        self._interval: Optional[int] = None
        self._checks: set[asyncio.Task] = set()

    @property
    def is_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def interval_seconds(self) -> Optional[int]:
        return self._interval if self.is_armed else None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            self._interval = None

    def _arm(self, interval_seconds: int) -> None:
        self._cancel_timer()
        self._interval = interval_seconds
        self._timer = asyncio.create_task(
            self._tick_loop(interval_seconds), name="seat-check-timer"
        )
        logger.debug("Check timer armed", interval_seconds=interval_seconds)

    async def _tick_loop(self, interval_seconds: int) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            # Ticks do not wait for the check; overlaps are dropped by the coordinator
            self._spawn_check()

    def _spawn_check(self) -> None:
        task = asyncio.create_task(self._guarded_check())
        self._checks.add(task)
        task.add_done_callback(self._checks.discard)

    async def _guarded_check(self) -> None:
        try:
            await self.coordinator.run_check()
        except Exception as e:
            logger.error("Scheduled check raised", error=str(e), exc_info=True)

    async def start(self, interval_seconds: Optional[int] = None) -> int:
        """
        Start monitoring and run one check right away.

        Args:
            interval_seconds: Seconds between checks; the persisted interval
                is used when omitted

        Returns:
            The interval in effect
        """
        if interval_seconds is not None and interval_seconds < 1:
            raise ValueError("interval_seconds must be at least 1")

        state = await self.repository.load()
        interval = interval_seconds or state.interval_seconds

        self._cancel_timer()
        await self.repository.set_monitoring(True, interval)
        self._arm(interval)
        await self.activity_log.append(
            f"Monitoring started. Checks every {interval} seconds.", "success"
        )
        await self.coordinator.run_check()
        return interval

    async def stop(self) -> None:
        self._cancel_timer()
        await self.repository.set_monitoring(False)
        await self.activity_log.append("Monitoring stopped.", "warning")

    async def resume(self) -> bool:
        """Re-arm the timer after a restart if monitoring was left on."""
        state = await self.repository.load()
        if not state.monitoring:
            return False

        self._arm(state.interval_seconds)
        logger.info(
            "Resumed monitoring from persisted state",
            interval_seconds=state.interval_seconds,
        )
        return True

    async def shutdown(self) -> None:
        """Cancel the timer and running ticks; persisted state is untouched."""
        self._cancel_timer()
        pending = list(self._checks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
