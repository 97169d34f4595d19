"""
Check coordinator: runs one end-to-end seat check.

A cycle acquires a rendering context for the monitored page, waits for it to
load, asks it for seat results under a deadline, and always releases it.
Results are merged into the persisted availability map; alerts fire only on
a transition from unavailable (or unknown) to available, judged against the
availability read before the check.
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Optional

import logfire
import structlog

from seat_monitor.models.schemas import (
    CheckOutcome,
    CheckResult,
    ExtractionResponse,
    MonitorState,
    utc_now_iso,
)
from seat_monitor.services.activity_log import ActivityLog
from seat_monitor.services.notification import Notifier, availability_message
from seat_monitor.services.renderer import RenderingContext, RenderingContextProvider
from seat_monitor.services.state import StateRepository

logger = structlog.get_logger(__name__)

DEFAULT_EXTRACTION_TIMEOUT = 15.0
TIMEOUT_MESSAGE = "Timed out waiting for seat availability response."
NO_RESPONSE_MESSAGE = "No data returned from rendering context."


class CheckError(Exception):
    """A check cycle could not produce results."""


class ExtractionTimeoutError(CheckError):
    """The rendering context did not answer before the deadline."""


class CheckPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class CheckCoordinator:
    """Runs single-flight check cycles."""

    def __init__(
        self,
        repository: StateRepository,
        activity_log: ActivityLog,
        provider: RenderingContextProvider,
        notifier: Notifier,
        extraction_timeout: float = DEFAULT_EXTRACTION_TIMEOUT,
        alert_title: str = "Course Seat Monitor",
    ):
        self.repository = repository
        self.activity_log = activity_log
        self.provider = provider
        self.notifier = notifier
        self.extraction_timeout = extraction_timeout
        self.alert_title = alert_title
        self._phase = CheckPhase.IDLE

    @property
    def phase(self) -> CheckPhase:
        return self._phase

    def _begin(self) -> bool:
        """IDLE -> RUNNING; refuses RUNNING -> RUNNING."""
        if self._phase is CheckPhase.RUNNING:
            return False
        self._phase = CheckPhase.RUNNING
        return True

    def _finish(self) -> None:
        self._phase = CheckPhase.IDLE

    async def run_check(self) -> CheckOutcome:
        """
        Run one check cycle unless one is already in flight.

        Never raises for failures inside the cycle: they end up in the
        activity log and the outcome is FAILED.

        Returns:
            How the cycle ended; SKIPPED_BUSY when another cycle was running
        """
        if not self._begin():
            logger.debug("Check already in flight, trigger dropped")
            return CheckOutcome.SKIPPED_BUSY

        start_time = time.time()
        try:
            with logfire.span("seat_check"):
                outcome = await self._run_cycle()
        except Exception as e:
            logger.error(
                "Seat check failed",
                error=str(e),
                duration_seconds=round(time.time() - start_time, 2),
                exc_info=True,
            )
            await self._log_error(f"Error while checking seats: {e}")
            outcome = CheckOutcome.FAILED
        finally:
            self._finish()

        logger.info(
            "Seat check finished",
            outcome=outcome.value,
            duration_seconds=round(time.time() - start_time, 2),
        )
        return outcome

    async def _run_cycle(self) -> CheckOutcome:
        state = await self.repository.load()
        if not state.courses:
            await self.activity_log.append(
                "No courses configured for monitoring.", "warning"
            )
            return CheckOutcome.NO_COURSES

        await self.activity_log.append("Starting seat availability check...", "info")

        # Transitions are judged against this snapshot, not the merged map
        previous = dict(state.last_availability)

        response = await self._delegate(state)
        if response is None or response.error:
            message = response.error if response is not None else None
            await self.activity_log.append(message or NO_RESPONSE_MESSAGE, "error")
            return CheckOutcome.FAILED

        results = response.results or []
        await self.repository.record_check(results, utc_now_iso())
        await self._report(results, previous)
        return CheckOutcome.COMPLETED

    async def _delegate(self, state: MonitorState) -> Optional[ExtractionResponse]:
        context = await self.provider.create(state.check_url)
        try:
            await context.wait_until_ready()
            raw = await self._with_deadline(
                context.send_message(
                    {
                        "action": "checkSeats",
                        "courses": [c.model_dump(mode="json") for c in state.courses],
                    }
                )
            )
        finally:
            await self._release(context)

        if raw is None:
            return None
        return ExtractionResponse.model_validate(raw)

    async def _with_deadline(self, response: Awaitable) -> Optional[dict]:
        try:
            return await asyncio.wait_for(response, timeout=self.extraction_timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionTimeoutError(TIMEOUT_MESSAGE) from e

    async def _release(self, context: RenderingContext) -> None:
        try:
            await context.close()
        except Exception as e:
            logger.warning("Failed to release rendering context", error=str(e))

    async def _report(
        self, results: list[CheckResult], previous: dict[str, bool]
    ) -> None:
        if not any(result.available for result in results):
            await self.activity_log.append("No seats found in monitored courses.", "info")

        for result in results:
            was_available = previous.get(result.key, False)
            if result.available and not was_available:
                await self._alert(result)
                await self.activity_log.append(
                    availability_message(result.label), "success"
                )
            elif not result.available:
                await self.activity_log.append(f"No seats for {result.label}.", "info")

    async def _alert(self, result: CheckResult) -> None:
        logfire.info("Seats available!", course_key=result.key, seats=result.seats)
        try:
            await self.notifier.send_alert(
                self.alert_title, availability_message(result.label)
            )
        except Exception as e:
            logger.error(
                "Alert delivery failed",
                course_key=result.key,
                error=str(e),
                exc_info=True,
            )

    async def _log_error(self, message: str) -> None:
        try:
            await self.activity_log.append(message, "error")
        except Exception as e:
            logger.error("Could not write activity log", error=str(e), exc_info=True)
