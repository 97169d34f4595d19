"""
Single entry point for control commands.
"""

from typing import Awaitable, Callable

import structlog

from seat_monitor.models.commands import (
    AddCourseCommand,
    CheckNowCommand,
    Command,
    RemoveCourseCommand,
    StartMonitoringCommand,
    StopMonitoringCommand,
)
from seat_monitor.services.coordinator import CheckCoordinator
from seat_monitor.services.registry import CourseRegistry
from seat_monitor.services.scheduler import CheckScheduler

logger = structlog.get_logger(__name__)


class CommandDispatcher:
    """Routes each command variant to its one handler."""

    def __init__(
        self,
        registry: CourseRegistry,
        scheduler: CheckScheduler,
        coordinator: CheckCoordinator,
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.coordinator = coordinator
        self._handlers: dict[type, Callable[..., Awaitable]] = {
            AddCourseCommand: self._add_course,
            RemoveCourseCommand: self._remove_course,
            StartMonitoringCommand: self._start_monitoring,
            StopMonitoringCommand: self._stop_monitoring,
            CheckNowCommand: self._check_now,
        }

    async def dispatch(self, command: Command) -> None:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {type(command).__name__}")

        logger.info("Dispatching command", action=command.action)
        await handler(command)

    async def _add_course(self, command: AddCourseCommand) -> None:
        await self.registry.add(command.course.code, command.course.section)

    async def _remove_course(self, command: RemoveCourseCommand) -> None:
        await self.registry.remove(command.course_key)

    async def _start_monitoring(self, command: StartMonitoringCommand) -> None:
        await self.scheduler.start(command.interval_seconds)

    async def _stop_monitoring(self, command: StopMonitoringCommand) -> None:
        await self.scheduler.stop()

    async def _check_now(self, command: CheckNowCommand) -> None:
        await self.coordinator.run_check()
