"""Tests for the repeating check scheduler."""

import asyncio

import pytest

from seat_monitor.services.activity_log import ActivityLog
from seat_monitor.services.coordinator import CheckCoordinator
from seat_monitor.services.scheduler import CheckScheduler
from seat_monitor.services.state import StateRepository

NO_COURSES = "No courses configured for monitoring."


class TestStart:
    async def test_start_persists_arms_and_checks_immediately(
        self,
        scheduler: CheckScheduler,
        repository: StateRepository,
        activity_log: ActivityLog,
    ) -> None:
        interval = await scheduler.start(5)

        assert interval == 5
        assert scheduler.is_armed
        assert scheduler.interval_seconds == 5
        state = await repository.load()
        assert state.monitoring is True
        assert state.interval_seconds == 5

        messages = [e.message for e in reversed(state.logs)]
        assert messages == [
            "Monitoring started. Checks every 5 seconds.",
            NO_COURSES,
        ]

    async def test_start_without_interval_uses_persisted_one(
        self, scheduler: CheckScheduler, repository: StateRepository
    ) -> None:
        await repository.set_monitoring(False, 45)

        assert await scheduler.start() == 45
        assert scheduler.interval_seconds == 45

    async def test_restart_replaces_timer(self, scheduler: CheckScheduler) -> None:
        await scheduler.start(10)
        await scheduler.start(20)

        assert scheduler.interval_seconds == 20

    async def test_invalid_interval_is_rejected(self, scheduler: CheckScheduler) -> None:
        with pytest.raises(ValueError):
            await scheduler.start(0)
        assert not scheduler.is_armed

    async def test_timer_triggers_checks(
        self, scheduler: CheckScheduler, activity_log: ActivityLog
    ) -> None:
        await scheduler.start(1)

        await asyncio.sleep(1.3)

        messages = [e.message for e in await activity_log.entries()]
        assert messages.count(NO_COURSES) >= 2


class TestStop:
    async def test_stop_disarms_and_persists(
        self,
        scheduler: CheckScheduler,
        repository: StateRepository,
    ) -> None:
        await scheduler.start(5)

        await scheduler.stop()

        assert not scheduler.is_armed
        state = await repository.load()
        assert state.monitoring is False
        assert state.logs[0].message == "Monitoring stopped."
        assert state.logs[0].type == "warning"

    async def test_stop_when_not_running(
        self, scheduler: CheckScheduler, repository: StateRepository
    ) -> None:
        await scheduler.stop()

        assert (await repository.load()).monitoring is False


class TestResume:
    async def test_resume_rearms_persisted_monitoring(
        self,
        scheduler: CheckScheduler,
        repository: StateRepository,
        activity_log: ActivityLog,
    ) -> None:
        await repository.set_monitoring(True, 90)

        assert await scheduler.resume()

        assert scheduler.is_armed
        assert scheduler.interval_seconds == 90
        assert await activity_log.entries() == []

    async def test_resume_does_nothing_when_stopped(
        self, scheduler: CheckScheduler
    ) -> None:
        assert not await scheduler.resume()
        assert not scheduler.is_armed


class TestResilience:
    async def test_failing_check_does_not_kill_timer(
        self,
        scheduler: CheckScheduler,
        coordinator: CheckCoordinator,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await scheduler.start(5)

        async def explode():
            raise RuntimeError("unexpected")

        monkeypatch.setattr(coordinator, "run_check", explode)

        await scheduler._guarded_check()

        assert scheduler.is_armed

    async def test_shutdown_keeps_persisted_flag(
        self, scheduler: CheckScheduler, repository: StateRepository
    ) -> None:
        await scheduler.start(5)

        await scheduler.shutdown()

        assert not scheduler.is_armed
        assert (await repository.load()).monitoring is True
