"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from seat_monitor.config import Settings
from seat_monitor.runner import SeatMonitor
from seat_monitor.services.activity_log import ActivityLog
from seat_monitor.services.coordinator import CheckCoordinator
from seat_monitor.services.dispatcher import CommandDispatcher
from seat_monitor.services.registry import CourseRegistry
from seat_monitor.services.scheduler import CheckScheduler
from seat_monitor.services.state import StateRepository
from tests.fakes import FakeNotifier, FakeRenderingProvider, FakeStore

CHECK_URL = "https://registration.example.edu/offered-courses"


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def repository(store: FakeStore) -> StateRepository:
    return StateRepository(store, check_url=CHECK_URL)


@pytest.fixture
def activity_log(repository: StateRepository) -> ActivityLog:
    return ActivityLog(repository)


@pytest.fixture
def registry(repository: StateRepository, activity_log: ActivityLog) -> CourseRegistry:
    return CourseRegistry(repository, activity_log)


@pytest.fixture
def provider() -> FakeRenderingProvider:
    return FakeRenderingProvider()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def coordinator(
    repository: StateRepository,
    activity_log: ActivityLog,
    provider: FakeRenderingProvider,
    notifier: FakeNotifier,
) -> CheckCoordinator:
    return CheckCoordinator(
        repository,
        activity_log,
        provider,
        notifier,
        extraction_timeout=1.0,
        alert_title="Seat Alert",
    )


@pytest.fixture
async def scheduler(
    repository: StateRepository,
    activity_log: ActivityLog,
    coordinator: CheckCoordinator,
) -> AsyncGenerator[CheckScheduler, None]:
    scheduler = CheckScheduler(repository, activity_log, coordinator)
    yield scheduler
    await scheduler.shutdown()


@pytest.fixture
def dispatcher(
    registry: CourseRegistry,
    scheduler: CheckScheduler,
    coordinator: CheckCoordinator,
) -> CommandDispatcher:
    return CommandDispatcher(registry, scheduler, coordinator)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        CHECK_URL=CHECK_URL,
        STATE_PATH=str(tmp_path / "state.json"),
        COURSES_CONFIG_PATH=str(tmp_path / "courses.yaml"),
        EXTRACTION_TIMEOUT=1.0,
    )


@pytest.fixture
async def monitor(
    settings: Settings,
    store: FakeStore,
    provider: FakeRenderingProvider,
    notifier: FakeNotifier,
) -> AsyncGenerator[SeatMonitor, None]:
    monitor = SeatMonitor(settings, store=store, provider=provider, notifier=notifier)
    yield monitor
    await monitor.cleanup()
