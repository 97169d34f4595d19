"""Tests for application wiring and restart behaviour."""

from pathlib import Path

from seat_monitor.config import Settings
from seat_monitor.models.commands import parse_command
from seat_monitor.runner import SeatMonitor, build_notifier
from seat_monitor.services.notification import LogNotifier, TwilioNotifier
from tests.fakes import FakeNotifier, FakeRenderingProvider, FakeStore


def _write_seed(settings: Settings, content: str) -> None:
    Path(settings.courses_config_path).write_text(content, encoding="utf-8")


async def test_initialize_persists_defaults(
    monitor: SeatMonitor, store: FakeStore, settings: Settings
) -> None:
    await monitor.initialize()

    assert store.data["checkUrl"] == settings.check_url
    assert store.data["intervalSeconds"] == 30
    assert not monitor.scheduler.is_armed


async def test_seed_file_adds_courses_once(
    monitor: SeatMonitor, settings: Settings
) -> None:
    _write_seed(
        settings,
        "courses:\n  - code: cse115\n    section: 3\n  - code: MAT120\ninterval: 90\n",
    )

    await monitor.initialize()
    await monitor.initialize()

    state = await monitor.state()
    assert [c.key for c in state.courses] == ["CSE115|3", "MAT120|"]
    assert state.interval_seconds == 90
    assert not any("already in list" in e.message for e in state.logs)


async def test_invalid_seed_entries_are_skipped(
    monitor: SeatMonitor, settings: Settings
) -> None:
    _write_seed(settings, "courses:\n  - section: 1\n  - code: EEE141\n")

    assert await monitor.seed_courses() == 1


async def test_invalid_seed_interval_is_ignored(
    monitor: SeatMonitor, settings: Settings
) -> None:
    _write_seed(settings, "courses: []\ninterval: 0\n")

    await monitor.initialize()

    assert (await monitor.state()).interval_seconds == 30


async def test_monitoring_survives_restart(
    settings: Settings, provider: FakeRenderingProvider, notifier: FakeNotifier
) -> None:
    store = FakeStore()
    first = SeatMonitor(settings, store=store, provider=provider, notifier=notifier)
    await first.initialize()
    await first.dispatch(parse_command({"action": "startMonitoring", "intervalSeconds": 15}))
    await first.cleanup()

    second = SeatMonitor(settings, store=store, provider=provider, notifier=notifier)
    await second.initialize()
    try:
        assert second.scheduler.is_armed
        assert second.scheduler.interval_seconds == 15
    finally:
        await second.cleanup()


async def test_auto_start(
    tmp_path: Path, provider: FakeRenderingProvider, notifier: FakeNotifier
) -> None:
    settings = Settings(
        STATE_PATH=str(tmp_path / "state.json"),
        COURSES_CONFIG_PATH=str(tmp_path / "none.yaml"),
        MONITOR_AUTO_START=True,
    )
    monitor = SeatMonitor(settings, store=FakeStore(), provider=provider, notifier=notifier)

    await monitor.initialize()
    try:
        assert monitor.scheduler.is_armed
        assert (await monitor.state()).monitoring is True
    finally:
        await monitor.cleanup()


async def test_cleanup_closes_provider(
    monitor: SeatMonitor, provider: FakeRenderingProvider
) -> None:
    await monitor.initialize()

    await monitor.cleanup()

    assert provider.closed


def test_build_notifier_falls_back_to_log() -> None:
    assert isinstance(build_notifier(Settings(ALERT_RECIPIENTS="")), LogNotifier)


def test_build_notifier_uses_twilio_when_configured() -> None:
    settings = Settings(
        ALERT_RECIPIENTS="+8801000000001",
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="secret",
        TWILIO_FROM_NUMBER="+14155238886",
    )

    assert isinstance(build_notifier(settings), TwilioNotifier)
