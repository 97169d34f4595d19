"""
Main runner for the course seat monitor.
Wires the services together and keeps monitoring alive until shutdown.
"""

import asyncio
import signal
import sys
from typing import Optional

import structlog

from seat_monitor.config import Settings, get_settings
from seat_monitor.models.commands import Command
from seat_monitor.models.schemas import MonitorState, TrackedItem
from seat_monitor.observability.logfire_config import initialize_logfire
from seat_monitor.observability.logging_config import configure_logging
from seat_monitor.services.activity_log import ActivityLog
from seat_monitor.services.coordinator import CheckCoordinator
from seat_monitor.services.dispatcher import CommandDispatcher
from seat_monitor.services.notification import LogNotifier, Notifier, TwilioNotifier
from seat_monitor.services.registry import CourseRegistry
from seat_monitor.services.renderer import (
    PlaywrightRenderingProvider,
    RenderingContextProvider,
)
from seat_monitor.services.scheduler import CheckScheduler
from seat_monitor.services.state import StateRepository
from seat_monitor.services.storage import JsonFileStore, KeyValueStore

logger = structlog.get_logger(__name__)


def build_notifier(settings: Settings) -> Notifier:
    if settings.twilio_enabled:
        return TwilioNotifier(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
            recipients=settings.recipients,
        )
    logger.info("Twilio not configured, alerts go to the process log")
    return LogNotifier()


class SeatMonitor:
    """Main application object owning every monitoring service."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[KeyValueStore] = None,
        provider: Optional[RenderingContextProvider] = None,
        notifier: Optional[Notifier] = None,
    ):
        """Initialize the monitor; collaborators default to the production ones."""
        self.settings = settings or get_settings()
        self.provider = provider or PlaywrightRenderingProvider(
            timeout=self.settings.page_load_timeout,
            headless=self.settings.headless,
        )
        self.notifier = notifier or build_notifier(self.settings)

        self.repository = StateRepository(
            store or JsonFileStore(self.settings.state_path),
            check_url=self.settings.check_url,
            default_interval_seconds=self.settings.default_interval_seconds,
        )
        self.activity_log = ActivityLog(self.repository)
        self.registry = CourseRegistry(self.repository, self.activity_log)
        self.coordinator = CheckCoordinator(
            self.repository,
            self.activity_log,
            self.provider,
            self.notifier,
            extraction_timeout=self.settings.extraction_timeout,
            alert_title=self.settings.alert_title,
        )
        self.scheduler = CheckScheduler(
            self.repository, self.activity_log, self.coordinator
        )
        self.dispatcher = CommandDispatcher(
            self.registry, self.scheduler, self.coordinator
        )
        self._shutdown = asyncio.Event()

    async def initialize(self) -> None:
        """Persist defaults, seed courses, and resume monitoring if it was on."""
        logger.info("Initializing seat monitor...", check_url=self.settings.check_url)

        await self.repository.initialize(check_url=self.settings.check_url)
        await self.seed_courses()

        resumed = await self.scheduler.resume()
        if not resumed and self.settings.monitor_auto_start:
            logger.info("Auto-starting monitoring")
            await self.scheduler.start()

        logger.info(
            "Seat monitor initialized",
            courses=len(await self.registry.courses()),
            monitoring=resumed or self.settings.monitor_auto_start,
        )

    async def seed_courses(self) -> int:
        """Add courses listed in the YAML seed file; duplicates are ignored."""
        try:
            config = self.settings.load_courses_config()
        except FileNotFoundError:
            logger.debug("No courses seed file", path=self.settings.courses_config_path)
            return 0
        except Exception as e:
            logger.error("Failed to load courses seed file", error=str(e))
            return 0

        tracked = {course.key for course in await self.registry.courses()}
        added = 0
        for entry in config.get("courses") or []:
            if not isinstance(entry, dict) or not entry.get("code"):
                logger.warning("Skipping invalid course entry", entry=entry)
                continue
            code = str(entry["code"])
            section = str(entry["section"]) if entry.get("section") is not None else None
            if TrackedItem.create(code, section).key in tracked:
                continue
            if await self.registry.add(code, section):
                added += 1

        interval = config.get("interval")
        if interval is not None:
            try:
                state = await self.repository.load()
                await self.repository.set_monitoring(state.monitoring, int(interval))
            except (TypeError, ValueError) as e:
                logger.warning("Ignoring invalid seed interval", interval=interval, error=str(e))

        logger.info(f"Seeded {added} course(s) from configuration")
        return added

    async def dispatch(self, command: Command) -> MonitorState:
        await self.dispatcher.dispatch(command)
        return await self.repository.load()

    async def state(self) -> MonitorState:
        return await self.repository.load()

    def request_shutdown(self) -> None:
        self._shutdown.set()

    async def run(self) -> None:
        """Run until shutdown is requested."""
        await self.initialize()
        logger.info("Seat monitor running")
        await self._shutdown.wait()

    async def cleanup(self) -> None:
        """Cleanup resources on shutdown."""
        logger.info("Cleaning up resources...")
        await self.scheduler.shutdown()

        await self.provider.close()

        logger.info("Cleanup complete")

    async def start(self) -> None:
        """Start the monitor and block until shutdown."""
        try:
            await self.run()
        except Exception as e:
            logger.error("Fatal error", error=str(e), exc_info=True)
            raise
        finally:
            await self.cleanup()


def setup_signal_handlers(monitor: SeatMonitor) -> None:
    """Setup signal handlers for graceful shutdown."""
    loop = asyncio.get_running_loop()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, initiating shutdown...")
        loop.call_soon_threadsafe(monitor.request_shutdown)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def main() -> None:
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.log_level)
    initialize_logfire()

    monitor = SeatMonitor(settings)
    setup_signal_handlers(monitor)

    try:
        await monitor.start()
    except Exception as e:
        logger.error("Application failed", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
