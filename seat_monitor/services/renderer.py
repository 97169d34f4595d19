"""
Ephemeral rendering contexts backed by Playwright.
Each check gets its own isolated browser context and page, torn down after use.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from seat_monitor.services.extraction import handle_message

logger = logging.getLogger(__name__)

BLOCKED_RESOURCES = "**/*.{png,jpg,jpeg,gif,svg,ico,woff,woff2,ttf,eot}"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class RenderingContext(ABC):
    """One isolated, short-lived page pointed at the monitored URL."""

    @abstractmethod
    async def wait_until_ready(self) -> None:
        """Return once the page content is fully loaded."""
        ...

    @abstractmethod
    async def send_message(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Deliver a message to the page and return its response, if any."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class RenderingContextProvider(ABC):
    """Creates rendering contexts."""

    @abstractmethod
    async def create(self, url: str) -> RenderingContext:
        ...

    async def close(self) -> None:
        """Release provider-wide resources."""


class PlaywrightRenderingContext(RenderingContext):
    def __init__(self, context: BrowserContext, page: Page, url: str, timeout_ms: int):
        self.context = context
        self.page = page
        self.url = url
        self.timeout_ms = timeout_ms

    async def wait_until_ready(self) -> None:
        await self.page.goto(self.url, timeout=self.timeout_ms, wait_until="load")

    async def send_message(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        html = await self.page.content()
        # Parsing runs off the loop so the caller's deadline can still fire
        return await asyncio.to_thread(handle_message, message, html, self.page.url)

    async def close(self) -> None:
        # Always close the page and context
        try:
            await self.page.close()
        finally:
            await self.context.close()


class PlaywrightRenderingProvider(RenderingContextProvider):
    """Provider owning one headless Chromium shared by all contexts."""

    def __init__(self, timeout: int = 30, headless: bool = True):
        """
        Initialize the provider.

        Args:
            timeout: Maximum time to wait for page loading (in seconds)
            headless: Run Chromium without a window
        """
        self.timeout = timeout * 1000  # Convert to milliseconds for Playwright
        self.headless = headless
        self.browser: Optional[Browser] = None
        self._playwright = None

    async def initialize(self) -> None:
        """Initialize Playwright browser instance."""
        if self.browser is None:
            logger.info("Initializing Playwright browser...")
            self._playwright = await async_playwright().start()
            self.browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--no-sandbox",
                ],
            )
            logger.info("Playwright browser initialized successfully")

    async def close(self) -> None:
        """Close Playwright browser and cleanup resources."""
        if self.browser:
            logger.info("Closing Playwright browser...")
            await self.browser.close()
            self.browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
            logger.info("Playwright browser closed successfully")

    async def create(self, url: str) -> RenderingContext:
        if self.browser is None:
            await self.initialize()

        # New browser context per check for isolation
        context = await self.browser.new_context(
            user_agent=USER_AGENT,
            viewport={"width": 1920, "height": 1080},
        )
        try:
            # Block images and fonts, the tables are all we need
            await context.route(BLOCKED_RESOURCES, lambda route: route.abort())
            page = await context.new_page()
        except Exception:
            await context.close()
            raise

        logger.debug(f"Created rendering context for {url}")
        return PlaywrightRenderingContext(context, page, url, self.timeout)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
