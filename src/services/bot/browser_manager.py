"""Browser lifecycle management for portal automation."""

from typing import Any, Dict, List, Optional

from loguru import logger
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from ...constants import LogEmoji
from ...core.config.settings import BotSettings, get_settings

# Flags needed to run Chromium inside containers and small PaaS instances
CHROMIUM_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


class BrowserManager:
    """Owns one Chromium instance, one context and the pages opened in it."""

    def __init__(self, settings: Optional[BotSettings] = None):
        """
        Initialize browser manager.

        Args:
            settings: Application settings (defaults to the global settings)
        """
        self.settings = settings or get_settings()
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.playwright: Optional[Playwright] = None

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch browser and create the context."""
        if self.browser is not None:
            logger.warning("Browser already started")
            return

        try:
            self.playwright = await async_playwright().start()

            launch_options: Dict[str, Any] = {
                "headless": self.settings.headless,
                "args": CHROMIUM_ARGS,
            }
            if self.settings.browser_executable_path:
                launch_options["executable_path"] = self.settings.browser_executable_path

            self.browser = await self.playwright.chromium.launch(**launch_options)
            self.context = await self.browser.new_context(
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                },
                ignore_https_errors=True,
            )
            logger.info(f"{LogEmoji.BROWSER} Browser started (headless={self.settings.headless})")
        except Exception:
            # Clean up partial resources on error
            await self.close()
            raise

    async def close(self) -> None:
        """Clean up browser resources. Safe to call more than once."""
        if self.context:
            try:
                await self.context.close()
            except Exception as e:
                logger.warning(f"Failed to close browser context: {e}")
            self.context = None

        if self.browser:
            try:
                await self.browser.close()
            except Exception as e:
                logger.warning(f"Failed to close browser: {e}")
            self.browser = None
            logger.debug("Browser closed")

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

        logger.info("Browser resources cleaned up")

    async def new_page(self) -> Page:
        """
        Create a new page with the configured default timeouts.

        Returns:
            New Page instance

        Raises:
            RuntimeError: If browser context is not initialized
        """
        if self.context is None:
            raise RuntimeError("Browser context is not initialized. Call start() first.")

        page = await self.context.new_page()
        page.set_default_timeout(self.settings.default_timeout_ms)
        page.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
        return page
