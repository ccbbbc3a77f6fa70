"""Headless browser session shared by every capture in a run."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from og_cards.errors.exceptions import LaunchFailure

logger = logging.getLogger(__name__)

DEFAULT_LAUNCH_ARGS = ["--disable-gpu", "--disable-dev-shm-usage"]


class BrowserSession:
    """Owns one Chromium process; each capture opens its own page from it."""

    def __init__(self, playwright: Playwright, browser: Browser) -> None:
        self._playwright = playwright
        self.browser = browser
        self._closed = False

    @classmethod
    async def open(
        cls, headless: bool = True, launch_args: list[str] | None = None
    ) -> "BrowserSession":
        """
        Start Playwright and launch Chromium.

        Args:
            headless: Whether to run the browser without a window
            launch_args: Extra Chromium command-line flags

        Returns:
            An open session

        Raises:
            LaunchFailure: If the driver or the browser cannot start
        """
        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise LaunchFailure(f"Failed to start Playwright: {e}") from e

        try:
            browser = await playwright.chromium.launch(
                headless=headless,
                args=launch_args if launch_args is not None else DEFAULT_LAUNCH_ARGS,
            )
        except Exception as e:
            await playwright.stop()
            raise LaunchFailure(f"Failed to launch browser: {e}") from e

        logger.info("Browser launched")
        return cls(playwright, browser)

    async def new_page(
        self, viewport: dict[str, int], device_scale_factor: float = 1.0
    ) -> Page:
        """Open an independent page; the caller must close it."""
        return await self.browser.new_page(
            viewport=viewport, device_scale_factor=device_scale_factor
        )

    @asynccontextmanager
    async def page(
        self, viewport: dict[str, int], device_scale_factor: float = 1.0
    ) -> AsyncIterator[Page]:
        """Open a page for the duration of the block and always close it."""
        page = await self.new_page(viewport, device_scale_factor)
        try:
            yield page
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                # The browser may already be gone; the original error matters more
                logger.warning(f"Failed to close page: {e}")

    async def close(self) -> None:
        """Close the browser and stop the driver. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        try:
            await self.browser.close()
            logger.info("Browser closed")
        finally:
            await self._playwright.stop()

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
