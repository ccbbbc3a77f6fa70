"""Tests for the browser session wrapper."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from og_cards.browser import DEFAULT_LAUNCH_ARGS, BrowserSession
from og_cards.errors.exceptions import LaunchFailure


@pytest.fixture
def playwright_mocks():
    """Patch async_playwright with a driver, browser and page made of mocks."""
    page = MagicMock()
    page.close = AsyncMock()

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    driver = MagicMock()
    driver.chromium.launch = AsyncMock(return_value=browser)
    driver.stop = AsyncMock()

    with patch("og_cards.browser.async_playwright") as factory:
        factory.return_value.start = AsyncMock(return_value=driver)
        yield {"driver": driver, "browser": browser, "page": page}


def describe_open():
    """Test launching the browser."""

    @pytest.mark.asyncio
    async def it_launches_headless_chromium(playwright_mocks):
        """Launches Chromium with the default flags."""
        session = await BrowserSession.open()

        assert session.browser is playwright_mocks["browser"]
        playwright_mocks["driver"].chromium.launch.assert_awaited_once_with(
            headless=True, args=DEFAULT_LAUNCH_ARGS
        )

    @pytest.mark.asyncio
    async def it_wraps_launch_errors_and_stops_the_driver(playwright_mocks):
        """A browser that cannot start raises LaunchFailure and leaves no driver behind."""
        driver = playwright_mocks["driver"]
        driver.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

        with pytest.raises(LaunchFailure, match="Executable doesn't exist"):
            await BrowserSession.open()

        driver.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def it_wraps_driver_start_errors():
        """A driver that cannot start raises LaunchFailure."""
        with patch("og_cards.browser.async_playwright") as factory:
            factory.return_value.start = AsyncMock(side_effect=RuntimeError("no driver"))

            with pytest.raises(LaunchFailure, match="no driver"):
                await BrowserSession.open()


def describe_pages():
    """Test page handling."""

    @pytest.mark.asyncio
    async def it_opens_pages_with_viewport_and_scale(playwright_mocks):
        """Passes viewport and device scale factor through."""
        session = await BrowserSession.open()

        page = await session.new_page({"width": 1200, "height": 630}, 2)

        assert page is playwright_mocks["page"]
        playwright_mocks["browser"].new_page.assert_awaited_once_with(
            viewport={"width": 1200, "height": 630}, device_scale_factor=2
        )

    @pytest.mark.asyncio
    async def it_closes_the_page_when_the_block_fails(playwright_mocks):
        """The scoped page is closed even if the body raises."""
        session = await BrowserSession.open()

        with pytest.raises(ValueError):
            async with session.page({"width": 1200, "height": 630}, 2):
                raise ValueError("navigation failed")

        playwright_mocks["page"].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def it_logs_page_close_errors(playwright_mocks, caplog):
        """A page that cannot be closed does not mask the block's outcome."""
        playwright_mocks["page"].close.side_effect = PlaywrightError("Target closed")
        session = await BrowserSession.open()

        async with session.page({"width": 1200, "height": 630}):
            pass

        assert "Failed to close page" in caplog.text


def describe_close():
    """Test shutting the session down."""

    @pytest.mark.asyncio
    async def it_closes_browser_and_driver_once(playwright_mocks):
        """Repeated close calls only close once."""
        session = await BrowserSession.open()

        async with session:
            pass
        await session.close()

        playwright_mocks["browser"].close.assert_awaited_once()
        playwright_mocks["driver"].stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def it_stops_the_driver_even_if_browser_close_fails(playwright_mocks):
        """The driver is stopped even when the browser is already gone."""
        playwright_mocks["browser"].close.side_effect = PlaywrightError("Browser closed")
        session = await BrowserSession.open()

        with pytest.raises(PlaywrightError):
            await session.close()

        playwright_mocks["driver"].stop.assert_awaited_once()
