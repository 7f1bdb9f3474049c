# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Browser management for ReplayCast.

This module provides the BrowserManager class which owns the Playwright
browser that hosts the replay: launching it, creating the single page the
trace is replayed in, and releasing everything exactly once.

The BrowserManager supports Chromium, Firefox and WebKit.
"""

from __future__ import annotations

from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from replaycast.exceptions import BrowserError
from replaycast.utils.logger import logger


class BrowserManager:
    """
    Manages the Playwright browser used as the rendering host.

    Attributes:
        headless: Whether browser runs in headless mode (no visible window)
        browser_type: Type of browser (chromium, firefox, webkit)
        launch_options: Additional Playwright launch options

    Example:
        >>> manager = BrowserManager(headless=True)
        >>> await manager.start()
        >>> page = manager.page
        >>> await manager.stop()
    """

    def __init__(
        self,
        headless: bool = True,
        browser_type: str = "chromium",
        **launch_options: Any,
    ) -> None:
        """
        Initialize the browser manager with configuration.

        Args:
            headless: Whether to run browser in headless mode.
                Default: True
            browser_type: "chromium" (default), "firefox" or "webkit"
            **launch_options: Additional Playwright launch options such as
                args, slow_mo or executable_path
        """
        self.headless = headless
        self.browser_type = browser_type
        self.launch_options = launch_options
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        """
        Launch the browser and open the replay page.

        Raises:
            BrowserError: If browser fails to start or unsupported browser type
        """
        try:
            logger.info(f"Starting {self.browser_type} browser (headless={self.headless})")
            self._playwright = await async_playwright().start()

            launcher = getattr(self._playwright, self.browser_type, None)
            if self.browser_type not in ("chromium", "firefox", "webkit") or launcher is None:
                raise BrowserError(f"Unsupported browser type: {self.browser_type}")

            self._browser = await launcher.launch(
                headless=self.headless, **self.launch_options
            )

            self._context = await self._browser.new_context()
            self._page = await self._context.new_page()

            logger.info("Browser started successfully")
        except BrowserError:
            await self._discard_playwright()
            raise
        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            await self._discard_playwright()
            raise BrowserError(f"Failed to start browser: {e}") from e

    async def stop(self) -> None:
        """
        Close the page, context and browser, then stop Playwright.

        Safe to call more than once; later calls do nothing.

        Raises:
            BrowserError: If cleanup fails
        """
        page, context, browser, playwright = (
            self._page, self._context, self._browser, self._playwright,
        )
        if not (page or context or browser or playwright):
            return
        self._page = self._context = self._browser = self._playwright = None

        try:
            logger.info("Stopping browser")
            if page:
                await page.close()
            if context:
                await context.close()
            if browser:
                await browser.close()
            if playwright:
                await playwright.stop()
            logger.info("Browser stopped successfully")
        except Exception as e:
            logger.error(f"Error stopping browser: {e}")
            raise BrowserError(f"Failed to stop browser: {e}") from e

    @property
    def page(self) -> Page:
        """Get the replay page."""
        if not self._page:
            raise BrowserError("No active page. Call start() first.")
        return self._page

    @property
    def is_running(self) -> bool:
        return self._page is not None

    async def _discard_playwright(self) -> None:
        playwright, self._playwright = self._playwright, None
        self._browser = self._context = self._page = None
        if playwright is None:
            return
        try:
            await playwright.stop()
        except Exception as e:
            logger.debug(f"Error stopping Playwright after failed start: {e}")

    async def __aenter__(self) -> "BrowserManager":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.stop()
