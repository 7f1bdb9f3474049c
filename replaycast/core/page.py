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
Rendering surface controller.

This module provides the SurfaceController class which wraps the Playwright
page the replay runs in. It covers the handful of page operations the
recording pipeline needs (bindings, console subscription, loading the
payload and locating the capture region) with error handling and logging.
"""

from __future__ import annotations

from typing import Any, Callable

from playwright.async_api import ElementHandle, Page

from replaycast.exceptions import BrowserError, RenderError
from replaycast.utils.logger import logger


class SurfaceController:
    """
    Controls the page that hosts the replay.

    Attributes:
        page: The underlying Playwright Page instance

    Example:
        >>> surface = SurfaceController(manager.page)
        >>> await surface.expose("onReplayStart", on_start)
        >>> await surface.load(html)
        >>> region = await surface.region(".replayer-wrapper")
    """

    def __init__(self, page: Page) -> None:
        self.page = page

    async def expose(self, name: str, callback: Callable[..., Any]) -> None:
        """
        Expose a Python callable as ``window.<name>`` in the page.

        Raises:
            BrowserError: If the binding cannot be registered
        """
        try:
            await self.page.expose_function(name, callback)
            logger.debug(f"Exposed page binding {name}")
        except Exception as e:
            logger.error(f"Failed to expose {name}: {e}")
            raise BrowserError(f"Failed to expose page binding {name}: {e}") from e

    def on_console(self, handler: Callable[[Any], None]) -> None:
        """Subscribe to the page's console messages."""
        self.page.on("console", handler)

    async def load(self, html: str, timeout: int = 30000) -> None:
        """
        Replace the page content and wait for the load event.

        Args:
            html: Complete HTML document
            timeout: Maximum time to wait in milliseconds

        Raises:
            BrowserError: If the content fails to load
        """
        try:
            logger.info(f"Loading replay payload ({len(html)} bytes)")
            await self.page.set_content(html, wait_until="load", timeout=timeout)
        except Exception as e:
            logger.error(f"Payload load failed: {e}")
            raise BrowserError(f"Failed to load replay payload: {e}") from e

    async def region(self, selector: str) -> ElementHandle:
        """
        Locate the element that frames are captured from.

        Raises:
            RenderError: If no element matches
        """
        try:
            element = await self.page.query_selector(selector)
        except Exception as e:
            logger.error(f"Region lookup failed: {e}")
            raise RenderError(f"failed to query replay region {selector}: {e}") from e
        if element is None:
            raise RenderError(f"failed to get replayer element ({selector})")
        return element
