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
Inbound signals from the replay page.

The replay runs inside the browser, so the orchestrator learns about it
only through two channels:

- PlaybackBridge: page bindings ``onReplayStart`` and ``onReplayFinish``
  that the payload calls when playback begins and ends
- ConsoleErrorTap: console messages carrying the error marker the payload
  prints when the player cannot be constructed

Both turn what they observe into BridgeMessage values on one queue, which
the orchestrator drains in order.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any

from replaycast.core.page import SurfaceController
from replaycast.utils.logger import logger

START_BINDING = "onReplayStart"
FINISH_BINDING = "onReplayFinish"
ERROR_MARKER = "Replayer Uncaught Error:"


class BridgeSignal(str, Enum):
    """Kinds of message the page can send."""
    START = "start"
    FINISH = "finish"
    RENDER_ERROR = "render_error"


@dataclass(frozen=True)
class BridgeMessage:
    """One inbound message from the replay page."""

    signal: BridgeSignal
    payload: str = ""


class PlaybackBridge:
    """Queue of start/finish/error messages coming out of the page.

    Tests can drive an orchestrator without a browser by calling
    ``post`` directly.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[BridgeMessage]" = asyncio.Queue()

    def post(self, signal: BridgeSignal, payload: str = "") -> None:
        """Enqueue a message. Safe to call from Playwright callbacks."""
        logger.debug(f"[BRIDGE] Received {signal.value}")
        self._queue.put_nowait(BridgeMessage(signal, payload))

    async def receive(self) -> BridgeMessage:
        """Wait for the next message."""
        return await self._queue.get()

    async def install(self, surface: SurfaceController) -> None:
        """Expose the two bindings on the page. Must run before content loads."""
        await surface.expose(START_BINDING, self._on_start)
        await surface.expose(FINISH_BINDING, self._on_finish)

    def _on_start(self) -> None:
        self.post(BridgeSignal.START)

    def _on_finish(self) -> None:
        self.post(BridgeSignal.FINISH)


class ConsoleErrorTap:
    """Detects the player's uncaught-error marker on the page console."""

    def __init__(self, bridge: PlaybackBridge) -> None:
        self.bridge = bridge

    def attach(self, surface: SurfaceController) -> None:
        surface.on_console(self.handle)

    def handle(self, message: Any) -> None:
        """Inspect one Playwright ConsoleMessage."""
        if message.type != "error":
            return
        text = message.text
        if not text.startswith(ERROR_MARKER):
            return
        detail = text[len(ERROR_MARKER):].strip()
        logger.error(f"[BRIDGE] Replay error reported by page: {detail}")
        self.bridge.post(BridgeSignal.RENDER_ERROR, detail)
