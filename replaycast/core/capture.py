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
Fixed-rate frame capture from the replay region.

The FrameCaptureLoop samples one element of the page every ``1 / fps``
seconds while the run is recording and hands each PNG straight to the
encoder. It never buffers frames: a slow encoder makes the write await
longer, which pushes the next tick back.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from replaycast.core.encoder import EncoderProcess
from replaycast.core.latch import ResultLatch
from replaycast.core.state import RunState
from replaycast.utils.logger import logger


class FrameCaptureLoop:
    """Timer-driven sampler feeding the encoder.

    Each tick either captures one frame (state is recording, encoder
    healthy) or ends the loop. When the loop ends because the run closed
    cleanly it closes the encoder input, which makes ffmpeg finalize the
    video.

    Attributes:
        interval: Seconds between ticks
        frames_captured: Frames handed to the encoder
        capture_misses: Capture attempts that failed and were skipped

    Example:
        >>> loop = FrameCaptureLoop(region, encoder, state, latch, fps=15)
        >>> loop.start()
        >>> # ... state moves to CLOSED ...
        >>> await loop.wait()
    """

    def __init__(
        self,
        region: Any,
        encoder: EncoderProcess,
        state: RunState,
        latch: ResultLatch,
        fps: int,
    ) -> None:
        """
        Initialize the capture loop.

        Args:
            region: Element handle of the replay region; must provide an
                awaitable ``screenshot(type="png")``
            encoder: Encoder receiving the frames
            state: Shared lifecycle state, read at every tick
            latch: Run result; a decided error suppresses the final close
            fps: Frames per second
        """
        self.region = region
        self.encoder = encoder
        self.state = state
        self.latch = latch
        self.interval = 1.0 / fps
        self.frames_captured = 0
        self.capture_misses = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the first tick one interval from now."""
        if self._task is not None:
            return
        logger.info(
            f"[CAPTURE] Starting capture loop ({1.0 / self.interval:.0f} fps, "
            f"{self.interval * 1000:.1f}ms interval)"
        )
        self._task = asyncio.create_task(self._run())

    async def wait(self) -> None:
        """Wait for the loop to end on its own."""
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        """Cancel the loop without closing the encoder."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while True:
            next_tick += self.interval
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            else:
                # Overran the schedule; restart from now instead of bursting
                next_tick = loop.time()

            if not self.state.is_recording or self.encoder.failed:
                break
            await self._tick()

        logger.info(
            f"[CAPTURE] Capture loop finished: {self.frames_captured} frames, "
            f"{self.capture_misses} misses"
        )
        if self.state.is_closed and not self.encoder.failed and not self.latch.failed:
            await self.encoder.close()

    async def _tick(self) -> None:
        try:
            frame = await self.region.screenshot(type="png")
        except Exception as e:
            # Expected around state transitions and page teardown
            self.capture_misses += 1
            logger.debug(f"[CAPTURE] Capture miss ({self.capture_misses}): {e}")
            return

        if await self.encoder.write(frame):
            self.frames_captured += 1
