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

"""Recording orchestrator for ReplayCast.

This module drives one trace-to-video conversion end to end:

1. Load the trace and render the replay payload
2. Launch the browser, install the playback bridge and console tap,
   load the payload
3. On the page's start signal: spawn ffmpeg and start the capture loop
4. On the page's finish signal: close the run and release the browser;
   the capture loop then closes ffmpeg's input
5. Report exactly one outcome, the output path or one typed error

Outcomes arrive from several places (ffmpeg exit, broken pipe, console
error, deadline, setup). All of them write to one ResultLatch and the
first write decides the result.

Lifecycle:
    idle --start--> recording --finish--> closed
    idle/recording --console error--> closed
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping, Optional, Union

from replaycast.config import RecordingConfig
from replaycast.core.bridge import BridgeMessage, BridgeSignal, ConsoleErrorTap, PlaybackBridge
from replaycast.core.browser import BrowserManager
from replaycast.core.capture import FrameCaptureLoop
from replaycast.core.encoder import EncoderProcess, EncoderSignal
from replaycast.core.latch import ResultLatch
from replaycast.core.page import SurfaceController
from replaycast.core.payload import build_replay_html, capture_selector
from replaycast.core.state import LifecycleState, RunState
from replaycast.core.trace import load_trace
from replaycast.exceptions import (
    BrowserError,
    RecordingTimeoutError,
    RenderError,
    ReplayCastError,
    SetupError,
)
from replaycast.utils.logger import logger

HostFactory = Callable[..., BrowserManager]
EncoderFactory = Callable[..., EncoderProcess]


class RecordingOrchestrator:
    """Converts one rrweb trace into a video file.

    An orchestrator runs once. The browser and encoder factories are
    injectable so the state machine can be exercised without Playwright
    or ffmpeg.

    Example:
        >>> config = RecordingConfig(input="session.json", output="out.mp4")
        >>> path = await RecordingOrchestrator(config).run()
    """

    def __init__(
        self,
        config: RecordingConfig,
        host_factory: HostFactory = BrowserManager,
        encoder_factory: EncoderFactory = EncoderProcess,
    ) -> None:
        self.config = config
        self._host_factory = host_factory
        self._encoder_factory = encoder_factory

        self._state = RunState()
        self._latch: Optional[ResultLatch] = None
        self._bridge: Optional[PlaybackBridge] = None
        self._host: Optional[BrowserManager] = None
        self._surface: Optional[SurfaceController] = None
        self._encoder: Optional[EncoderProcess] = None
        self._capture: Optional[FrameCaptureLoop] = None
        self._control_task: Optional[asyncio.Task] = None
        self._release_task: Optional[asyncio.Task] = None
        self._started = False

    @property
    def state(self) -> LifecycleState:
        return self._state.current

    @property
    def bridge(self) -> Optional[PlaybackBridge]:
        return self._bridge

    @property
    def encoder(self) -> Optional[EncoderProcess]:
        return self._encoder

    @property
    def capture(self) -> Optional[FrameCaptureLoop]:
        return self._capture

    @property
    def latch(self) -> Optional[ResultLatch]:
        return self._latch

    async def run(self) -> str:
        """Record the configured trace.

        Returns:
            Absolute path of the written video

        Raises:
            SetupError: Trace or browser could not be prepared
            RenderError: The replay failed inside the page
            ProcessError: ffmpeg failed to start or exited non-zero
            StreamError: Frames could not be written to ffmpeg
            RecordingTimeoutError: The configured timeout expired
        """
        if self._started:
            raise ReplayCastError("RecordingOrchestrator.run() can only be called once")
        self._started = True

        self._latch = ResultLatch()
        self._bridge = PlaybackBridge()
        logger.info(
            f"Recording {self.config.input} -> {self.config.output_path} "
            f"({self.config.fps} fps)"
        )

        try:
            try:
                await self._setup()
            except SetupError as e:
                logger.error(f"Setup failed: {e}")
                self._state.advance(LifecycleState.CLOSED)
                self._latch.reject(e)
            else:
                self._control_task = asyncio.create_task(self._control_loop())
                await self._await_outcome()
            output_path = await self._latch.wait()
        finally:
            await self._teardown()

        logger.info(f"Video written to {output_path}")
        return output_path

    async def _setup(self) -> None:
        events = load_trace(self.config.input)
        html = build_replay_html(
            events,
            self.config.player,
            self.config.start_delay_ms,
            self.config.assets,
        )

        self._host = self._host_factory(
            headless=self.config.headless,
            browser_type=self.config.browser_type,
        )
        await self._host.start()
        self._surface = SurfaceController(self._host.page)

        # Bindings and console tap must exist before the payload runs
        ConsoleErrorTap(self._bridge).attach(self._surface)
        await self._bridge.install(self._surface)
        await self._surface.load(html)

    async def _await_outcome(self) -> None:
        done, _ = await asyncio.wait(
            {self._latch.future, self._control_task},
            timeout=self.config.timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if not done:
            await self._abort(
                RecordingTimeoutError(
                    f"Recording did not finish within {self.config.timeout}s"
                )
            )
        elif self._control_task in done and not self._latch.done:
            # Control loop only ends on an unexpected error; surface it
            self._control_task.result()

    async def _control_loop(self) -> None:
        while True:
            message = await self._bridge.receive()
            try:
                await self._dispatch(message)
            except ReplayCastError as e:
                await self._abort(e)

    async def _dispatch(self, message: BridgeMessage) -> None:
        if message.signal is BridgeSignal.START:
            await self._start_recording()
        elif message.signal is BridgeSignal.FINISH:
            await self._finish_recording()
        elif message.signal is BridgeSignal.RENDER_ERROR:
            await self._abort(RenderError(message.payload))

    async def _start_recording(self) -> None:
        if not self._state.advance(LifecycleState.RECORDING):
            logger.warning(f"Ignoring start signal in state {self.state.value}")
            return

        selector = capture_selector(self.config.player)
        logger.info(f"Replay started, capturing {selector}")
        region = await self._surface.region(selector)

        self._encoder = self._encoder_factory(
            fps=self.config.fps,
            output_path=self.config.output_path,
            on_complete=self._on_encoder_complete,
            ffmpeg_path=self.config.ffmpeg_path,
        )
        if not await self._encoder.start():
            return

        self._capture = FrameCaptureLoop(
            region, self._encoder, self._state, self._latch, self.config.fps
        )
        self._capture.start()

    async def _finish_recording(self) -> None:
        if self.state is LifecycleState.IDLE:
            raise RenderError("replay finished before recording started")
        if not self._state.advance(LifecycleState.CLOSED):
            logger.debug(f"Ignoring finish signal in state {self.state.value}")
            return

        logger.info("Replay finished, releasing rendering surface")
        await self._release_surface()

    def _on_encoder_complete(
        self, signal: EncoderSignal, error: Optional[ReplayCastError]
    ) -> None:
        if signal is EncoderSignal.CLOSED_NORMALLY:
            self._latch.resolve(self.config.output_path)
        else:
            self._latch.reject(error)

    async def _abort(self, error: ReplayCastError) -> None:
        """Close the run with ``error`` whatever the current state."""
        if self._latch.reject(error):
            logger.error(f"Recording aborted: {error}")
        self._state.advance(LifecycleState.CLOSED)
        await self._release_surface()

    async def _release_surface(self) -> None:
        # stop() runs to completion even if the caller is cancelled
        if self._release_task is None:
            self._release_task = asyncio.create_task(self._stop_host())
        await asyncio.shield(self._release_task)

    async def _stop_host(self) -> None:
        host, self._host = self._host, None
        if host is None:
            return
        try:
            await host.stop()
        except BrowserError as e:
            logger.warning(f"Failed to release rendering surface: {e}")

    async def _teardown(self) -> None:
        task = self._control_task
        if task is not None:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            elif not task.cancelled() and task.exception() is not None:
                if self._latch is not None and self._latch.done:
                    logger.error(f"Control loop failed after the outcome: {task.exception()!r}")

        self._state.advance(LifecycleState.CLOSED)
        if self._capture is not None:
            await self._capture.stop()
        if self._encoder is not None:
            await self._encoder.terminate()

        release = self._release_task
        if release is None or not release.done():
            await self._release_surface()


async def transform_to_video(
    config: Union[RecordingConfig, Mapping[str, Any], None] = None,
    **overrides: Any,
) -> str:
    """
    Convert an rrweb trace into a video file.

    Args:
        config: A RecordingConfig, or a camelCase mapping accepted by
            RecordingConfig.from_dict; defaults when None
        **overrides: RecordingConfig fields applied on top of ``config``

    Returns:
        Absolute path of the written video

    Example:
        >>> path = await transform_to_video(input="session.json", fps=30)
    """
    if config is None:
        config = RecordingConfig()
    elif not isinstance(config, RecordingConfig):
        config = RecordingConfig.from_dict(config)
    if overrides:
        config = config.with_overrides(**overrides)

    return await RecordingOrchestrator(config).run()
