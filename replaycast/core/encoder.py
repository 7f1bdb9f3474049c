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

"""FFmpeg encoder process for ReplayCast.

This module owns the external ffmpeg process that turns a stream of still
images into a video file:
- Fixed image2pipe invocation reading PNG frames from stdin
- Awaited writes, so a slow encoder slows the producer instead of
  buffering frames in memory
- Exactly one completion signal per process lifetime
- ffmpeg's stderr forwarded to the logger
"""

from __future__ import annotations

import asyncio
import shutil
from collections import deque
from enum import Enum
from typing import Callable, Deque, List, Optional

from replaycast.exceptions import ProcessError, ReplayCastError, StreamError
from replaycast.utils.logger import logger


class EncoderSignal(str, Enum):
    """Completion signal emitted once per encoder process."""
    CLOSED_NORMALLY = "closed-normally"
    PROCESS_ERROR = "process-error"
    STREAM_ERROR = "stream-error"


CompletionCallback = Callable[[EncoderSignal, Optional[ReplayCastError]], None]


def find_ffmpeg(ffmpeg_path: Optional[str] = None) -> str:
    """Resolve the ffmpeg binary.

    An explicit path is used as is. Otherwise ffmpeg is looked up in PATH;
    if it is missing the bare name is returned and the spawn failure is
    reported as a ProcessError when the encoder starts.
    """
    if ffmpeg_path:
        return ffmpeg_path
    return shutil.which("ffmpeg") or "ffmpeg"


def build_ffmpeg_command(ffmpeg_path: str, fps: int, output_path: str) -> List[str]:
    """Build the ffmpeg command line.

    Frames arrive as concatenated images on stdin with no length framing;
    the image2pipe demuxer finds the frame boundaries.
    """
    return [
        ffmpeg_path,
        # fps
        "-framerate", str(fps),
        # input
        "-f", "image2pipe",
        "-i", "-",
        # output
        "-y", output_path,
    ]


class EncoderProcess:
    """Wrapper around one ffmpeg process fed through its stdin.

    The owner supplies ``on_complete``, which is called exactly once with
    the first of:
    - CLOSED_NORMALLY: ffmpeg exited with code 0 and no error was latched
    - PROCESS_ERROR: ffmpeg could not be spawned or exited non-zero
    - STREAM_ERROR: writing to or closing stdin failed

    Example:
        >>> encoder = EncoderProcess(15, "/tmp/out.mp4", on_complete=handler)
        >>> if await encoder.start():
        ...     await encoder.write(png_bytes)
        ...     await encoder.close()
    """

    STDERR_TAIL_LINES = 20

    def __init__(
        self,
        fps: int,
        output_path: str,
        on_complete: CompletionCallback,
        ffmpeg_path: Optional[str] = None,
    ) -> None:
        self.fps = fps
        self.output_path = output_path
        self.ffmpeg_path = find_ffmpeg(ffmpeg_path)
        self._on_complete = on_complete

        self._process: Optional[asyncio.subprocess.Process] = None
        self._error: Optional[ReplayCastError] = None
        self._signal: Optional[EncoderSignal] = None
        self._input_closed = False
        self._terminating = False
        self._exit_task: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._stderr_tail: Deque[str] = deque(maxlen=self.STDERR_TAIL_LINES)
        self.frames_written = 0

    @property
    def command(self) -> List[str]:
        return build_ffmpeg_command(self.ffmpeg_path, self.fps, self.output_path)

    @property
    def failed(self) -> bool:
        """Whether a process or stream error has been latched."""
        return self._error is not None

    @property
    def finished(self) -> bool:
        """Whether the completion signal has been emitted."""
        return self._signal is not None

    @property
    def signal(self) -> Optional[EncoderSignal]:
        return self._signal

    @property
    def input_closed(self) -> bool:
        return self._input_closed

    async def start(self) -> bool:
        """Spawn ffmpeg.

        Returns:
            True if the process is running. On False the PROCESS_ERROR
            signal has already been emitted.
        """
        cmd = self.command
        logger.info(f"[ENCODER] FFmpeg command: {' '.join(cmd)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            self._fail(
                EncoderSignal.PROCESS_ERROR,
                ProcessError(f"FFmpeg not found ({cmd[0]}). Please install FFmpeg."),
                cause=e,
            )
            return False
        except OSError as e:
            self._fail(
                EncoderSignal.PROCESS_ERROR,
                ProcessError(f"Failed to start FFmpeg: {e}"),
                cause=e,
            )
            return False

        self._stderr_task = asyncio.create_task(self._pump_stderr())
        self._exit_task = asyncio.create_task(self._watch_exit())
        logger.debug(f"[ENCODER] FFmpeg started (pid {self._process.pid})")
        return True

    async def write(self, frame: bytes) -> bool:
        """Send one frame and wait until the pipe accepts more data.

        Returns:
            True if the frame was handed to ffmpeg
        """
        if self._error is not None or self._input_closed:
            return False
        if self._process is None or self._process.stdin is None:
            return False

        try:
            self._process.stdin.write(frame)
            await self._process.stdin.drain()
        except OSError as e:
            self._fail(
                EncoderSignal.STREAM_ERROR,
                StreamError(f"Failed to write frame to FFmpeg: {e}"),
                cause=e,
            )
            return False

        self.frames_written += 1
        return True

    async def close(self) -> None:
        """Close stdin so ffmpeg finalizes the file. Runs at most once."""
        if self._error is not None or self._input_closed:
            return
        if self._process is None or self._process.stdin is None:
            return

        self._input_closed = True
        logger.info(f"[ENCODER] Closing FFmpeg input after {self.frames_written} frames")
        stdin = self._process.stdin
        try:
            stdin.close()
            await stdin.wait_closed()
        except OSError as e:
            self._fail(
                EncoderSignal.STREAM_ERROR,
                StreamError(f"Failed to close FFmpeg input: {e}"),
                cause=e,
            )

    async def terminate(self, timeout: float = 5.0) -> None:
        """Stop ffmpeg if it is still running and wait for the watchers."""
        process = self._process
        if process is not None and process.returncode is None:
            self._terminating = True
            logger.info("[ENCODER] Terminating FFmpeg")
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("[ENCODER] FFmpeg did not exit gracefully, killing...")
                process.kill()
                await process.wait()

        for task in (self._exit_task, self._stderr_task):
            if task is not None and not task.done():
                await task

    async def _watch_exit(self) -> None:
        returncode = await self._process.wait()
        if self._stderr_task is not None:
            await self._stderr_task

        if returncode == 0:
            logger.info(f"[ENCODER] FFmpeg finished: {self.output_path}")
            self._emit(EncoderSignal.CLOSED_NORMALLY, None)
            return

        if self._terminating:
            logger.debug(f"[ENCODER] FFmpeg terminated (exit code {returncode})")
            self._emit(
                EncoderSignal.PROCESS_ERROR,
                ProcessError("FFmpeg was terminated", returncode=returncode),
            )
            return

        tail = " | ".join(self._stderr_tail)
        message = f"FFmpeg exited with code {returncode}"
        if tail:
            message = f"{message}: {tail}"
        self._fail(EncoderSignal.PROCESS_ERROR, ProcessError(message, returncode=returncode))

    async def _pump_stderr(self) -> None:
        stderr = self._process.stderr
        if stderr is None:
            return
        while True:
            chunk = await stderr.read(4096)
            if not chunk:
                break
            for line in chunk.decode("utf-8", errors="replace").splitlines():
                line = line.strip()
                if line:
                    self._stderr_tail.append(line)
                    logger.debug(f"[FFMPEG] {line}")

    def _fail(
        self,
        signal: EncoderSignal,
        error: ReplayCastError,
        cause: Optional[BaseException] = None,
    ) -> None:
        if cause is not None:
            error.__cause__ = cause
        if self._error is None:
            self._error = error
            logger.error(f"[ENCODER] {signal.value}: {error}")
        self._emit(signal, error)

    def _emit(self, signal: EncoderSignal, error: Optional[ReplayCastError]) -> None:
        if self._signal is not None:
            logger.debug(
                f"[ENCODER] Dropping {signal.value}, already signalled {self._signal.value}"
            )
            return
        self._signal = signal
        self._on_complete(signal, error)
