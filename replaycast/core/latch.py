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
Single-assignment result holder for a recording run.

A run has several independent failure channels (encoder exit, broken pipe,
console error, deadline) and exactly one answer. Every channel writes into
the same ResultLatch; the first write wins and later writes are counted and
dropped.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from replaycast.exceptions import ReplayCastError
from replaycast.utils.logger import logger


class ResultLatch:
    """First-write-wins holder for the output path or the run's error.

    Must be created while an event loop is running.

    Example:
        >>> latch = ResultLatch()
        >>> latch.resolve("/tmp/out.mp4")
        True
        >>> latch.reject(StreamError("broken pipe"))
        False
        >>> await latch.wait()
        '/tmp/out.mp4'
    """

    def __init__(self) -> None:
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.discarded = 0

    @property
    def future(self) -> asyncio.Future:
        """Underlying future, for use with ``asyncio.wait``."""
        return self._future

    @property
    def done(self) -> bool:
        """Whether an outcome has been recorded."""
        return self._future.done()

    @property
    def failed(self) -> bool:
        """Whether the recorded outcome is an error."""
        return self._future.done() and self._future.exception() is not None

    @property
    def error(self) -> Optional[BaseException]:
        """The recorded error, if any."""
        if not self._future.done():
            return None
        return self._future.exception()

    def resolve(self, output_path: str) -> bool:
        """Record a successful outcome.

        Returns:
            True if this call decided the outcome
        """
        if self._future.done():
            self._discard(f"success ({output_path})")
            return False
        self._future.set_result(output_path)
        return True

    def reject(self, error: ReplayCastError) -> bool:
        """Record a failed outcome.

        Returns:
            True if this call decided the outcome
        """
        if self._future.done():
            self._discard(f"{type(error).__name__}: {error}")
            return False
        self._future.set_exception(error)
        return True

    async def wait(self) -> str:
        """Wait for the outcome; returns the path or raises the error."""
        return await asyncio.shield(self._future)

    def _discard(self, outcome: str) -> None:
        self.discarded += 1
        logger.debug(f"[LATCH] Result already decided, discarding {outcome}")
