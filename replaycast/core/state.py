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

"""Lifecycle state of a recording run."""

from __future__ import annotations

from enum import Enum

from replaycast.utils.logger import logger


class LifecycleState(str, Enum):
    """State of a recording run. Only ever moves forward."""

    IDLE = "idle"
    RECORDING = "recording"
    CLOSED = "closed"


_ORDER = {
    LifecycleState.IDLE: 0,
    LifecycleState.RECORDING: 1,
    LifecycleState.CLOSED: 2,
}


class RunState:
    """Monotonic lifecycle holder shared by the orchestrator and capture loop.

    Transitions may skip a state (idle -> closed when the page fails before
    playback starts) but never go backwards.
    """

    def __init__(self) -> None:
        self._current = LifecycleState.IDLE

    @property
    def current(self) -> LifecycleState:
        return self._current

    @property
    def is_recording(self) -> bool:
        return self._current is LifecycleState.RECORDING

    @property
    def is_closed(self) -> bool:
        return self._current is LifecycleState.CLOSED

    def advance(self, target: LifecycleState) -> bool:
        """Move to ``target`` if it is ahead of the current state.

        Returns:
            True if the state changed
        """
        if _ORDER[target] <= _ORDER[self._current]:
            logger.debug(
                f"[STATE] Ignoring transition {self._current.value} -> {target.value}"
            )
            return False
        logger.debug(f"[STATE] {self._current.value} -> {target.value}")
        self._current = target
        return True
