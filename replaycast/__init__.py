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
ReplayCast - Render recorded rrweb sessions to video.

This package replays an rrweb trace in a headless browser, samples the
player at a fixed frame rate and streams the frames into ffmpeg.
"""

__version__ = "0.3.0"
__author__ = "Firefly Software Solutions Inc"
__license__ = "Apache-2.0"

from replaycast.config import PlayerAssets, PlayerOptions, RecordingConfig
from replaycast.core.orchestrator import RecordingOrchestrator, transform_to_video
from replaycast.exceptions import (
    BrowserError,
    ConfigurationError,
    ProcessError,
    RecordingTimeoutError,
    RenderError,
    ReplayCastError,
    SetupError,
    StreamError,
    TraceError,
)

__all__ = [
    # Core
    "RecordingOrchestrator",
    "transform_to_video",
    # Configuration
    "PlayerAssets",
    "PlayerOptions",
    "RecordingConfig",
    # Errors
    "BrowserError",
    "ConfigurationError",
    "ProcessError",
    "RecordingTimeoutError",
    "RenderError",
    "ReplayCastError",
    "SetupError",
    "StreamError",
    "TraceError",
]
