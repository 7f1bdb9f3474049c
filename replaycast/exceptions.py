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

"""Custom exceptions for ReplayCast.

This module defines the exception hierarchy used throughout ReplayCast.
All exceptions inherit from ReplayCastError so a caller can catch every
recording failure with a single except clause, and branch on the subclass
to learn which part of the pipeline failed.

Exception Hierarchy:
    ReplayCastError (base)
    ├── ConfigurationError - Invalid configuration values
    ├── SetupError - The run failed before recording started
    │   ├── TraceError - Trace file missing or not valid JSON
    │   └── BrowserError - Rendering host unavailable or payload load failure
    ├── RenderError - The in-page replay failed
    ├── ProcessError - The encoder process failed to launch or crashed
    ├── StreamError - Writing frames to the encoder failed
    └── RecordingTimeoutError - The optional overall deadline expired

Example:
    try:
        path = await transform_to_video(config)
    except RenderError as e:
        # The trace parsed but the player rejected it
        print(e.detail)
    except SetupError:
        # Nothing was recorded
        pass
    except ReplayCastError:
        # Encoder or stream failure
        pass
"""

from typing import Optional


class ReplayCastError(Exception):
    """Base exception for all ReplayCast errors.

    Every failure a recording run can report inherits from this class.
    """
    pass


class ConfigurationError(ReplayCastError):
    """Exception raised for configuration errors.

    Raised synchronously when a RecordingConfig is built with values
    that cannot work, before any browser or encoder is started.

    Examples:
        - Non-positive frame rate
        - Negative start delay
        - Unsupported browser type
    """
    pass


class SetupError(ReplayCastError):
    """Exception raised when a run fails before recording starts.

    No frame was captured and no encoder was spawned when this is raised.
    """
    pass


class TraceError(SetupError):
    """Exception raised when the trace file cannot be used.

    Examples:
        - Trace file does not exist
        - Trace file is not valid JSON
    """
    pass


class BrowserError(SetupError):
    """Exception raised for rendering host errors.

    Raised when the Playwright browser cannot be launched, when its
    context or page cannot be created, or when the replay payload
    fails to load into the page.
    """
    pass


class RenderError(ReplayCastError):
    """Exception raised when the in-page replay fails.

    The replay player runs inside the browser, so its exceptions never
    reach Python directly. They are reported through a marked console
    message and converted into this error.

    Attributes:
        detail: Text reported by the page, without the console marker
    """

    def __init__(self, detail: str) -> None:
        super().__init__(f"Replay failed in page: {detail}")
        self.detail = detail


class ProcessError(ReplayCastError):
    """Exception raised when the encoder process fails.

    Attributes:
        returncode: Exit code of the encoder, or None if it never started
    """

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class StreamError(ReplayCastError):
    """Exception raised when frame data cannot be delivered to the encoder.

    Examples:
        - Encoder closed its stdin (broken pipe)
        - Closing stdin failed
    """
    pass


class RecordingTimeoutError(ReplayCastError):
    """Exception raised when a run exceeds its configured timeout."""
    pass
