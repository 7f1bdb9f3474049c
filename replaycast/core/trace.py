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

"""Loading of recorded rrweb traces."""

from __future__ import annotations

import json
import os
from typing import Any

from replaycast.exceptions import TraceError
from replaycast.utils.logger import logger


def resolve_trace_path(path: str) -> str:
    """Absolute trace path, relative paths resolved against the cwd."""
    return os.path.abspath(path)


def load_trace(path: str) -> Any:
    """
    Read and decode a JSON trace.

    The decoded value is not inspected: an empty or structurally odd trace
    is returned as is and left for the player to accept or reject.

    Args:
        path: Trace file path

    Returns:
        Decoded JSON value, normally a list of event records

    Raises:
        TraceError: If the file is missing, unreadable or not valid JSON
    """
    if not path:
        raise TraceError("No input trace given")

    trace_path = resolve_trace_path(path)
    try:
        with open(trace_path, "r", encoding="utf-8") as f:
            events = json.load(f)
    except FileNotFoundError as e:
        raise TraceError(f"Trace file not found: {trace_path}") from e
    except json.JSONDecodeError as e:
        raise TraceError(f"Trace file is not valid JSON: {trace_path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise TraceError(f"Failed to read trace file {trace_path}: {e}") from e

    count = len(events) if isinstance(events, list) else 1
    logger.info(f"Loaded trace {trace_path} ({count} events)")
    return events
