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

"""Logging configuration for ReplayCast."""

import logging
import sys
from typing import Optional, TextIO


def setup_logger(
    name: str = "replaycast",
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Setup and configure the ReplayCast logger.

    Calling this again replaces the handler, so the CLI can raise the
    level after import without duplicating output.

    Args:
        name: Logger name
        level: Logging level
        format_string: Custom format string for log messages
        stream: Output stream, stderr by default so stdout stays free
            for the produced file path

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    handler.setFormatter(logging.Formatter(format_string))

    logger.addHandler(handler)

    return logger


# Default logger instance
logger = setup_logger()
