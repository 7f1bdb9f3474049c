# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for logger setup."""

import io
import logging

from replaycast.utils.logger import setup_logger


class TestSetupLogger:
    """Tests for setup_logger()."""

    def test_writes_to_stream(self):
        """Test messages reach the configured stream."""
        stream = io.StringIO()
        log = setup_logger("replaycast.test.stream", stream=stream, format_string="%(message)s")

        log.info("recording started")

        assert stream.getvalue() == "recording started\n"

    def test_level_filters(self):
        """Test messages below the level are dropped."""
        stream = io.StringIO()
        log = setup_logger("replaycast.test.level", level=logging.WARNING, stream=stream)

        log.info("hidden")
        log.warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_repeated_setup_does_not_duplicate(self):
        """Test reconfiguring replaces the handler."""
        setup_logger("replaycast.test.repeat")
        log = setup_logger("replaycast.test.repeat", level=logging.DEBUG)

        assert len(log.handlers) == 1
        assert log.level == logging.DEBUG
