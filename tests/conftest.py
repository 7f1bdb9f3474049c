# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures for ReplayCast tests."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory as a string path."""
    return str(tmp_path)


@pytest.fixture
def trace_file(tmp_path):
    """A small valid trace: two clicks two seconds apart."""
    events = [
        {"type": 4, "data": {"href": "https://example.com", "width": 1280, "height": 720},
         "timestamp": 1700000000000},
        {"type": 3, "data": {"source": 2, "type": 2, "id": 12, "x": 100, "y": 200},
         "timestamp": 1700000001000},
        {"type": 3, "data": {"source": 2, "type": 2, "id": 14, "x": 300, "y": 240},
         "timestamp": 1700000003000},
    ]
    path = tmp_path / "session.json"
    path.write_text(json.dumps(events), encoding="utf-8")
    return str(path)


@pytest.fixture
def empty_trace_file(tmp_path):
    """Valid JSON that the player rejects."""
    path = tmp_path / "empty.json"
    path.write_text("[]", encoding="utf-8")
    return str(path)


@pytest.fixture
def mock_playwright():
    """Playwright object whose browsers launch into mocks."""
    playwright = MagicMock()
    for name in ("chromium", "firefox", "webkit"):
        browser = AsyncMock()
        context = AsyncMock()
        page = AsyncMock()
        browser.new_context = AsyncMock(return_value=context)
        context.new_page = AsyncMock(return_value=page)
        getattr(playwright, name).launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()
    return playwright
