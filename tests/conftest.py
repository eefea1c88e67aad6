"""Shared fixtures for the trade-analytics test suite."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

import pytest
import structlog

from trade_analytics.core.clock import FixedClock
from trade_analytics.core.config import Settings


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def fixed_clock() -> FixedClock:
    """Return a FixedClock pinned to 2024-03-15 12:00 UTC."""
    return FixedClock(datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(monkeypatch) -> Settings:
    """Default settings, isolated from TRADE_ANALYTICS_* env vars."""
    for key in list(os.environ):
        if key.startswith("TRADE_ANALYTICS_"):
            monkeypatch.delenv(key, raising=False)
    return Settings()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _drop_structlog_handlers():
    """Undo setup_logging() so one test's handler does not leak into the next."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
