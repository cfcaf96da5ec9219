"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports ``app.core.config`` so
the settings singleton is built with test values.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_COUNTER_STORE_BACKEND", "memory")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_MAX_REQUESTS", "5")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "60")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from app.core.rate_limit import reset_rate_limiter  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_rate_limiter():
    """Give every test an empty window."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()
