"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any ``throttling`` import so the
module-level settings object never picks up a developer's .env file.
"""

import os
import uuid

import pytest

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("THROTTLE_BACKEND", "local")
os.environ.setdefault("THROTTLE_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from throttling.adapters.throttle.local import LocalThrottleManager  # noqa: E402
from throttling.core import rate_limit  # noqa: E402


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, millis: float) -> None:
        self.current += millis


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(clock: FakeClock) -> LocalThrottleManager:
    return LocalThrottleManager(clock=clock)


@pytest.fixture
def throttle_name() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def process_manager():
    """Install a fresh local manager as the process-wide one."""
    fresh = LocalThrottleManager()
    rate_limit.set_throttle_manager(fresh)
    yield fresh
    rate_limit.set_throttle_manager(None)
