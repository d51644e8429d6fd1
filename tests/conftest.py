from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. A controllable clock so rotation tests never sleep.
3. Isolation of the process-wide registry between tests.
"""

import os
import sys
import threading
import time
from typing import Generator

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from rotalog.core.clock import RotationClock  # noqa: E402
from rotalog.core.registry import reset_registry  # noqa: E402
from rotalog.domain.constants import NANOS_PER_HOUR  # noqa: E402


# -----------------------------------------------------------------------------
# Test Doubles
# -----------------------------------------------------------------------------
class FakeTime:
    """Thread-safe, manually advanced nanosecond time source."""

    def __init__(self, start_ns: int) -> None:
        self._now = start_ns
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            return self._now

    def set(self, ns: int) -> None:
        with self._lock:
            self._now = ns

    def advance(self, ns: int) -> int:
        with self._lock:
            self._now += ns
            return self._now


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def fake_time() -> FakeTime:
    """
    Return a fake time source anchored at the real current time.

    Anchoring at real 'now' keeps modification times of freshly written
    files consistent with the fake clock.
    """
    return FakeTime(time.time_ns())


@pytest.fixture
def clock(fake_time: FakeTime) -> RotationClock:
    """RotationClock driven by fake_time, using the real local UTC offset."""
    return RotationClock(time_source=fake_time)


@pytest.fixture
def hour() -> int:
    return NANOS_PER_HOUR


@pytest.fixture(autouse=True)
def isolated_registry() -> Generator[None, None, None]:
    """Discard the process-wide registry before and after each test."""
    reset_registry()
    yield
    reset_registry()
