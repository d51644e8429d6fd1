from __future__ import annotations

"""
Rotation Clock.

Maps instants to rotation epoch indices. The local east-of-UTC offset is
snapshotted once when a clock is built so that interval boundaries line
up with local wall-clock hours and days without repeated timezone lookups.
"""

import threading
import time
from datetime import datetime
from typing import Callable, Optional

from rotalog.domain.constants import NANOS_PER_SECOND

TimeSource = Callable[[], int]


def local_utc_offset_ns() -> int:
    """Return the current local offset east of UTC, in nanoseconds."""
    offset = datetime.now().astimezone().utcoffset()
    if offset is None:
        return 0
    return int(offset.total_seconds()) * NANOS_PER_SECOND


def epoch_index(now_ns: int, interval_ns: int, utc_offset_ns: int) -> int:
    """
    Number of whole intervals elapsed since the local Unix epoch.

    Two instants in the same local hour/day/week share an index. Only ever
    compare indices for equality.
    """
    return (now_ns + utc_offset_ns) // interval_ns


def ns_to_local_datetime(ns: int) -> datetime:
    """Convert Unix nanoseconds to a naive local datetime."""
    return datetime.fromtimestamp(ns / NANOS_PER_SECOND)


class RotationClock:
    """
    Time source plus a fixed UTC offset.

    Writers share the process-wide clock unless a test or host injects its
    own, e.g. ``RotationClock(time_source=lambda: fake_ns, utc_offset_ns=0)``.
    """

    def __init__(
            self,
            time_source: Optional[TimeSource] = None,
            utc_offset_ns: Optional[int] = None,
    ) -> None:
        self._time_source: TimeSource = time_source or time.time_ns
        self.utc_offset_ns: int = (
            local_utc_offset_ns() if utc_offset_ns is None else int(utc_offset_ns)
        )

    def now_ns(self) -> int:
        return self._time_source()

    def epoch_index(self, now_ns: int, interval_ns: int) -> int:
        return epoch_index(now_ns, interval_ns, self.utc_offset_ns)


_default_clock: Optional[RotationClock] = None
_default_clock_lock = threading.Lock()


def default_clock() -> RotationClock:
    """Return the lazily created process-wide clock."""
    global _default_clock
    with _default_clock_lock:
        if _default_clock is None:
            _default_clock = RotationClock()
        return _default_clock
