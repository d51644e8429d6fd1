from __future__ import annotations

"""
Logging Domain Models.

Defines the enumerations and immutable records shared by the writer,
the formatter, the logger and the standard stream redirector.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import List, Optional

from rotalog.domain import constants as const

# -----------------------------------------------------------------------------
# ROTATION
# -----------------------------------------------------------------------------

class RotationUnit(Enum):
    """Time interval after which the active file is archived."""

    HOURLY = "Hourly"
    DAILY = "Daily"
    WEEKLY = "Weekly"

    @property
    def interval_ns(self) -> int:
        """Length of one rotation interval in nanoseconds."""
        return _INTERVALS[self]

    @property
    def suffix_format(self) -> str:
        """strftime pattern used to date archived files."""
        if self is RotationUnit.HOURLY:
            return const.HOURLY_SUFFIX_FORMAT
        return const.DAILY_SUFFIX_FORMAT


_INTERVALS = {
    RotationUnit.HOURLY: const.NANOS_PER_HOUR,
    RotationUnit.DAILY: const.NANOS_PER_DAY,
    RotationUnit.WEEKLY: const.NANOS_PER_WEEK,
}

# -----------------------------------------------------------------------------
# LEVELS, APPENDERS AND HEADER FLAGS
# -----------------------------------------------------------------------------

class LogLevel(IntEnum):
    """
    Ordinal severity chain.

    TRACE sits below every other level but is never compared against the
    threshold: it is gated by the logger's runtime trace flag instead.
    """

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    PANIC = 5
    FATAL = 6

    @property
    def tag(self) -> str:
        return f"[{self.name}]"


class Appender(IntFlag):
    """Output destinations, combinable with ``|``."""

    CONSOLE = 1
    FILE = 2


class HeaderFlag(IntFlag):
    """
    Bits selecting what is written before each message.

    MICROSECONDS implies TIME, SHORT_FILE overrides LONG_FILE and
    MSG_PREFIX moves the logger prefix to just before the message.
    """

    NONE = 0
    DATE = 1
    TIME = 2
    MICROSECONDS = 4
    LONG_FILE = 8
    SHORT_FILE = 16
    UTC = 32
    MSG_PREFIX = 64


STD_FLAGS = HeaderFlag.DATE | HeaderFlag.TIME
DEFAULT_LOGGER_FLAGS = (
    HeaderFlag.DATE | HeaderFlag.TIME | HeaderFlag.MICROSECONDS | HeaderFlag.SHORT_FILE
)

# -----------------------------------------------------------------------------
# STANDARD STREAM REDIRECTION
# -----------------------------------------------------------------------------

class StdoutTarget(Enum):
    """Where the process stdout/stderr descriptors should point."""

    CONSOLE = "console"
    FILE = "file"
    NULL = "null"


@dataclass(frozen=True)
class StdRedirectConfig:
    """
    Destination for the process standard streams.

    Attributes:
        target: Console (untouched), File (capture file) or Null device.
        directory: Folder holding the capture file; used only for File.
    """
    target: StdoutTarget = StdoutTarget.CONSOLE
    directory: Optional[str] = None


@dataclass(frozen=True)
class RedirectionResult:
    """
    Outcome of a redirection request.

    Attributes:
        applied: False when an earlier call already performed redirection.
        config: The configuration whose effects are in place.
        errors: Messages for each descriptor operation that failed.
    """
    applied: bool
    config: StdRedirectConfig
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
