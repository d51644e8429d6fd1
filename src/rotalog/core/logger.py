from __future__ import annotations

"""
Leveled Logger.

Two independent gates decide whether a call is emitted: an ordinal level
threshold fixed at construction, and a trace flag toggled at runtime.
Emitted records are formatted as header + message + newline and written
to a fan-out sink as one bytes object.
"""

import os
import sys
import threading
from datetime import datetime
from typing import Any, Optional

from rotalog.core.clock import RotationClock, default_clock
from rotalog.core.formatter import HeaderFormatter
from rotalog.core.sinks import ByteSink
from rotalog.domain.constants import NANOS_PER_SECOND, UNKNOWN_CALLER_FILE
from rotalog.domain.errors import PanicError
from rotalog.domain.models import DEFAULT_LOGGER_FLAGS, HeaderFlag, LogLevel


def render_message(fmt: str, args: tuple) -> str:
    """
    Apply %-style arguments the way the logging module does.

    A format string that does not match its arguments never fails the
    logging call: the raw format and the argument tuple are emitted instead.
    """
    if not args:
        return str(fmt)
    try:
        return str(fmt) % args
    except (TypeError, ValueError, KeyError):
        return f"{fmt} %!(EXTRA {args!r})"


def exit_process(status: int = 1) -> None:
    """
    Terminate the whole process, not just the calling thread.

    On the main thread SystemExit unwinds normally so atexit hooks (and the
    registry close) run. Elsewhere SystemExit would only end the thread, so
    the standard streams are flushed and the process exits immediately.
    """
    if threading.current_thread() is threading.main_thread():
        sys.exit(status)
    for stream in (sys.stdout, sys.stderr):
        try:
            if stream is not None:
                stream.flush()
        except (OSError, ValueError):
            pass
    os._exit(status)


class Logger:
    """
    Level-gated writer of formatted records.

    Each per-level method takes a %-style format string and positional
    arguments. ``panic`` raises PanicError and ``fatal`` terminates the
    process with status 1 (from any thread), both after the record has been written.
    """

    def __init__(
            self,
            sink: ByteSink,
            level: LogLevel = LogLevel.DEBUG,
            trace_on: bool = False,
            flags: HeaderFlag = DEFAULT_LOGGER_FLAGS,
            prefix: str = "",
            clock: Optional[RotationClock] = None,
    ) -> None:
        self._sink = sink
        self._level = LogLevel(level)
        self._trace_on = bool(trace_on)
        self._formatter = HeaderFormatter(flags, prefix)
        self._clock = clock or default_clock()
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def level(self) -> LogLevel:
        return self._level

    @property
    def trace_enabled(self) -> bool:
        return self._trace_on

    @property
    def flags(self) -> HeaderFlag:
        return self._formatter.flags

    @property
    def prefix(self) -> str:
        return self._formatter.prefix

    @property
    def sink(self) -> ByteSink:
        return self._sink

    def start_trace(self) -> None:
        self._trace_on = True

    def stop_trace(self) -> None:
        self._trace_on = False

    def is_enabled(self, level: LogLevel) -> bool:
        """Whether a call at ``level`` would be emitted right now."""
        if level == LogLevel.TRACE:
            return self._trace_on
        return level >= self._level

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def output(self, call_depth: int, level: LogLevel, message: str) -> None:
        """
        Write one record unconditionally.

        Args:
            call_depth: Frames to skip when resolving the caller; 1 is the
                direct caller of output, 2 the caller of a level method.
            level: Level tag to render.
            message: Fully formatted message text.

        Raises:
            WriteError: If a sink failed.
        """
        ns = self._clock.now_ns()  # captured before any other work
        timestamp = datetime.fromtimestamp(ns // NANOS_PER_SECOND).astimezone()
        timestamp = timestamp.replace(microsecond=(ns // 1000) % 1_000_000)

        file: Optional[str] = None
        line = 0
        if self._formatter.wants_caller:
            try:
                frame = sys._getframe(call_depth)
                file, line = frame.f_code.co_filename, frame.f_lineno
            except ValueError:
                file, line = UNKNOWN_CALLER_FILE, 0

        record = self._formatter.format(level, timestamp, file, line) + message
        if not message.endswith("\n"):
            record += "\n"
        data = record.encode("utf-8", errors="replace")

        with self._lock:
            self._sink.write(data)

    def trace(self, fmt: str, *args: Any) -> None:
        if not self._trace_on:
            return
        self.output(2, LogLevel.TRACE, render_message(fmt, args))

    def debug(self, fmt: str, *args: Any) -> None:
        if self._level > LogLevel.DEBUG:
            return
        self.output(2, LogLevel.DEBUG, render_message(fmt, args))

    def info(self, fmt: str, *args: Any) -> None:
        if self._level > LogLevel.INFO:
            return
        self.output(2, LogLevel.INFO, render_message(fmt, args))

    def warn(self, fmt: str, *args: Any) -> None:
        if self._level > LogLevel.WARN:
            return
        self.output(2, LogLevel.WARN, render_message(fmt, args))

    warning = warn

    def error(self, fmt: str, *args: Any) -> None:
        if self._level > LogLevel.ERROR:
            return
        self.output(2, LogLevel.ERROR, render_message(fmt, args))

    def panic(self, fmt: str, *args: Any) -> None:
        if self._level > LogLevel.PANIC:
            return
        message = render_message(fmt, args)
        self.output(2, LogLevel.PANIC, message)
        raise PanicError(message)

    def fatal(self, fmt: str, *args: Any) -> None:
        if self._level > LogLevel.FATAL:
            return
        self.output(2, LogLevel.FATAL, render_message(fmt, args))
        exit_process(1)

    def __repr__(self) -> str:
        return f"Logger(level={self._level.name}, trace={self._trace_on})"
