from __future__ import annotations

"""
Logger and Writer Registry.

Explicit context object caching writers and loggers by absolute path, so
two requests for the same file share one writer (one rotation state, one
lock). The cache lock covers lookup-or-insert only; files are opened
outside it and a construction race is settled by keeping the first
inserted writer and closing the redundant one.

A lazily created process-wide registry backs the module-level helpers
and the default logger; it is closed at interpreter exit.
"""

import atexit
import logging
import threading
from typing import Any, Dict, List, Optional

from rotalog.core.clock import RotationClock
from rotalog.core.logger import Logger, exit_process, render_message
from rotalog.core.sinks import ByteSink, ConsoleWriter, MultiWriter
from rotalog.core.writer import RotatingFileWriter
from rotalog.domain import constants as const
from rotalog.domain.config import LoggerConfig, get_default_logger_config
from rotalog.domain.errors import InitError, PanicError
from rotalog.domain.models import Appender, LogLevel, RotationUnit
from rotalog.infra import fs

logger = logging.getLogger(__name__)


class LoggerRegistry:
    """
    Path-keyed cache of RotatingFileWriter and Logger instances.

    The first configuration requested for a path wins: later requests for
    the same path return the cached instance unchanged.
    A logger whose file writer has been closed is stale and is rebuilt
    (over a fresh writer) on the next request.
    """

    def __init__(self, clock: Optional[RotationClock] = None) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._writers: Dict[str, RotatingFileWriter] = {}
        self._loggers: Dict[str, Logger] = {}
        self._default: Optional[Logger] = None

    # -------------------------------------------------------------------------
    # Writers
    # -------------------------------------------------------------------------

    def get_writer(
            self,
            path: str,
            unit: RotationUnit = RotationUnit.DAILY,
            retention: int = const.DEFAULT_RETENTION,
            interprocess_lock: bool = False,
    ) -> RotatingFileWriter:
        """
        Return the shared writer for ``path``, creating it on first use.

        Raises:
            InitError: If the path is empty or the file cannot be opened.
        """
        key = _cache_key(path)

        with self._lock:
            cached = self._writers.get(key)
            if cached is not None and not cached.closed:
                return cached

        created = RotatingFileWriter(
            key, unit, retention,
            interprocess_lock=interprocess_lock,
            clock=self._clock,
        )

        with self._lock:
            cached = self._writers.get(key)
            if cached is None or cached.closed:
                self._writers[key] = created
                return created

        # Lost the race: adopt the winner
        created.close()
        return cached

    # -------------------------------------------------------------------------
    # Loggers
    # -------------------------------------------------------------------------

    def get_logger(self, cfg: LoggerConfig) -> Logger:
        """
        Return the cached logger for ``cfg.path`` or build one from ``cfg``.

        Raises:
            InitError: If the log directory or file cannot be created.
        """
        key = _cache_key(cfg.path)

        with self._lock:
            cached = self._loggers.get(key)
            if cached is not None and not _has_closed_writer(cached):
                return cached

        try:
            fs.ensure_parent_dir(key)
        except OSError as e:
            raise InitError(f"Cannot create log directory for {key}: {e}") from e

        sinks: List[ByteSink] = []
        if cfg.appenders & Appender.FILE:
            sinks.append(self.get_writer(key, cfg.unit, cfg.retention, cfg.interprocess_lock))
        if cfg.appenders & Appender.CONSOLE:
            sinks.append(ConsoleWriter())

        created = Logger(
            MultiWriter(sinks),
            level=cfg.level,
            trace_on=cfg.trace_on,
            flags=cfg.flags,
            prefix=cfg.prefix,
            clock=self._clock,
        )

        with self._lock:
            cached = self._loggers.get(key)
            if cached is None or _has_closed_writer(cached):
                self._loggers[key] = created
                return created
        return cached

    def new_logger(
            self,
            path: str,
            level: LogLevel = LogLevel.DEBUG,
            unit: RotationUnit = RotationUnit.DAILY,
            retention: int = const.DEFAULT_RETENTION,
            trace_on: bool = False,
            appenders: Appender = Appender.FILE,
    ) -> Logger:
        """Positional-argument form of get_logger."""
        if not path or not str(path).strip():
            raise InitError("Log file path must not be empty.")
        if int(retention) < 1:
            raise InitError(f"Retention must be at least 1, got {retention}.")
        cfg = LoggerConfig(
            path=path,
            level=LogLevel(level),
            unit=unit,
            retention=int(retention),
            trace_on=trace_on,
            appenders=Appender(appenders),
        )
        return self.get_logger(cfg)

    def default_logger(self) -> Logger:
        """Lazily build the default logger (./logs/app.log, daily, trace on)."""
        current = self._default
        if current is not None and not _has_closed_writer(current):
            return current

        lg = self.get_logger(get_default_logger_config())
        with self._lock:
            if self._default is None or _has_closed_writer(self._default):
                self._default = lg
            return self._default

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close_all(self) -> None:
        """Close every cached writer and forget all cached instances."""
        with self._lock:
            writers = list(self._writers.values())
            self._writers.clear()
            self._loggers.clear()
            self._default = None

        for w in writers:
            w.close()
        if writers:
            logger.debug(f"Registry closed {len(writers)} writer(s)")


def _has_closed_writer(lg: Logger) -> bool:
    """True once any file sink behind ``lg`` was closed; the logger is stale."""
    sink = lg.sink
    sinks = sink.sinks if isinstance(sink, MultiWriter) else [sink]
    return any(isinstance(s, RotatingFileWriter) and s.closed for s in sinks)


def _cache_key(path: str) -> str:
    if not path or not str(path).strip():
        raise InitError("Log file path must not be empty.")
    return fs.normalize_path(str(path))


# -----------------------------------------------------------------------------
# PROCESS-WIDE REGISTRY
# -----------------------------------------------------------------------------

_registry: Optional[LoggerRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> LoggerRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = LoggerRegistry()
            atexit.register(_registry.close_all)
        return _registry


def reset_registry() -> None:
    """Close and discard the process-wide registry."""
    global _registry
    with _registry_lock:
        old, _registry = _registry, None
    if old is not None:
        atexit.unregister(old.close_all)
        old.close_all()


def new_writer(
        path: str,
        unit: RotationUnit = RotationUnit.DAILY,
        retention: int = const.DEFAULT_RETENTION,
) -> RotatingFileWriter:
    """Shared writer for ``path`` from the process-wide registry."""
    return get_registry().get_writer(path, unit, retention)


def new_logger(
        path: str,
        level: LogLevel = LogLevel.DEBUG,
        unit: RotationUnit = RotationUnit.DAILY,
        retention: int = const.DEFAULT_RETENTION,
        trace_on: bool = False,
        appenders: Appender = Appender.FILE,
) -> Logger:
    """Logger for ``path`` from the process-wide registry."""
    return get_registry().new_logger(path, level, unit, retention, trace_on, appenders)


def get_logger(
        path: str,
        level: LogLevel,
        unit: RotationUnit,
        retention: int,
) -> Logger:
    """File-only logger with trace off."""
    return new_logger(path, level, unit, retention, False, Appender.FILE)


def get_logger_with_appender(
        path: str,
        level: LogLevel,
        unit: RotationUnit,
        retention: int,
        appenders: Appender,
) -> Logger:
    """Logger with explicit appenders and trace off."""
    return new_logger(path, level, unit, retention, False, appenders)


# -----------------------------------------------------------------------------
# DEFAULT LOGGER FACADE
# -----------------------------------------------------------------------------

def default_logger() -> Logger:
    return get_registry().default_logger()


def trace(fmt: str, *args: Any) -> None:
    lg = default_logger()
    if lg.is_enabled(LogLevel.TRACE):
        lg.output(2, LogLevel.TRACE, render_message(fmt, args))


def debug(fmt: str, *args: Any) -> None:
    lg = default_logger()
    if lg.is_enabled(LogLevel.DEBUG):
        lg.output(2, LogLevel.DEBUG, render_message(fmt, args))


def info(fmt: str, *args: Any) -> None:
    lg = default_logger()
    if lg.is_enabled(LogLevel.INFO):
        lg.output(2, LogLevel.INFO, render_message(fmt, args))


def warn(fmt: str, *args: Any) -> None:
    lg = default_logger()
    if lg.is_enabled(LogLevel.WARN):
        lg.output(2, LogLevel.WARN, render_message(fmt, args))


def error(fmt: str, *args: Any) -> None:
    lg = default_logger()
    if lg.is_enabled(LogLevel.ERROR):
        lg.output(2, LogLevel.ERROR, render_message(fmt, args))


def panic(fmt: str, *args: Any) -> None:
    lg = default_logger()
    if lg.is_enabled(LogLevel.PANIC):
        message = render_message(fmt, args)
        lg.output(2, LogLevel.PANIC, message)
        raise PanicError(message)


def fatal(fmt: str, *args: Any) -> None:
    lg = default_logger()
    if lg.is_enabled(LogLevel.FATAL):
        lg.output(2, LogLevel.FATAL, render_message(fmt, args))
        exit_process(1)
