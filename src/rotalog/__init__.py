from __future__ import annotations

"""
rotalog - time-rotated, thread-safe log files for long-running processes.

Typical use::

    import rotalog

    log = rotalog.new_logger("./logs/worker.log", rotalog.LogLevel.INFO,
                             rotalog.RotationUnit.HOURLY, 24)
    log.info("started with %d workers", 4)

    rotalog.init_std(rotalog.StdRedirectConfig(rotalog.StdoutTarget.FILE, "./logs"))
"""

from rotalog.core.clock import RotationClock, epoch_index
from rotalog.core.formatter import HeaderFormatter, format_header, format_prefix
from rotalog.core.logger import Logger
from rotalog.core.registry import (
    LoggerRegistry,
    debug,
    default_logger,
    error,
    fatal,
    get_logger,
    get_logger_with_appender,
    get_registry,
    info,
    new_logger,
    new_writer,
    panic,
    reset_registry,
    trace,
    warn,
)
from rotalog.core.sinks import ConsoleWriter, MultiWriter
from rotalog.core.writer import RotatingFileWriter
from rotalog.domain.config import LoggerConfig, load_logger_config
from rotalog.domain.errors import (
    ConfigError,
    InitError,
    LockBusyError,
    PanicError,
    RedirectionError,
    RotalogError,
    RotationError,
    WriteError,
)
from rotalog.domain.models import (
    DEFAULT_LOGGER_FLAGS,
    STD_FLAGS,
    Appender,
    HeaderFlag,
    LogLevel,
    RedirectionResult,
    RotationUnit,
    StdoutTarget,
    StdRedirectConfig,
)
from rotalog.infra.redirect import OnceGate, StreamRedirector, init_std

__version__ = "0.1.0"

__all__ = [
    "Appender",
    "ConfigError",
    "ConsoleWriter",
    "DEFAULT_LOGGER_FLAGS",
    "HeaderFlag",
    "HeaderFormatter",
    "InitError",
    "LockBusyError",
    "LogLevel",
    "Logger",
    "LoggerConfig",
    "LoggerRegistry",
    "MultiWriter",
    "OnceGate",
    "PanicError",
    "RedirectionError",
    "RedirectionResult",
    "RotalogError",
    "RotatingFileWriter",
    "RotationClock",
    "RotationError",
    "RotationUnit",
    "STD_FLAGS",
    "StdRedirectConfig",
    "StdoutTarget",
    "StreamRedirector",
    "WriteError",
    "debug",
    "default_logger",
    "epoch_index",
    "error",
    "fatal",
    "format_header",
    "format_prefix",
    "get_logger",
    "get_logger_with_appender",
    "get_registry",
    "info",
    "init_std",
    "load_logger_config",
    "new_logger",
    "new_writer",
    "panic",
    "reset_registry",
    "trace",
    "warn",
]
