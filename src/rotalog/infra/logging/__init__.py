from __future__ import annotations

from .config import LoggingConfig, to_stdlib_level
from .core import (
    bridge_writers,
    configure_logging,
    get_logger,
    shutdown_logging,
)
from .handlers import TimedRotatingWriterHandler, create_writer_handler

__all__ = [
    "LoggingConfig",
    "TimedRotatingWriterHandler",
    "bridge_writers",
    "configure_logging",
    "create_writer_handler",
    "get_logger",
    "shutdown_logging",
    "to_stdlib_level",
]
