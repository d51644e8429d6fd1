from __future__ import annotations

"""
Standard Logging Bridge Configuration.

Defines the configuration record used to attach the time-rotated writer
to the root logger of the standard 'logging' module, and the mapping from
rotalog levels to native logging constants.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from rotalog.domain.config import parse_level
from rotalog.domain.constants import DEFAULT_RETENTION
from rotalog.domain.models import LogLevel, RotationUnit

# TRACE has no native counterpart; it rides on DEBUG
_STDLIB_LEVELS: Dict[LogLevel, int] = {
    LogLevel.TRACE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.PANIC: logging.CRITICAL,
    LogLevel.FATAL: logging.CRITICAL,
}


def to_stdlib_level(level: Union[str, int, LogLevel]) -> int:
    """
    Translate a rotalog level (name, ordinal or member) to a logging constant.

    Raises:
        ConfigError: If the level is unknown.
    """
    return _STDLIB_LEVELS[parse_level(level)]


@dataclass(frozen=True)
class LoggingConfig:
    """
    Immutable configuration for the standard logging bridge.

    Attributes:
        level: Minimum rotalog level to capture ('INFO', LogLevel.WARN, ...).
        console: Also echo records to stderr.
        log_file: Optional path of the time-rotated log file.
        unit: Rotation interval for the log file.
        backup_count: Number of archived files to preserve.
        console_fmt: Format for terminal output.
        file_fmt: Format for file entries.
        datefmt: Timestamp format for file entries.
    """
    level: Union[str, LogLevel] = "INFO"
    console: bool = True
    log_file: Optional[str] = None

    unit: RotationUnit = RotationUnit.DAILY
    backup_count: int = DEFAULT_RETENTION

    console_fmt: str = "%(levelname)s | %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
