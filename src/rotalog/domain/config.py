from __future__ import annotations

"""
Logger Configuration Management.

Holds the immutable configuration records used to build loggers and
provides JSON persistence with a default fallback. Names for levels,
rotation units, appenders and header flags are parsed case-insensitively
so hand-written configuration files stay forgiving.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from rotalog.domain import constants as const
from rotalog.domain.errors import ConfigError
from rotalog.domain.models import (
    DEFAULT_LOGGER_FLAGS,
    Appender,
    HeaderFlag,
    LogLevel,
    RotationUnit,
    StdoutTarget,
    StdRedirectConfig,
)

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Configuration Model
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class LoggerConfig:
    """
    Immutable configuration for one Logger.

    Attributes:
        path: Active log file; archives are created beside it.
        level: Minimum level emitted (TRACE is gated by trace_on instead).
        unit: Rotation interval.
        retention: Number of archived generations to keep.
        trace_on: Initial state of the trace flag.
        appenders: Console and/or file output.
        flags: Header composition bits.
        prefix: Optional text placed in every header.
        interprocess_lock: Take a non-blocking advisory lock while rotating.
    """
    path: str = const.DEFAULT_LOG_PATH
    level: LogLevel = LogLevel.DEBUG
    unit: RotationUnit = RotationUnit.DAILY
    retention: int = const.DEFAULT_RETENTION
    trace_on: bool = const.DEFAULT_TRACE_ON
    appenders: Appender = Appender.FILE
    flags: HeaderFlag = DEFAULT_LOGGER_FLAGS
    prefix: str = ""
    interprocess_lock: bool = False


def get_default_logger_config() -> LoggerConfig:
    """Return the configuration of the process-wide default logger."""
    return LoggerConfig()


# -----------------------------------------------------------------------------
# Value Parsers
# -----------------------------------------------------------------------------
def parse_level(value: Union[str, int, LogLevel]) -> LogLevel:
    """
    Convert a level name or ordinal into a LogLevel.

    Raises:
        ConfigError: If the value names no known level.
    """
    if isinstance(value, LogLevel):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return LogLevel(value)
        except ValueError:
            raise ConfigError(f"Unknown log level ordinal: {value}") from None
    name = str(value).strip().upper()
    if name == "WARNING":
        name = "WARN"
    try:
        return LogLevel[name]
    except KeyError:
        raise ConfigError(f"Unknown log level: {value!r}") from None


def parse_unit(value: Union[str, RotationUnit]) -> RotationUnit:
    """Convert 'hourly' / 'daily' / 'weekly' into a RotationUnit."""
    if isinstance(value, RotationUnit):
        return value
    name = str(value).strip().upper()
    try:
        return RotationUnit[name]
    except KeyError:
        raise ConfigError(f"Unknown rotation unit: {value!r}") from None


def parse_appenders(value: Union[str, int, Appender]) -> Appender:
    """
    Convert an appender expression such as 'console|file' into flags.

    Raises:
        ConfigError: If a component is unknown or the result is empty.
    """
    if isinstance(value, Appender):
        result = value
    elif isinstance(value, int) and not isinstance(value, bool):
        result = Appender(value)
    else:
        result = Appender(0)
        for part in str(value).replace(",", "|").split("|"):
            name = part.strip().upper()
            if not name:
                continue
            try:
                result |= Appender[name]
            except KeyError:
                raise ConfigError(f"Unknown appender: {part.strip()!r}") from None

    if not result:
        raise ConfigError("At least one appender must be selected.")
    return result


def parse_flags(value: Union[str, int, HeaderFlag]) -> HeaderFlag:
    """Convert 'date|time|short_file' (or an int mask) into HeaderFlag bits."""
    if isinstance(value, HeaderFlag):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return HeaderFlag(value)

    result = HeaderFlag.NONE
    for part in str(value).replace(",", "|").split("|"):
        name = part.strip().upper()
        if not name:
            continue
        try:
            result |= HeaderFlag[name]
        except KeyError:
            raise ConfigError(f"Unknown header flag: {part.strip()!r}") from None
    return result


# -----------------------------------------------------------------------------
# Dict Mapping
# -----------------------------------------------------------------------------
def logger_config_from_dict(data: Dict[str, Any]) -> LoggerConfig:
    """
    Build a LoggerConfig from a plain mapping, filling missing keys.

    Args:
        data: Parsed JSON object.

    Returns:
        LoggerConfig: Validated configuration.

    Raises:
        ConfigError: If a value is invalid.
    """
    defaults = get_default_logger_config()

    path = str(data.get("path", defaults.path) or "").strip()
    if not path:
        raise ConfigError("Logger path must not be empty.")

    try:
        retention = int(data.get("retention", defaults.retention))
    except (TypeError, ValueError):
        raise ConfigError(f"Retention must be an integer: {data.get('retention')!r}") from None
    if retention < 1:
        raise ConfigError(f"Retention must be at least 1, got {retention}.")

    return LoggerConfig(
        path=path,
        level=parse_level(data.get("level", defaults.level)),
        unit=parse_unit(data.get("unit", defaults.unit)),
        retention=retention,
        trace_on=bool(data.get("trace_on", defaults.trace_on)),
        appenders=parse_appenders(data.get("appenders", defaults.appenders)),
        flags=parse_flags(data.get("flags", defaults.flags)),
        prefix=str(data.get("prefix", defaults.prefix) or ""),
        interprocess_lock=bool(data.get("interprocess_lock", defaults.interprocess_lock)),
    )


def logger_config_to_dict(cfg: LoggerConfig) -> Dict[str, Any]:
    """Serialize a LoggerConfig into JSON-compatible values."""
    return {
        "path": cfg.path,
        "level": cfg.level.name,
        "unit": cfg.unit.name,
        "retention": cfg.retention,
        "trace_on": cfg.trace_on,
        "appenders": "|".join(a.name for a in Appender if a in cfg.appenders),
        "flags": "|".join(f.name for f in HeaderFlag if f and f in cfg.flags),
        "prefix": cfg.prefix,
        "interprocess_lock": cfg.interprocess_lock,
    }


def std_redirect_config_from_dict(data: Dict[str, Any]) -> StdRedirectConfig:
    """
    Build a StdRedirectConfig from {'target': 'file', 'directory': '...'}.

    Raises:
        ConfigError: If the target is unknown or File lacks a directory.
    """
    raw_target = str(data.get("target", StdoutTarget.CONSOLE.value)).strip().lower()
    try:
        target = StdoutTarget(raw_target)
    except ValueError:
        raise ConfigError(f"Unknown stdout target: {raw_target!r}") from None

    directory: Optional[str] = data.get("directory") or None
    if target is StdoutTarget.FILE and not directory:
        raise ConfigError("A directory is required when redirecting to file.")
    return StdRedirectConfig(target=target, directory=directory)


# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------
def load_logger_config(config_file: str) -> LoggerConfig:
    """
    Load a LoggerConfig from a JSON file.

    Missing or unreadable files fall back to defaults; readable files with
    invalid values are rejected.

    Args:
        config_file: Path to the JSON document.

    Returns:
        LoggerConfig: The loaded configuration or defaults.

    Raises:
        ConfigError: If the document holds invalid values.
    """
    if not os.path.exists(config_file):
        logger.debug(f"Logger config not found at {config_file}. Using defaults.")
        return get_default_logger_config()

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to read logger config {config_file}: {e}. Using defaults.")
        return get_default_logger_config()

    if not isinstance(data, dict):
        logger.warning(f"Corrupted logger config {config_file}. Using defaults.")
        return get_default_logger_config()

    return logger_config_from_dict(data)


def save_logger_config(cfg: LoggerConfig, config_file: str) -> None:
    """
    Persist a LoggerConfig as JSON.

    Args:
        cfg: Configuration to write.
        config_file: Destination path; parent folders are created.
    """
    try:
        parent = os.path.dirname(os.path.abspath(config_file))
        os.makedirs(parent, exist_ok=True)
        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(logger_config_to_dict(cfg), f, ensure_ascii=False, indent=4)
        logger.debug(f"Logger configuration saved to {config_file}")
    except OSError as e:
        logger.error(f"Failed to save logger configuration: {e}")
