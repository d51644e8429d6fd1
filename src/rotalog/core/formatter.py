from __future__ import annotations

"""
Header Formatter.

Builds the text written before each message from a HeaderFlag mask:

    [INFO] 2009/01/23 01:23:23.123123 d.py:23: message

Order is fixed: level tag, logger prefix (unless MSG_PREFIX), date, time,
caller file:line, then the prefix when MSG_PREFIX is set. Numeric fields
are zero padded; the line number is not.
"""

import os
from datetime import datetime, timezone
from typing import Optional

from rotalog.domain.models import HeaderFlag, LogLevel

_DATETIME_FLAGS = HeaderFlag.DATE | HeaderFlag.TIME | HeaderFlag.MICROSECONDS
_FILE_FLAGS = HeaderFlag.LONG_FILE | HeaderFlag.SHORT_FILE


def short_file_name(path: str) -> str:
    """Return the part after the last path separator (the whole path if none)."""
    idx = max(path.rfind("/"), path.rfind(os.sep))
    if idx <= 0:
        return path
    return path[idx + 1:]


def format_prefix(
        timestamp: datetime,
        flags: HeaderFlag,
        file: Optional[str] = None,
        line: int = 0,
) -> str:
    """
    Render the date, time and caller part of a header.

    Args:
        timestamp: Instant of the record. Rendered in its own zone unless
            UTC is requested.
        flags: Header composition bits.
        file: Caller source path, if resolved.
        line: Caller line number.

    Returns:
        str: E.g. '2023/03/04 05:06:07.089123 c.ext:42: '.
    """
    parts = []

    if flags & _DATETIME_FLAGS:
        t = timestamp
        if flags & HeaderFlag.UTC:
            t = t.astimezone(timezone.utc) if t.tzinfo else t.replace(tzinfo=timezone.utc)
        if flags & HeaderFlag.DATE:
            parts.append(f"{t.year:04d}/{t.month:02d}/{t.day:02d} ")
        if flags & (HeaderFlag.TIME | HeaderFlag.MICROSECONDS):
            clock = f"{t.hour:02d}:{t.minute:02d}:{t.second:02d}"
            if flags & HeaderFlag.MICROSECONDS:
                clock += f".{t.microsecond:06d}"
            parts.append(clock + " ")

    if flags & _FILE_FLAGS:
        name = file or ""
        if flags & HeaderFlag.SHORT_FILE:
            name = short_file_name(name)
        parts.append(f"{name}:{line}: ")

    return "".join(parts)


def format_header(
        level: LogLevel,
        timestamp: datetime,
        flags: HeaderFlag,
        file: Optional[str] = None,
        line: int = 0,
        prefix: str = "",
) -> str:
    """Render the full header: level tag, prefix and format_prefix output."""
    header = level.tag + " "
    if not flags & HeaderFlag.MSG_PREFIX:
        header += prefix
    header += format_prefix(timestamp, flags, file, line)
    if flags & HeaderFlag.MSG_PREFIX:
        header += prefix
    return header


class HeaderFormatter:
    """Header builder bound to one logger's flags and prefix."""

    def __init__(self, flags: HeaderFlag, prefix: str = "") -> None:
        self.flags = flags
        self.prefix = prefix

    @property
    def wants_caller(self) -> bool:
        return bool(self.flags & _FILE_FLAGS)

    def format(
            self,
            level: LogLevel,
            timestamp: datetime,
            file: Optional[str] = None,
            line: int = 0,
    ) -> str:
        return format_header(level, timestamp, self.flags, file, line, self.prefix)
