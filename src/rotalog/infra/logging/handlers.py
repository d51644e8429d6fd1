from __future__ import annotations

"""
Logging Handlers.

Provides the handler that feeds standard 'logging' records into a shared
RotatingFileWriter, and the factory that obtains that writer from the
process-wide registry.
"""

import logging
import sys
from typing import Optional

from rotalog.core.registry import get_registry
from rotalog.core.writer import RotatingFileWriter
from rotalog.domain.errors import RotalogError
from rotalog.domain.models import RotationUnit


class TimedRotatingWriterHandler(logging.Handler):
    """
    Handler writing formatted records through a RotatingFileWriter.

    The writer is usually the registry's shared instance for the path, so
    a rotalog Logger and the standard logging tree can target the same
    file without racing each other's rotations. Closing the handler leaves
    the writer open; its owner decides when to close it.
    """

    terminator = "\n"

    def __init__(self, writer: RotatingFileWriter, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.writer = writer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record) + self.terminator
            self.writer.write(msg.encode("utf-8", errors="replace"))
        except Exception:
            self.handleError(record)

    def __repr__(self) -> str:
        level = logging.getLevelName(self.level)
        return f"<{self.__class__.__name__} {self.writer.path} ({level})>"


def create_writer_handler(
        log_file: str,
        level: int,
        formatter: logging.Formatter,
        unit: RotationUnit,
        retention: int,
) -> Optional[TimedRotatingWriterHandler]:
    """
    Build a handler over the registry's writer for ``log_file``.

    Returns:
        Optional[TimedRotatingWriterHandler]: The handler, or None if the
        file cannot be opened (a warning goes to stderr, since the logging
        tree itself is what failed to come up).
    """
    try:
        writer = get_registry().get_writer(log_file, unit, retention)
    except RotalogError as e:
        sys.stderr.write(f"WARNING: Log file unavailable at '{log_file}': {e}\n")
        return None

    handler = TimedRotatingWriterHandler(writer, level)
    handler.setFormatter(formatter)
    return handler
