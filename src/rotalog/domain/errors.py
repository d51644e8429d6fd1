from __future__ import annotations

"""
Error Taxonomy.

Every failure surfaced by the package derives from RotalogError so hosts
can trap the whole family with a single clause. Rotation and redirection
failures are reported through the diagnostic logger rather than raised;
the classes still exist so the reports carry a precise type.
"""


class RotalogError(Exception):
    """Base class for all package errors."""


class ConfigError(RotalogError, ValueError):
    """A configuration value could not be parsed or is out of range."""


class InitError(RotalogError):
    """A writer or logger could not be constructed."""


class RotationError(RotalogError):
    """A stat/close/rename/reopen step failed while rotating."""


class LockBusyError(RotationError):
    """The advisory lock on the active file is held by another process."""


class WriteError(RotalogError):
    """Bytes could not be written to the active file."""


class RedirectionError(RotalogError):
    """A standard descriptor could not be opened or duplicated."""


class PanicError(RotalogError):
    """Raised by Logger.panic once the record has been written."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
