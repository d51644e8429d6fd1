from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Path checks, directory creation and the archive naming scheme shared by
the rotating writer and the standard stream redirector. Acts as a thin
abstraction over the 'os' module so the rotation logic reads as a
sequence of named steps.
"""

import logging
import os
from typing import Optional

from rotalog.core.clock import ns_to_local_datetime
from rotalog.domain.constants import DIR_MODE, FILE_MODE

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def normalize_path(path: str) -> str:
    """
    Normalize a log path into an absolute filesystem path.

    Handles user home shortcuts (~/) and environment variables so that
    two spellings of the same file share one cache key.
    """
    return os.path.abspath(os.path.expandvars(os.path.expanduser(path)))


def path_exists(path: str) -> bool:
    """
    Report whether a path exists.

    Raises:
        OSError: For failures other than absence (e.g. permission denied).
    """
    try:
        os.stat(path)
        return True
    except FileNotFoundError:
        return False


def ensure_parent_dir(path: str) -> None:
    """
    Create the parent directory hierarchy for a target file.

    Raises:
        OSError: If the directory cannot be inspected or created.
    """
    parent = os.path.dirname(os.path.abspath(path))
    if parent and not path_exists(parent):
        os.makedirs(parent, mode=DIR_MODE, exist_ok=True)


def mtime_ns(path: str) -> Optional[int]:
    """Modification time in Unix nanoseconds, or None if absent."""
    try:
        return os.stat(path).st_mtime_ns
    except FileNotFoundError:
        return None

# -----------------------------------------------------------------------------
# FILE HANDLES
# -----------------------------------------------------------------------------

def open_append(path: str):
    """
    Open (or create) a file in binary append mode, unbuffered.

    Every write reaches the OS immediately so a crash never loses records
    and concurrent processes appending to the same file interleave whole
    writes.
    """
    fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, FILE_MODE)
    try:
        return os.fdopen(fd, "ab", buffering=0)
    except Exception:
        os.close(fd)
        raise

# -----------------------------------------------------------------------------
# ARCHIVE NAMING
# -----------------------------------------------------------------------------

def archive_suffix(timestamp_ns: int, suffix_format: str) -> str:
    """Render an archive timestamp in local time."""
    return ns_to_local_datetime(timestamp_ns).strftime(suffix_format)


def archive_path(path: str, timestamp_ns: int, suffix_format: str) -> str:
    """Return '<path>.<suffix>' for the given archive timestamp."""
    return f"{path}.{archive_suffix(timestamp_ns, suffix_format)}"


def remove_quietly(path: str) -> bool:
    """
    Delete a file, treating absence as the normal case.

    Other failures are logged at debug level and swallowed.

    Returns:
        bool: True if a file was removed.
    """
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.debug(f"Prune of {path} failed: {e}")
        return False
