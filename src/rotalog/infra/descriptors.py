from __future__ import annotations

"""
Descriptor Infrastructure.

Platform backends for OS-level descriptor duplication and advisory file
locking. The stream redirector and the rotating writer only see the
small interfaces defined here; the syscall choice happens once, at init.
"""

import os
import sys
from typing import Protocol

from rotalog.domain.errors import LockBusyError, RedirectionError

try:
    import fcntl
except ImportError:  # pragma: no cover - Windows
    fcntl = None  # type: ignore[assignment]


# -----------------------------------------------------------------------------
# DESCRIPTOR DUPLICATION
# -----------------------------------------------------------------------------

class DescriptorDuplicator(Protocol):
    """Capability to make ``new_fd`` refer to the same file as ``old_fd``."""

    def duplicate(self, old_fd: int, new_fd: int) -> None:
        ...


class Dup2Duplicator:
    """
    dup2-based backend.

    The target stays inheritable so child processes spawned after the
    redirection write into the same capture file.
    """

    def duplicate(self, old_fd: int, new_fd: int) -> None:
        os.dup2(old_fd, new_fd, inheritable=True)


def select_duplicator() -> DescriptorDuplicator:
    """
    Pick the duplication backend for the running platform.

    Raises:
        RedirectionError: If the platform cannot duplicate descriptors.
    """
    if not hasattr(os, "dup2"):
        raise RedirectionError(f"Descriptor duplication is unsupported on {sys.platform}.")
    return Dup2Duplicator()


# -----------------------------------------------------------------------------
# ADVISORY LOCKING
# -----------------------------------------------------------------------------

def advisory_locking_supported() -> bool:
    return fcntl is not None


def flock_exclusive_nonblocking(fd: int) -> None:
    """
    Take an exclusive advisory lock without waiting.

    Raises:
        LockBusyError: If another process holds the lock.
        OSError: For any other locking failure.
    """
    if fcntl is None:
        return
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError as e:
        raise LockBusyError(f"Advisory lock on descriptor {fd} is held elsewhere.") from e
