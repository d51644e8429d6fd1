from __future__ import annotations

"""
Time-Rotated File Writer.

Owns one active log file and archives it whenever the rotation epoch
advances. Every write runs the epoch check and the write itself under a
per-writer lock, so rotations and writes on one instance never interleave.

Rotation sequence (only when the epoch changed):
1. Close the active handle (a failure is reported, the handle is dropped).
2. Rename the active file to '<path>.<archive timestamp>'.
3. Reopen the active path in append mode.
4. Record the new epoch.
5. Delete the single archive that just fell out of the retention window
   (after the lock is released).

Retention pruning is O(1): exactly one archive name is computed per
rotation. Archives skipped by idle periods or shifted by DST changes are
not swept.
"""

import logging
import os
import threading
from typing import BinaryIO, Optional

from rotalog.core.clock import RotationClock, default_clock
from rotalog.domain import constants as const
from rotalog.domain.errors import InitError, LockBusyError, RotationError, WriteError
from rotalog.domain.models import RotationUnit
from rotalog.infra import fs
from rotalog.infra.descriptors import advisory_locking_supported, flock_exclusive_nonblocking

logger = logging.getLogger(__name__)


class RotatingFileWriter:
    """
    Byte sink writing to a time-rotated file.

    Usable as a context manager; ``close()`` releases the active handle
    deterministically and later writes raise WriteError.
    """

    def __init__(
            self,
            path: str,
            unit: RotationUnit = RotationUnit.DAILY,
            retention: int = const.DEFAULT_RETENTION,
            *,
            interprocess_lock: bool = False,
            clock: Optional[RotationClock] = None,
    ) -> None:
        """
        Open (or create) the active file and derive the starting epoch.

        The starting epoch comes from the existing file's modification time
        when there is one, so resuming a file written earlier in the same
        interval does not rotate it.

        Args:
            path: Active log file path.
            unit: Rotation interval.
            retention: Number of archived generations to keep (>= 1).
            interprocess_lock: Guard rotations with a non-blocking flock.
            clock: Time source and UTC offset; the process clock by default.

        Raises:
            InitError: Empty path, bad retention, or the file/directory
                cannot be created.
        """
        if not path or not str(path).strip():
            raise InitError("File name not set when initializing rotating writer.")
        if int(retention) < 1:
            raise InitError(f"Retention must be at least 1, got {retention}.")

        self._path = str(path)
        self._unit = unit
        self._retention = int(retention)
        self._interval_ns = unit.interval_ns
        self._suffix_format = unit.suffix_format
        self._interprocess_lock = interprocess_lock and advisory_locking_supported()
        self._clock = clock or default_clock()

        self._lock = threading.Lock()
        self._fp: Optional[BinaryIO] = None
        self._expired_archive: Optional[str] = None
        self._closed = False
        self.rotation_count = 0

        try:
            fs.ensure_parent_dir(self._path)
            started_at = fs.mtime_ns(self._path)
            if started_at is None:
                started_at = self._clock.now_ns()
            self._epoch = self._clock.epoch_index(started_at, self._interval_ns)
            self._fp = fs.open_append(self._path)
        except OSError as e:
            raise InitError(f"Error when initializing writer for {self._path}: {e}") from e

        logger.debug(f"Writer opened {self._path} ({unit.value}, keep {self._retention})")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def path(self) -> str:
        return self._path

    @property
    def unit(self) -> RotationUnit:
        return self._unit

    @property
    def retention(self) -> int:
        return self._retention

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def write(self, data: bytes) -> int:
        """
        Write bytes to the current epoch's file, rotating first if needed.

        Rotation failures are reported on the diagnostic logger and do not
        abort the write; the next write retries the rotation.

        Returns:
            int: Number of bytes written.

        Raises:
            WriteError: The writer is closed, no file is open after a failed
                rotation, or the OS write failed.
        """
        # Diagnostics are logged after the lock is released: a handler may
        # route them back into this writer.
        rotation_error: Optional[RotationError] = None
        archived: Optional[str] = None
        expired: Optional[str] = None
        try:
            with self._lock:
                if self._closed:
                    raise WriteError(f"Write to closed writer {self._path}.")

                try:
                    archived = self._try_rotate()
                except RotationError as e:
                    rotation_error = e
                expired, self._expired_archive = self._expired_archive, None

                if self._fp is None:
                    raise WriteError(f"No active file for {self._path}; rotation will be retried.")

                try:
                    return self._write_all(self._fp, data)
                except OSError as e:
                    raise WriteError(f"Write to {self._path} failed: {e}") from e
        finally:
            if expired is not None:
                fs.remove_quietly(expired)
            if isinstance(rotation_error, LockBusyError):
                logger.info(f"Rotation of {self._path} deferred: {rotation_error}")
            elif rotation_error is not None:
                logger.warning(f"Rotation of {self._path} failed: {rotation_error}")
            elif archived:
                logger.debug(f"Archived {self._path} -> {archived}")

    def close(self) -> None:
        """Close the active handle. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            fp, self._fp = self._fp, None
        if fp is not None:
            try:
                fp.close()
            except OSError as e:
                logger.warning(f"Closing {self._path} failed: {e}")
        logger.debug(f"Writer closed {self._path}")

    def __enter__(self) -> RotatingFileWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"RotatingFileWriter(path={self._path!r}, unit={self._unit.name}, "
            f"retention={self._retention})"
        )

    # -------------------------------------------------------------------------
    # Rotation (caller holds self._lock)
    # -------------------------------------------------------------------------

    def _try_rotate(self) -> Optional[str]:
        """Rotate if the epoch advanced; return the archive path created, if any."""
        now = self._clock.now_ns()
        now_epoch = self._clock.epoch_index(now, self._interval_ns)
        if now_epoch == self._epoch:
            return None

        lock_fd: Optional[int] = None
        peer_rotated = False
        if self._interprocess_lock and self._fp is not None:
            lock_fd = self._acquire_rotation_lock()

        try:
            if lock_fd is not None:
                peer_rotated = self._active_file_replaced()

            # 1. Close; the handle is dropped even if close fails
            close_error: Optional[RotationError] = None
            if self._fp is not None:
                fp, self._fp = self._fp, None
                try:
                    fp.close()
                except OSError as e:
                    close_error = RotationError(f"Close of {self._path} failed: {e}")

            # 2. Archive the finished file
            archived = None if peer_rotated else self._archive(now)

            # 3. Reopen
            try:
                self._fp = fs.open_append(self._path)
            except OSError as e:
                raise RotationError(f"Reopen of {self._path} failed: {e}") from e
        finally:
            if lock_fd is not None:
                os.close(lock_fd)

        # 4. Commit the epoch
        self._epoch = now_epoch
        self.rotation_count += 1

        # 5. Mark the archive that left the retention window; write() deletes
        # it once the lock is released
        expired_at = now - (self._retention + 1) * self._interval_ns
        self._expired_archive = fs.archive_path(self._path, expired_at, self._suffix_format)

        if close_error is not None:
            raise close_error
        return archived

    def _acquire_rotation_lock(self) -> int:
        """
        Lock a duplicate of the active descriptor.

        The duplicate shares the open file description, so the lock survives
        closing the active handle and is released when the duplicate closes.

        Raises:
            LockBusyError: Another process is rotating the same file.
            RotationError: The lock could not be taken for another reason.
        """
        try:
            fd = os.dup(self._fp.fileno())
        except OSError as e:
            raise RotationError(f"Lock of {self._path} failed: {e}") from e
        try:
            flock_exclusive_nonblocking(fd)
        except LockBusyError:
            os.close(fd)
            raise
        except OSError as e:
            os.close(fd)
            raise RotationError(f"Lock of {self._path} failed: {e}") from e
        return fd

    def _archive(self, now: int) -> Optional[str]:
        try:
            modified = fs.mtime_ns(self._path)
        except OSError as e:
            raise RotationError(f"Stat of {self._path} failed: {e}") from e
        if modified is None:
            return None

        # Idle for longer than one interval: date the archive by its last write
        archive_ts = now - self._interval_ns
        if modified < archive_ts:
            archive_ts = modified

        target = fs.archive_path(self._path, archive_ts, self._suffix_format)
        try:
            os.replace(self._path, target)
        except OSError as e:
            raise RotationError(f"Rename of {self._path} to {target} failed: {e}") from e
        return target

    def _active_file_replaced(self) -> bool:
        """True if another process already moved our file aside."""
        try:
            ours = os.fstat(self._fp.fileno())
            current = os.stat(self._path)
        except FileNotFoundError:
            return True
        except OSError as e:
            raise RotationError(f"Stat of {self._path} failed: {e}") from e
        return (ours.st_dev, ours.st_ino) != (current.st_dev, current.st_ino)

    @staticmethod
    def _write_all(fp: BinaryIO, data: bytes) -> int:
        view = memoryview(data)
        total = 0
        while total < len(view):
            written = fp.write(view[total:])
            if not written:
                raise OSError("short write")
            total += written
        return total
