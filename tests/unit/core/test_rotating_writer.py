from __future__ import annotations

"""
Unit tests for the RotatingFileWriter.

Covers construction errors, the no-rotation fast path, archive naming,
retention pruning, failure recovery and concurrent writers. Time is driven
by the fake clock from conftest so no test sleeps across an interval.
"""

import glob
import logging
import os
import threading
from typing import Any, List
from unittest.mock import patch

import pytest

from rotalog.core.writer import RotatingFileWriter
from rotalog.domain.errors import InitError, WriteError
from rotalog.domain.models import RotationUnit
from rotalog.infra import fs

HOURLY_FMT = RotationUnit.HOURLY.suffix_format


def _archives(path: str) -> List[str]:
    return sorted(glob.glob(f"{glob.escape(path)}.*"))


def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _touch(path: str, ns: int) -> None:
    os.utime(path, ns=(ns, ns))


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

def test_empty_path_raises_init_error(clock) -> None:
    with pytest.raises(InitError):
        RotatingFileWriter("", RotationUnit.HOURLY, 3, clock=clock)


def test_non_positive_retention_raises_init_error(tmp_path, clock) -> None:
    with pytest.raises(InitError):
        RotatingFileWriter(str(tmp_path / "app.log"), RotationUnit.HOURLY, 0, clock=clock)


def test_missing_parent_directories_are_created(tmp_path, clock) -> None:
    path = tmp_path / "a" / "b" / "app.log"

    with RotatingFileWriter(str(path), RotationUnit.DAILY, 2, clock=clock) as writer:
        writer.write(b"hello\n")

    assert path.read_bytes() == b"hello\n"


def test_unwritable_location_raises_init_error(tmp_path, clock) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(InitError):
        RotatingFileWriter(str(blocker / "app.log"), RotationUnit.DAILY, 2, clock=clock)

# -----------------------------------------------------------------------------
# Rotation behaviour
# -----------------------------------------------------------------------------

def test_writes_within_one_epoch_never_rotate(tmp_path, clock, fake_time: Any) -> None:
    """TC-01: Many writes inside one interval append to a single file."""
    path = str(tmp_path / "app.log")
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, clock=clock)
    start_epoch = writer.epoch

    for i in range(50):
        writer.write(f"line {i}\n".encode())
        fake_time.advance(1_000)

    writer.close()

    assert writer.rotation_count == 0
    assert writer.epoch == start_epoch
    assert _archives(path) == []
    assert _read(path).count(b"\n") == 50


def test_epoch_change_archives_previous_interval(tmp_path, clock, fake_time: Any, hour: int) -> None:
    path = str(tmp_path / "app.log")
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, clock=clock)
    writer.write(b"old\n")
    _touch(path, fake_time())

    now = fake_time.advance(hour)
    writer.write(b"new\n")
    writer.close()

    expected = fs.archive_path(path, now - hour, HOURLY_FMT)
    assert writer.rotation_count == 1
    assert _archives(path) == [expected]
    assert _read(expected) == b"old\n"
    assert _read(path) == b"new\n"


def test_restart_archives_stale_file_by_its_mtime(tmp_path, clock, fake_time: Any, hour: int) -> None:
    """TC-02: A file left over from an earlier interval is archived on the first write."""
    path = str(tmp_path / "app.log")
    with open(path, "wb") as f:
        f.write(b"previous run\n")
    stale = fake_time() - 2 * hour
    _touch(path, stale)

    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, clock=clock)
    writer.write(b"fresh\n")
    writer.write(b"fresh again\n")
    writer.close()

    archived = fs.archive_path(path, stale, HOURLY_FMT)
    assert writer.rotation_count == 1
    assert _archives(path) == [archived]
    assert _read(archived) == b"previous run\n"
    assert _read(path) == b"fresh\nfresh again\n"


def test_resuming_file_from_current_interval_does_not_rotate(tmp_path, clock) -> None:
    path = str(tmp_path / "app.log")
    with open(path, "wb") as f:
        f.write(b"earlier today\n")

    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, clock=clock)
    writer.write(b"later\n")
    writer.close()

    assert writer.rotation_count == 0
    assert _read(path) == b"earlier today\nlater\n"


def test_retention_keeps_exactly_n_archives(tmp_path, clock, fake_time: Any, hour: int) -> None:
    """TC-03: After retention+k rotations only the newest 'retention' archives remain."""
    retention = 3
    path = str(tmp_path / "app.log")
    t0 = fake_time()
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, retention, clock=clock)
    writer.write(b"gen 0\n")
    _touch(path, t0)

    rotations = retention + 3
    for i in range(1, rotations + 1):
        fake_time.set(t0 + i * hour)
        writer.write(f"gen {i}\n".encode())
        _touch(path, t0 + i * hour)
    writer.close()

    expected = sorted(
        fs.archive_path(path, t0 + i * hour, HOURLY_FMT)
        for i in range(rotations - retention, rotations)
    )
    assert writer.rotation_count == rotations
    assert _archives(path) == expected
    assert _read(path) == f"gen {rotations}\n".encode()


def test_rename_failure_is_retried_on_next_write(tmp_path, clock, fake_time: Any, hour: int, caplog) -> None:
    """TC-04: A failed rename leaves no active file, and the next write completes the rotation."""
    path = str(tmp_path / "app.log")
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, clock=clock)
    writer.write(b"old\n")
    _touch(path, fake_time())
    fake_time.advance(hour)

    with caplog.at_level(logging.WARNING, logger="rotalog.core.writer"):
        with patch("rotalog.core.writer.os.replace", side_effect=OSError("denied")):
            with pytest.raises(WriteError):
                writer.write(b"lost\n")

    assert "Rotation of" in caplog.text
    assert writer.rotation_count == 0

    writer.write(b"new\n")
    writer.close()

    assert writer.rotation_count == 1
    assert len(_archives(path)) == 1
    assert _read(_archives(path)[0]) == b"old\n"
    assert _read(path) == b"new\n"


def test_prune_failure_is_logged_and_rotation_completes(tmp_path, clock, fake_time: Any, hour: int, caplog) -> None:
    path = str(tmp_path / "app.log")
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 1, clock=clock)
    writer.write(b"old\n")
    _touch(path, fake_time())
    fake_time.advance(hour)

    with caplog.at_level(logging.DEBUG, logger="rotalog.infra.fs"):
        with patch("rotalog.infra.fs.os.remove", side_effect=PermissionError("read-only")) as remove:
            writer.write(b"new\n")
    writer.close()

    expired = fs.archive_path(path, fake_time() - 2 * hour, HOURLY_FMT)
    remove.assert_called_once_with(expired)
    assert f"Prune of {expired} failed" in caplog.text
    assert writer.rotation_count == 1
    assert _read(path) == b"new\n"


def test_close_failure_does_not_abort_rotation(tmp_path, clock, fake_time: Any, hour: int) -> None:
    path = str(tmp_path / "app.log")
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, clock=clock)
    writer.write(b"old\n")
    _touch(path, fake_time())
    fake_time.advance(hour)

    original_fp = writer._fp
    real_close = original_fp.close

    def failing_close() -> None:
        real_close()
        raise OSError("close failed")

    with patch.object(original_fp, "close", side_effect=failing_close):
        writer.write(b"new\n")
    writer.close()

    assert writer.rotation_count == 1
    assert _read(path) == b"new\n"

# -----------------------------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------------------------

def test_write_after_close_raises(tmp_path, clock) -> None:
    writer = RotatingFileWriter(str(tmp_path / "app.log"), RotationUnit.DAILY, 2, clock=clock)
    writer.close()
    writer.close()

    assert writer.closed
    with pytest.raises(WriteError):
        writer.write(b"late\n")


def test_context_manager_closes_writer(tmp_path, clock) -> None:
    with RotatingFileWriter(str(tmp_path / "app.log"), RotationUnit.WEEKLY, 2, clock=clock) as writer:
        assert writer.write(b"abc") == 3

    assert writer.closed

# -----------------------------------------------------------------------------
# Cross-process coordination
# -----------------------------------------------------------------------------

def test_busy_rotation_lock_defers_rotation(tmp_path, clock, fake_time: Any, hour: int, caplog) -> None:
    fcntl = pytest.importorskip("fcntl")
    path = str(tmp_path / "app.log")
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, interprocess_lock=True, clock=clock)
    writer.write(b"old\n")
    _touch(path, fake_time())
    fake_time.advance(hour)

    holder = os.open(path, os.O_RDONLY)
    try:
        fcntl.flock(holder, fcntl.LOCK_EX | fcntl.LOCK_NB)
        with caplog.at_level(logging.INFO, logger="rotalog.core.writer"):
            writer.write(b"deferred\n")
        assert "deferred" in caplog.text
        assert writer.rotation_count == 0
        assert _archives(path) == []
    finally:
        os.close(holder)

    writer.write(b"new\n")
    writer.close()

    assert writer.rotation_count == 1
    assert _read(_archives(path)[0]) == b"old\ndeferred\n"
    assert _read(path) == b"new\n"


def test_peer_rotation_is_not_repeated(tmp_path, clock, fake_time: Any, hour: int) -> None:
    """Two writers on one path (as two processes would be) archive once."""
    pytest.importorskip("fcntl")
    path = str(tmp_path / "app.log")
    first = RotatingFileWriter(path, RotationUnit.HOURLY, 3, interprocess_lock=True, clock=clock)
    second = RotatingFileWriter(path, RotationUnit.HOURLY, 3, interprocess_lock=True, clock=clock)
    first.write(b"a1\n")
    second.write(b"b1\n")
    _touch(path, fake_time())
    fake_time.advance(hour)

    first.write(b"a2\n")
    second.write(b"b2\n")
    first.close()
    second.close()

    archives = _archives(path)
    assert len(archives) == 1
    assert _read(archives[0]) == b"a1\nb1\n"
    assert _read(path) == b"a2\nb2\n"

# -----------------------------------------------------------------------------
# Concurrency
# -----------------------------------------------------------------------------

def test_concurrent_writers_rotate_exactly_once(tmp_path, clock, fake_time: Any, hour: int) -> None:
    """TC-05: Threads writing across one boundary produce one archive and intact lines."""
    path = str(tmp_path / "app.log")
    writer = RotatingFileWriter(path, RotationUnit.HOURLY, 3, clock=clock)
    threads_n, lines_n = 8, 200

    def run_phase(tag: str) -> None:
        def worker(idx: int) -> None:
            for j in range(lines_n):
                writer.write(f"{tag}-{idx:02d}-{j:04d}-{'x' * 64}\n".encode())

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(threads_n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    run_phase("before")
    _touch(path, fake_time())
    fake_time.advance(hour)
    run_phase("after")
    writer.close()

    archives = _archives(path)
    assert writer.rotation_count == 1
    assert len(archives) == 1

    for file_path, tag in ((archives[0], "before"), (path, "after")):
        lines = _read(file_path).decode().splitlines()
        assert len(lines) == threads_n * lines_n
        assert all(line.startswith(f"{tag}-") and line.endswith("x" * 64) for line in lines)
        assert len(set(lines)) == len(lines)
