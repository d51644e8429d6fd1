from __future__ import annotations

"""
Standard Stream Redirection.

Replaces the process stdin/stdout/stderr descriptors at OS level so
output from every writer in the process (C extensions and child
processes included) lands in the null device or a capture file. This is
descriptor substitution, not a rebinding of ``sys.stdout``.

Redirection runs at most once per redirector. Concurrent first callers
block until the single execution finishes and all observe its result.
Failures are collected and logged, never raised: a partially applied
redirection is left in place.
"""

import logging
import os
import sys
import threading
from typing import Any, BinaryIO, Callable, Generic, List, Optional, TypeVar

from rotalog.core.clock import RotationClock, default_clock
from rotalog.domain import constants as const
from rotalog.domain.errors import RedirectionError
from rotalog.domain.models import RedirectionResult, StdoutTarget, StdRedirectConfig
from rotalog.infra import fs
from rotalog.infra.descriptors import DescriptorDuplicator, select_duplicator

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------------------------------------------------------------
# ONE-SHOT GATE
# -----------------------------------------------------------------------------

class OnceGate(Generic[T]):
    """
    Run a function exactly once; every caller receives the same outcome.

    Callers arriving while the first execution is running block on the
    gate's lock until it completes. An exception from the single run is
    re-raised to every caller.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = False
        self._result: Optional[T] = None
        self._error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self._done

    def run(self, fn: Callable[[], T]) -> tuple:
        """
        Execute ``fn`` if no earlier call did.

        Returns:
            tuple: (result, first) where ``first`` is True only for the
            call that actually executed ``fn``.
        """
        with self._lock:
            first = not self._done
            if first:
                try:
                    self._result = fn()
                except BaseException as e:
                    self._error = e
                finally:
                    self._done = True

        if self._error is not None:
            raise self._error
        return self._result, first


# -----------------------------------------------------------------------------
# REDIRECTOR
# -----------------------------------------------------------------------------

class StreamRedirector:
    """
    One-shot redirector for the three standard descriptors.

    The null device and capture file objects are kept on the instance for
    the life of the process: the OS descriptor table still refers to them
    after duplication.
    """

    def __init__(
            self,
            duplicator: Optional[DescriptorDuplicator] = None,
            stdin_fd: int = 0,
            stdout_fd: int = 1,
            stderr_fd: int = 2,
            clock: Optional[RotationClock] = None,
    ) -> None:
        self._duplicator = duplicator
        self._stdin_fd = stdin_fd
        self._stdout_fd = stdout_fd
        self._stderr_fd = stderr_fd
        self._clock = clock or default_clock()
        self._gate: OnceGate[RedirectionResult] = OnceGate()

        self.null_file: Optional[BinaryIO] = None
        self.capture_file: Optional[BinaryIO] = None

    def redirect(self, config: StdRedirectConfig) -> RedirectionResult:
        """
        Apply ``config`` unless an earlier call already redirected.

        Returns:
            RedirectionResult: ``applied`` is False for repeated calls, whose
            ``config`` is the one actually in effect.
        """
        result, first = self._gate.run(lambda: self._apply(config))
        if first:
            return result
        return RedirectionResult(applied=False, config=result.config, errors=list(result.errors))

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _apply(self, config: StdRedirectConfig) -> RedirectionResult:
        errors: List[str] = []

        def report(message: str, exc: Optional[BaseException] = None) -> None:
            err = RedirectionError(f"{message}: {exc}" if exc else message)
            logger.error(str(err))
            errors.append(str(err))

        try:
            duplicator = self._duplicator or select_duplicator()
        except RedirectionError as e:
            report("No descriptor duplication backend", e)
            return RedirectionResult(applied=True, config=config, errors=errors)

        _flush_python_streams()

        try:
            self.null_file = open(os.devnull, "r+b", buffering=0)
        except OSError as e:
            report(f"Open {os.devnull} failed", e)

        # stdin always reads from the null device
        if self.null_file is not None:
            self._dup(duplicator, self.null_file.fileno(), self._stdin_fd, "stdin", report)

        if config.target is StdoutTarget.NULL and self.null_file is not None:
            self._dup(duplicator, self.null_file.fileno(), self._stdout_fd, "stdout", report)
            self._dup(duplicator, self.null_file.fileno(), self._stderr_fd, "stderr", report)

        elif config.target is StdoutTarget.FILE:
            self._redirect_to_file(config, duplicator, report)

        if errors:
            logger.warning(f"Standard stream redirection finished with {len(errors)} error(s)")
        else:
            logger.debug(f"Standard streams redirected to {config.target.value}")
        return RedirectionResult(applied=True, config=config, errors=errors)

    def _redirect_to_file(
            self,
            config: StdRedirectConfig,
            duplicator: DescriptorDuplicator,
            report: Callable[..., None],
    ) -> None:
        if not config.directory:
            report(f"Capture directory not set: {config.directory!r}")
            return

        latest = os.path.join(config.directory, const.STDOUT_CAPTURE_FILENAME)
        archived = fs.archive_path(
            latest, self._clock.now_ns(), const.STDOUT_LEGACY_SUFFIX_FORMAT
        )

        # Keep the previous run's capture
        try:
            os.replace(latest, archived)
        except FileNotFoundError:
            pass
        except OSError as e:
            report(f"Archive of {latest} failed", e)

        try:
            fs.ensure_parent_dir(latest)
            self.capture_file = fs.open_append(latest)
        except OSError as e:
            report(f"Open {latest} failed", e)
            return

        fd = self.capture_file.fileno()
        self._dup(duplicator, fd, self._stdout_fd, "stdout", report)
        self._dup(duplicator, fd, self._stderr_fd, "stderr", report)

    @staticmethod
    def _dup(
            duplicator: DescriptorDuplicator,
            source_fd: int,
            target_fd: int,
            name: str,
            report: Callable[..., Any],
    ) -> None:
        try:
            duplicator.duplicate(source_fd, target_fd)
        except OSError as e:
            report(f"dup2 {name} (fd {target_fd}) failed", e)


def _flush_python_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            if stream is not None:
                stream.flush()
        except (OSError, ValueError):
            pass


# -----------------------------------------------------------------------------
# PROCESS-WIDE API
# -----------------------------------------------------------------------------

_process_redirector: Optional[StreamRedirector] = None
_process_redirector_lock = threading.Lock()


def get_process_redirector() -> StreamRedirector:
    """Return the redirector bound to descriptors 0, 1 and 2."""
    global _process_redirector
    with _process_redirector_lock:
        if _process_redirector is None:
            _process_redirector = StreamRedirector()
        return _process_redirector


def init_std(config: StdRedirectConfig) -> RedirectionResult:
    """
    Redirect the process standard streams once.

    Call early from the host application; later calls are no-ops that
    report the configuration already in effect.
    """
    return get_process_redirector().redirect(config)
