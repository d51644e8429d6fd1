from __future__ import annotations

"""
Standard Logging Bridge.

Routes records of the standard 'logging' tree into rotalog's time-rotated
writers. Application threads only enqueue records; one listener thread
formats them and writes through the shared RotatingFileWriter, so a
rotation (close, rename, reopen, prune) never runs in application code.

All bridge state lives in a single _Bridge record guarded by a lock.
Re-configuration and shutdown detach exactly that record's handler and
leave any other root handlers alone.
"""

import atexit
import logging
import queue
import sys
import threading
from dataclasses import dataclass, field
from logging.handlers import QueueHandler, QueueListener
from typing import List, Optional

from rotalog.core.writer import RotatingFileWriter
from rotalog.infra.logging.config import LoggingConfig, to_stdlib_level
from rotalog.infra.logging.handlers import create_writer_handler

logger = logging.getLogger(__name__)


@dataclass
class _Bridge:
    queue_handler: QueueHandler
    listener: QueueListener
    writers: List[RotatingFileWriter] = field(default_factory=list)


_bridge: Optional[_Bridge] = None
_bridge_lock = threading.Lock()


# ==============================================================================
# PUBLIC API
# ==============================================================================

def configure_logging(cfg: LoggingConfig, *, force: bool = False) -> logging.Logger:
    """
    Attach the bridge to the root logger.

    A second call is a no-op unless ``force`` is set, in which case the
    previous bridge is drained and replaced. Writers are left open across
    a forced re-configuration since other loggers may share them.

    Args:
        cfg: Bridge configuration.
        force: Replace an existing bridge.

    Returns:
        logging.Logger: The root logger.

    Raises:
        ConfigError: If ``cfg.level`` names no known level.
    """
    global _bridge
    root = logging.getLogger()
    level = to_stdlib_level(cfg.level)

    with _bridge_lock:
        if _bridge is not None and not force:
            return root
        previous, _bridge = _bridge, None
    if previous is not None:
        _detach(root, previous, close_writers=False)

    root.setLevel(level)

    handlers: List[logging.Handler] = []
    writers: List[RotatingFileWriter] = []

    if cfg.console:
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(level)
        sh.setFormatter(logging.Formatter(cfg.console_fmt))
        handlers.append(sh)

    if cfg.log_file:
        fh = create_writer_handler(
            cfg.log_file,
            level,
            logging.Formatter(cfg.file_fmt, datefmt=cfg.datefmt),
            cfg.unit,
            cfg.backup_count,
        )
        if fh is not None:
            handlers.append(fh)
            writers.append(fh.writer)

    if not handlers:
        return root

    log_queue: queue.Queue = queue.Queue(-1)
    listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    listener.start()

    queue_handler = QueueHandler(log_queue)
    root.addHandler(queue_handler)

    with _bridge_lock:
        _bridge = _Bridge(queue_handler, listener, writers)

    # Registered after the registry's close hook so the queue drains first
    atexit.unregister(shutdown_logging)
    atexit.register(shutdown_logging)

    logger.debug(f"Logging bridge attached ({len(handlers)} handler(s), {len(writers)} writer(s))")
    return root


def get_logger(name: str) -> logging.Logger:
    """Acquire a named standard logger (usually ``__name__``)."""
    return logging.getLogger(name)


def bridge_writers() -> List[RotatingFileWriter]:
    """Writers the active bridge feeds; empty when detached."""
    with _bridge_lock:
        return list(_bridge.writers) if _bridge is not None else []


def shutdown_logging(*, close_writers: bool = False) -> None:
    """
    Drain queued records into the writers and detach the bridge.

    Args:
        close_writers: Also close the bridge's writers. They are shared
            through the registry, so loggers on the same path are rebuilt
            over a fresh writer on their next lookup.
    """
    global _bridge
    with _bridge_lock:
        bridge, _bridge = _bridge, None
    if bridge is not None:
        _detach(logging.getLogger(), bridge, close_writers)


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _detach(root: logging.Logger, bridge: _Bridge, close_writers: bool) -> None:
    root.removeHandler(bridge.queue_handler)
    bridge.queue_handler.close()

    # stop() processes every record still queued before joining
    bridge.listener.stop()
    for h in bridge.listener.handlers:
        h.close()

    if close_writers:
        for w in bridge.writers:
            w.close()

