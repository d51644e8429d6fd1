from __future__ import annotations

"""
Domain Constants and Defaults.

Provides centralized access to the default log locations, rotation
parameters and the naming formats used for archived files on disk.
"""

# -----------------------------------------------------------------------------
# DEFAULT LOGGER
# -----------------------------------------------------------------------------
DEFAULT_LOG_PATH = "./logs/app.log"
DEFAULT_RETENTION = 7
DEFAULT_TRACE_ON = True

# -----------------------------------------------------------------------------
# ROTATION
# -----------------------------------------------------------------------------
NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_HOUR = 3600 * NANOS_PER_SECOND
NANOS_PER_DAY = 24 * NANOS_PER_HOUR
NANOS_PER_WEEK = 7 * NANOS_PER_DAY

HOURLY_SUFFIX_FORMAT = "%Y-%m-%d_%H"
DAILY_SUFFIX_FORMAT = "%Y-%m-%d"

FILE_MODE = 0o644
DIR_MODE = 0o755

# -----------------------------------------------------------------------------
# STANDARD STREAM CAPTURE
# -----------------------------------------------------------------------------
STDOUT_CAPTURE_FILENAME = "stdout.log"
STDOUT_LEGACY_SUFFIX_FORMAT = "%Y%m%d.%H%M%S"

# Placeholder reported when the caller frame cannot be resolved
UNKNOWN_CALLER_FILE = "???"
