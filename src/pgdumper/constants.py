"""Shared constants for pgdumper."""

EXCLUDED_DATABASES = frozenset({"postgres", "template0", "template1"})

DEFAULT_PORT = 5432
DEFAULT_FALLBACK_PORTS = (6432,)

DEFAULT_DUMP_JOBS = 4
DEFAULT_PROBE_TIMEOUT = 30.0
DEFAULT_DUMP_TIMEOUT = 6 * 60 * 60.0

LOG_DIR_NAME = "dump-logs"
DATE_DIR_FORMAT = "%Y-%m-%d"
STAMP_FORMAT = "%Y%m%d-%H%M%S"

DIR_MODE = 0o755

SECONDS_PER_DAY = 24 * 60 * 60

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_DUMP_FAILED = 2
