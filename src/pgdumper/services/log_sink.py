"""Per-server log files for pgdumper."""

import logging
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Tuple

from pgdumper.constants import LOG_DIR_NAME, STAMP_FORMAT
from pgdumper.errors import BackupError
from pgdumper.errors_catalog import actionable_error

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def server_log_path(data_root: str, hostname: str, now: datetime) -> str:
    file_name = f"{hostname}-sql-dmp-{now.strftime(STAMP_FORMAT)}.log"
    return os.path.join(data_root, LOG_DIR_NAME, file_name)


class ServerLogSink:
    """Hands out a logger bound to one server's log file for a single pass."""

    def __init__(self, parent_logger: logging.Logger, filesystem_service):
        self.parent_logger = parent_logger
        self.filesystem_service = filesystem_service

    @contextmanager
    def open(
        self, data_root: str, hostname: str, now: datetime
    ) -> Iterator[Tuple[logging.Logger, str]]:
        log_path = server_log_path(data_root, hostname, now)
        try:
            self.filesystem_service.ensure_dir(os.path.dirname(log_path))
            handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        except (BackupError, OSError) as exc:
            raise BackupError(actionable_error("log_sink_unavailable", path=log_path)) from exc

        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        server_logger = self.parent_logger.getChild(f"server.{hostname.replace('.', '_')}")
        server_logger.addHandler(handler)
        try:
            yield server_logger, log_path
        finally:
            server_logger.removeHandler(handler)
            handler.close()
