"""Filesystem helpers for pgdumper."""

import logging
import os
import shutil
import sys

from pgdumper.constants import DIR_MODE
from pgdumper.errors import BackupError, ReconciliationFailure


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except Exception as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def ensure_dir(self, path: str) -> str:
        if os.path.isdir(path):
            return path

        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            raise BackupError(f"Could not create directory {path}: {exc}") from exc
        self.set_permissions(path, DIR_MODE)
        self.logger.debug("Created directory: %s", path)
        return path

    def remove_entry(self, path: str, is_dir: bool):
        try:
            if is_dir:
                shutil.rmtree(path)
            else:
                os.remove(path)
        except FileNotFoundError as exc:
            raise ReconciliationFailure(f"Entry vanished before removal: {path}", path) from exc
        except OSError as exc:
            raise ReconciliationFailure(f"Could not remove {path}: {exc}", path) from exc
        self.logger.debug("Removed: %s", path)
