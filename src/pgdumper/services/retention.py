"""Retention window enforcement for the backup data root."""

import os
import time
from typing import Callable, List, Optional

from pgdumper.constants import SECONDS_PER_DAY
from pgdumper.errors import ReconciliationFailure
from pgdumper.models import ReconciliationReport, RemovalFailure, RetentionEntry


class RetentionReconciler:
    """
    Removes top-level entries of the data root older than the retention window.

    Dated directories are judged as a whole and removed with their entire
    subtree; their contents are never inspected. Files sitting directly in
    the data root are judged individually.
    """

    def __init__(self, logger, filesystem_service, clock: Callable[[], float] = time.time):
        self.logger = logger
        self.filesystem_service = filesystem_service
        self.clock = clock

    def scan(self, data_root: str) -> List[RetentionEntry]:
        entries: List[RetentionEntry] = []
        with os.scandir(data_root) as iterator:
            for entry in iterator:
                try:
                    stat = entry.stat(follow_symlinks=False)
                except FileNotFoundError:
                    continue
                entries.append(
                    RetentionEntry(
                        path=entry.path,
                        modified_at=stat.st_mtime,
                        is_dir=entry.is_dir(follow_symlinks=False),
                    )
                )
        return sorted(entries, key=lambda item: item.path)

    @staticmethod
    def is_expired(entry: RetentionEntry, now: float, retention_days: int) -> bool:
        return (now - entry.modified_at) > retention_days * SECONDS_PER_DAY

    def reconcile(
        self, data_root: str, retention_days: int, now: Optional[float] = None
    ) -> ReconciliationReport:
        report = ReconciliationReport()
        if not os.path.isdir(data_root):
            self.logger.warning("Data path %s does not exist; nothing to reconcile.", data_root)
            return report

        current = self.clock() if now is None else now

        try:
            entries = self.scan(data_root)
        except OSError as exc:
            self.logger.warning("Could not list %s: %s", data_root, exc)
            report.failures.append(RemovalFailure(path=data_root, error=str(exc)))
            return report

        for entry in entries:
            if not self.is_expired(entry, current, retention_days):
                continue

            kind = "directory" if entry.is_dir else "file"
            self.logger.info("Removing old %s: %s", kind, entry.path)
            try:
                self.filesystem_service.remove_entry(entry.path, is_dir=entry.is_dir)
            except ReconciliationFailure as exc:
                self.logger.warning("Could not remove %s: %s", entry.path, exc)
                report.failures.append(RemovalFailure(path=entry.path, error=str(exc)))
                continue
            report.removed.append(entry.path)

        return report
