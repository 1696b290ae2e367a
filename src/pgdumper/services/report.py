"""Run report generation service."""

import json
import os
import tempfile
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pgdumper.models import ServerReport


class RunReportService:
    """Collects per-server results and writes the run report JSON."""

    def __init__(self, report_file: Optional[str], logger):
        self.report_file = report_file
        self.logger = logger
        self.report: Dict[str, Any] = {
            "status": "running",
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "data_path": None,
            "retention_days": None,
            "servers": [],
        }

    def start_run(self, data_path: str, retention_days: int):
        self.report["status"] = "running"
        self.report["started_at"] = self._now()
        self.report["data_path"] = data_path
        self.report["retention_days"] = retention_days
        self.write()

    def add_server(self, server_report: ServerReport):
        entry = asdict(server_report)
        entry["state"] = server_report.state.value
        self.report["servers"].append(entry)
        self.write()

    def finalize(self, status: str, exit_code: int):
        self.report["status"] = status
        self.report["exit_code"] = exit_code
        self.report["finished_at"] = self._now()
        if self.report.get("started_at"):
            started_at = datetime.fromisoformat(self.report["started_at"])
            finished_at = datetime.fromisoformat(self.report["finished_at"])
            self.report["duration_seconds"] = (finished_at - started_at).total_seconds()
        self.write()

    def write(self):
        if not self.report_file:
            return

        directory = os.path.dirname(self.report_file) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix="run-report-", suffix=".json", dir=directory)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", self.report_file, exc)
            return

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", self.report_file, exc)
            try:
                os.remove(temp_path)
            except OSError:
                pass

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
