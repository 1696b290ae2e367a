"""pg_dump job execution for pgdumper."""

import os
from datetime import datetime
from typing import List, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from pgdumper.constants import DATE_DIR_FORMAT, DEFAULT_DUMP_JOBS, EXCLUDED_DATABASES, STAMP_FORMAT
from pgdumper.errors import BackupError, DumpFailure
from pgdumper.models import DumpOutcome, ResolvedEndpoint
from pgdumper.services.database import pg_env


def date_directory(data_root: str, now: datetime) -> str:
    return os.path.join(data_root, now.strftime(DATE_DIR_FORMAT))


def dump_output_path(data_root: str, hostname: str, database: str, now: datetime) -> str:
    file_name = f"{hostname}-{database}-{now.strftime(STAMP_FORMAT)}"
    return os.path.join(date_directory(data_root, now), file_name)


class DumpJobRunner:
    """Runs one directory-format pg_dump per database and reports the outcome."""

    def __init__(
        self,
        logger,
        command_runner,
        console=None,
        jobs: int = DEFAULT_DUMP_JOBS,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
    ):
        self.logger = logger
        self.command_runner = command_runner
        self.console = console
        self.jobs = jobs
        self.timeout = timeout
        self.connect_timeout = connect_timeout

    def build_dump_command(
        self, endpoint: ResolvedEndpoint, database: str, output_path: str
    ) -> List[str]:
        return [
            "pg_dump",
            "-j",
            str(self.jobs),
            "-Fd",
            "-h",
            endpoint.server.hostname,
            "-d",
            database,
            "-U",
            endpoint.server.user,
            "-p",
            str(endpoint.port),
            "-w",
            "-f",
            output_path,
        ]

    def dump(self, endpoint: ResolvedEndpoint, database: str, output_path: str) -> DumpOutcome:
        if database in EXCLUDED_DATABASES:
            raise DumpFailure(f"Refusing to dump system database `{database}` on {endpoint}.")

        cmd = self.build_dump_command(endpoint, database, output_path)
        env = self.command_runner.build_env(pg_env(endpoint.server, self.connect_timeout))
        self.logger.info("Dumping %s from %s into %s", database, endpoint, output_path)

        try:
            if self.console is not None:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    TimeElapsedColumn(),
                    console=self.console,
                    transient=True,
                ) as progress:
                    progress.add_task(f"[bold magenta]Dumping {database}...", total=None)
                    result = self._execute(cmd, env)
            else:
                result = self._execute(cmd, env)
        except BackupError as exc:
            self.logger.error("Error dumping database %s for %s: %s", database, endpoint, exc)
            return DumpOutcome.failed(database, str(exc))

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            self.logger.error(
                "Error dumping database %s for %s: pg_dump exited with %s",
                database,
                endpoint,
                result.returncode,
            )
            self.logger.error("Stderr: %s", stderr or "<empty>")
            reason = f"pg_dump exited with {result.returncode}"
            if stderr:
                reason = f"{reason}: {stderr}"
            return DumpOutcome.failed(database, reason)

        self.logger.info("Database dump successful for %s for %s", database, endpoint.hostname)
        self.logger.info("Dump file is: %s", output_path)
        return DumpOutcome.succeeded(database, output_path)

    def _execute(self, cmd: List[str], env):
        return self.command_runner.run(
            cmd,
            check=False,
            capture_output=True,
            timeout=self.timeout,
            env=env,
        )
