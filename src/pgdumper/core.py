import logging
import os
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from rich.console import Console

from .constants import (
    DEFAULT_DUMP_JOBS,
    DEFAULT_DUMP_TIMEOUT,
    DEFAULT_FALLBACK_PORTS,
    DEFAULT_PROBE_TIMEOUT,
    EXIT_ABORTED,
    EXIT_DUMP_FAILED,
    EXIT_OK,
    LOG_DIR_NAME,
)
from .errors import BackupError, ResolutionFailure
from .errors_catalog import actionable_error
from .models import (
    BackupConfig,
    DumpOutcome,
    ResolvedEndpoint,
    ServerDescriptor,
    ServerReport,
    ServerState,
)
from .services.command_runner import CommandRunner
from .services.database import DatabaseService, filter_excluded
from .services.dump import DumpJobRunner, date_directory, dump_output_path
from .services.filesystem import FileSystemService
from .services.log_sink import ServerLogSink
from .services.report import RunReportService
from .services.resolver import ConnectionResolver
from .services.retention import RetentionReconciler

console = Console()
logger = logging.getLogger("pgdumper")


def _resolve_option(cli_value, config_value, default):
    if cli_value is not None:
        return cli_value
    if config_value is not None:
        return config_value
    return default


class BackupOrchestrator:
    """Backs up every configured server in turn and prunes expired data."""

    def __init__(
        self,
        config: BackupConfig,
        dump_jobs: Optional[int] = None,
        probe_timeout: Optional[float] = None,
        dump_timeout: Optional[float] = None,
        report_file: Optional[str] = None,
        command_runner_factory: Callable[..., CommandRunner] = CommandRunner,
        clock: Callable[[], datetime] = datetime.now,
        console: Console = console,
    ):
        self.config = config
        self.data_path = config.data_path
        self.retention_days = config.rotation.retention_days
        self.dump_jobs = _resolve_option(dump_jobs, config.dump_jobs, DEFAULT_DUMP_JOBS)
        self.probe_timeout = _resolve_option(
            probe_timeout, config.probe_timeout, DEFAULT_PROBE_TIMEOUT
        )
        self.dump_timeout = _resolve_option(dump_timeout, config.dump_timeout, DEFAULT_DUMP_TIMEOUT)
        if self.dump_jobs < 1:
            raise BackupError(f"dump_jobs must be a positive integer, got {self.dump_jobs}.")
        if self.probe_timeout <= 0 or self.dump_timeout <= 0:
            raise BackupError("Probe and dump timeouts must be positive.")
        self.fallback_ports = tuple(
            config.fallback_ports if config.fallback_ports is not None else DEFAULT_FALLBACK_PORTS
        )
        self.command_runner_factory = command_runner_factory
        self.clock = clock
        self.console = console

        self.filesystem_service = FileSystemService(logger=logger)
        self.log_sink = ServerLogSink(
            parent_logger=logger,
            filesystem_service=self.filesystem_service,
        )
        self.report_service = RunReportService(report_file=report_file, logger=logger)

    @staticmethod
    def _transition(report: ServerReport, state: ServerState, server_logger):
        server_logger.debug("%s: %s -> %s", report.hostname, report.state.value, state.value)
        report.state = state

    def _abort(self, report: ServerReport, reason: str, server_logger):
        server_logger.error(reason)
        report.abort_reason = reason
        self._transition(report, ServerState.ABORTED, server_logger)
        self.console.print(f"[bold red]Aborted {report.hostname}:[/bold red] {reason}")

    def process_server(self, server: ServerDescriptor) -> ServerReport:
        report = ServerReport(hostname=server.hostname)

        try:
            with self.log_sink.open(self.data_path, server.hostname, self.clock()) as (
                server_logger,
                log_path,
            ):
                report.log_file = log_path
                try:
                    self._run_pipeline(server, report, server_logger)
                except Exception as exc:
                    server_logger.exception("Unexpected error while backing up %s", server.hostname)
                    self._abort(report, f"Unexpected error: {exc}", server_logger)
        except BackupError as exc:
            self._abort(report, str(exc), logger)

        return report

    def _run_pipeline(self, server: ServerDescriptor, report: ServerReport, server_logger):
        server_logger.info("Starting backup for %s", server.hostname)

        command_runner = self.command_runner_factory(logger=server_logger)
        database_service = DatabaseService(
            logger=server_logger,
            command_runner=command_runner,
            timeout=self.probe_timeout,
        )
        resolver = ConnectionResolver(logger=server_logger, database_service=database_service)
        dump_runner = DumpJobRunner(
            logger=server_logger,
            command_runner=command_runner,
            console=self.console,
            jobs=self.dump_jobs,
            timeout=self.dump_timeout,
            connect_timeout=self.probe_timeout,
        )
        reconciler = RetentionReconciler(
            logger=server_logger,
            filesystem_service=self.filesystem_service,
            clock=lambda: self.clock().timestamp(),
        )

        self._transition(report, ServerState.RESOLVING, server_logger)
        try:
            resolution = resolver.resolve(server, server.candidate_ports(self.fallback_ports))
        except ResolutionFailure as exc:
            report.failed_attempts = list(exc.attempts)
            self._abort(report, str(exc), server_logger)
            return

        endpoint = resolution.endpoint
        report.port = endpoint.port
        report.failed_attempts = list(resolution.failed_attempts)

        self._transition(report, ServerState.ENUMERATING, server_logger)
        databases = filter_excluded(resolution.databases)
        if not databases:
            self._abort(
                report,
                actionable_error("no_databases", hostname=server.hostname, port=str(endpoint.port)),
                server_logger,
            )
            return
        server_logger.info("Databases list is: %s", ", ".join(databases))

        self._transition(report, ServerState.DUMPING, server_logger)
        report.outcomes = [
            self._dump_database(dump_runner, endpoint, database, server_logger)
            for database in databases
        ]

        self._transition(report, ServerState.RECONCILING, server_logger)
        report.reconciliation = reconciler.reconcile(self.data_path, self.retention_days)
        server_logger.info("Old files removed for %s", server.hostname)

        self._transition(report, ServerState.DONE, server_logger)
        server_logger.info("Backup process completed for %s", server.hostname)

    def _dump_database(
        self, dump_runner: DumpJobRunner, endpoint: ResolvedEndpoint, database: str, server_logger
    ) -> DumpOutcome:
        now = self.clock()
        try:
            self.filesystem_service.ensure_dir(date_directory(self.data_path, now))
        except BackupError as exc:
            server_logger.error("Error creating dump directory: %s", exc)
            return DumpOutcome.failed(database, str(exc))

        output_path = dump_output_path(self.data_path, endpoint.hostname, database, now)
        outcome = dump_runner.dump(endpoint, database, output_path)
        if outcome.success:
            self.console.print(f"[green]Dumped {database} from {endpoint}.[/green]")
        else:
            message = actionable_error(
                "dump_failed",
                database=database,
                hostname=endpoint.hostname,
                log_dir=os.path.join(self.data_path, LOG_DIR_NAME),
            )
            self.console.print(f"[yellow]{message}[/yellow]")
        return outcome

    @staticmethod
    def exit_code_for(reports: Sequence[ServerReport]) -> int:
        if any(report.aborted for report in reports):
            return EXIT_ABORTED
        if any(report.failed_dumps for report in reports):
            return EXIT_DUMP_FAILED
        return EXIT_OK

    def print_summary(self, reports: Sequence[ServerReport]):
        for report in reports:
            if report.aborted:
                self.console.print(f"[bold red]{report.hostname}: aborted[/bold red]")
                continue

            succeeded = len(report.outcomes) - len(report.failed_dumps)
            color = "green" if not report.failed_dumps else "yellow"
            self.console.print(
                f"[{color}]{report.hostname}:{report.port} "
                f"{succeeded}/{len(report.outcomes)} database(s) dumped, "
                f"{len(report.reconciliation.removed)} expired entr(ies) removed[/{color}]"
            )
            for outcome in report.failed_dumps:
                self.console.print(f"  [red]{outcome.database}[/red]: {outcome.reason}")

    def run(self) -> int:
        reports: List[ServerReport] = []
        status = "failed"
        exit_code = EXIT_ABORTED

        try:
            self.report_service.start_run(self.data_path, self.retention_days)
            logger.info("Starting backup of %s server(s)", len(self.config.servers))
            for server in self.config.servers:
                self.console.print(f"[blue]Backing up {server.hostname}...[/blue]")
                server_report = self.process_server(server)
                reports.append(server_report)
                self.report_service.add_server(server_report)

            exit_code = self.exit_code_for(reports)
            status = "success" if exit_code == EXIT_OK else "partial"
            self.print_summary(reports)
            return exit_code

        except KeyboardInterrupt:
            self.console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            status = "aborted"
            exit_code = EXIT_ABORTED
            return exit_code
        finally:
            self.report_service.finalize(status, exit_code)
