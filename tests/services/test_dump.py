import io
import subprocess
from datetime import datetime

import pytest
from rich.console import Console

from pgdumper.errors import BackupError, DumpFailure
from pgdumper.models import ResolvedEndpoint, ServerDescriptor
from pgdumper.services.command_runner import CommandRunner
from pgdumper.services.dump import DumpJobRunner, date_directory, dump_output_path


class DummyLogger:
    def __init__(self):
        self.errors = []

    def info(self, *_args, **_kwargs):
        return None

    def error(self, message, *args, **_kwargs):
        self.errors.append(message % args)


class FakeRunner:
    build_env = staticmethod(CommandRunner.build_env)

    def __init__(self, returncode=0, stderr="", error=None):
        self.returncode = returncode
        self.stderr = stderr
        self.error = error
        self.calls = []

    def run(self, cmd, check=True, capture_output=False, timeout=None, env=None):
        self.calls.append({"cmd": cmd, "env": env, "timeout": timeout, "check": check})
        if self.error:
            raise BackupError(self.error)
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr=self.stderr)


ENDPOINT = ResolvedEndpoint(
    server=ServerDescriptor(hostname="db1", user="backup", password="pw"),
    port=6432,
)


def test_dump_output_path_uses_date_directory_and_second_stamp():
    now = datetime(2024, 2, 1, 3, 4, 5)

    assert date_directory("/data", now) == "/data/2024-02-01"
    assert dump_output_path("/data", "db1", "app_db", now) == "/data/2024-02-01/db1-app_db-20240201-030405"


def test_dump_builds_directory_format_command():
    runner = FakeRunner()
    dumper = DumpJobRunner(logger=DummyLogger(), command_runner=runner, jobs=2, timeout=60)

    outcome = dumper.dump(ENDPOINT, "app_db", "/data/out")

    assert outcome.success is True
    assert outcome.path == "/data/out"
    call = runner.calls[0]
    assert call["cmd"] == [
        "pg_dump", "-j", "2", "-Fd", "-h", "db1", "-d", "app_db",
        "-U", "backup", "-p", "6432", "-w", "-f", "/data/out",
    ]
    assert call["check"] is False
    assert call["timeout"] == 60
    assert call["env"]["PGPASSWORD"] == "pw"


def test_dump_failure_returns_outcome_with_stderr():
    logger = DummyLogger()
    runner = FakeRunner(returncode=1, stderr="pg_dump: error: permission denied for table x\n")
    dumper = DumpJobRunner(logger=logger, command_runner=runner)

    outcome = dumper.dump(ENDPOINT, "app_db", "/data/out")

    assert outcome.success is False
    assert outcome.path is None
    assert "permission denied" in outcome.reason
    assert any("Error dumping database app_db for db1:6432" in line for line in logger.errors)
    assert any(line.startswith("Stderr: pg_dump: error") for line in logger.errors)


def test_dump_timeout_or_missing_binary_is_a_failed_outcome():
    logger = DummyLogger()
    dumper = DumpJobRunner(logger=logger, command_runner=FakeRunner(error="Command timed out"))

    outcome = dumper.dump(ENDPOINT, "app_db", "/data/out")

    assert outcome.success is False
    assert "timed out" in outcome.reason
    assert logger.errors == ["Error dumping database app_db for db1:6432: Command timed out"]


@pytest.mark.parametrize("database", ["postgres", "template0", "template1"])
def test_dump_refuses_system_databases(database):
    runner = FakeRunner()
    dumper = DumpJobRunner(logger=DummyLogger(), command_runner=runner)

    with pytest.raises(DumpFailure):
        dumper.dump(ENDPOINT, database, "/data/out")

    assert runner.calls == []


def test_dump_with_console_shows_spinner_and_still_runs():
    runner = FakeRunner()
    console = Console(file=io.StringIO())
    dumper = DumpJobRunner(logger=DummyLogger(), command_runner=runner, console=console)

    outcome = dumper.dump(ENDPOINT, "app_db", "/data/out")

    assert outcome.success is True
    assert len(runner.calls) == 1
