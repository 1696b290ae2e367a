"""Database enumeration service for pgdumper."""

import math
from typing import Dict, List, Optional

from pgdumper.constants import EXCLUDED_DATABASES
from pgdumper.errors import BackupError, EnumerationFailure
from pgdumper.models import ResolvedEndpoint, ServerDescriptor


def pg_env(server: ServerDescriptor, connect_timeout: Optional[float] = None) -> Dict[str, str]:
    """Environment entries handed to psql/pg_dump for ``server``."""
    extra: Dict[str, str] = {}
    if server.password is not None:
        extra["PGPASSWORD"] = server.password
    if connect_timeout:
        extra["PGCONNECT_TIMEOUT"] = str(max(1, math.ceil(connect_timeout)))
    return extra


def filter_excluded(databases) -> List[str]:
    return [name for name in databases if name not in EXCLUDED_DATABASES]


class DatabaseService:
    """Lists the user databases of a PostgreSQL server through psql."""

    LIST_QUERY = (
        "SELECT datname FROM pg_database "
        "WHERE datistemplate = false "
        "AND datname NOT IN ('postgres', 'template0', 'template1')"
    )

    def __init__(self, logger, command_runner, timeout: Optional[float] = None):
        self.logger = logger
        self.command_runner = command_runner
        self.timeout = timeout

    def build_list_command(self, endpoint: ResolvedEndpoint) -> List[str]:
        return [
            "psql",
            "-h",
            endpoint.server.hostname,
            "-U",
            endpoint.server.user,
            "-p",
            str(endpoint.port),
            "-d",
            "postgres",
            "-w",
            "-t",
            "-A",
            "-c",
            self.LIST_QUERY,
        ]

    @staticmethod
    def parse_database_list(output: str) -> List[str]:
        databases: List[str] = []
        for line in output.splitlines():
            cleaned = line.strip()
            if cleaned:
                databases.append(cleaned)
        return databases

    def list_databases(self, endpoint: ResolvedEndpoint) -> List[str]:
        cmd = self.build_list_command(endpoint)
        env = self.command_runner.build_env(pg_env(endpoint.server, self.timeout))

        try:
            result = self.command_runner.run(
                cmd,
                check=True,
                capture_output=True,
                timeout=self.timeout,
                env=env,
            )
        except BackupError as exc:
            raise EnumerationFailure(
                f"Could not list databases on {endpoint}: {exc}"
            ) from exc

        databases = filter_excluded(self.parse_database_list(result.stdout or ""))
        self.logger.info("Databases on %s: %s", endpoint, ", ".join(databases) or "<none>")
        return databases
