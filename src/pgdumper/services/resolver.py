"""Connection resolution for pgdumper."""

from typing import Iterable, List

from pgdumper.errors import EnumerationFailure, ResolutionFailure
from pgdumper.errors_catalog import actionable_error
from pgdumper.models import PortAttempt, Resolution, ResolvedEndpoint, ServerDescriptor


class ConnectionResolver:
    """Picks the first candidate port on which database enumeration works."""

    def __init__(self, logger, database_service):
        self.logger = logger
        self.database_service = database_service

    def resolve(self, server: ServerDescriptor, candidate_ports: Iterable[int]) -> Resolution:
        attempts: List[PortAttempt] = []
        ports = list(candidate_ports)

        for port in ports:
            endpoint = ResolvedEndpoint(server=server, port=port)
            try:
                databases = self.database_service.list_databases(endpoint)
            except EnumerationFailure as exc:
                self.logger.warning(
                    "Error connecting to %s on port %s: %s", server.hostname, port, exc
                )
                attempts.append(PortAttempt(port=port, error=str(exc)))
                continue

            self.logger.info("Connected to %s on port %s", server.hostname, port)
            return Resolution(
                endpoint=endpoint,
                databases=tuple(databases),
                failed_attempts=tuple(attempts),
            )

        raise ResolutionFailure(
            actionable_error(
                "no_reachable_port",
                hostname=server.hostname,
                ports=", ".join(str(port) for port in ports) or "none configured",
            ),
            attempts=attempts,
        )
