"""Shared domain models for pgdumper."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .constants import DEFAULT_PORT


@dataclass(frozen=True)
class ServerDescriptor:
    """Connection identity and credentials of one configured server."""

    hostname: str
    user: str
    password: Optional[str] = None
    port: int = DEFAULT_PORT
    fallback_ports: Tuple[int, ...] = ()

    def candidate_ports(self, default_fallbacks: Tuple[int, ...] = ()) -> List[int]:
        ordered: List[int] = []
        for port in (self.port, *default_fallbacks, *self.fallback_ports):
            if port not in ordered:
                ordered.append(port)
        return ordered


@dataclass(frozen=True)
class ResolvedEndpoint:
    """A server paired with the port that answered the probe."""

    server: ServerDescriptor
    port: int

    @property
    def hostname(self) -> str:
        return self.server.hostname

    def __str__(self) -> str:
        return f"{self.server.hostname}:{self.port}"


@dataclass(frozen=True)
class PortAttempt:
    port: int
    error: str


@dataclass(frozen=True)
class Resolution:
    endpoint: ResolvedEndpoint
    databases: Tuple[str, ...]
    failed_attempts: Tuple[PortAttempt, ...] = ()


@dataclass(frozen=True)
class DumpOutcome:
    """Result of dumping one database; ``path`` is set on success only."""

    database: str
    success: bool
    path: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, database: str, path: str) -> "DumpOutcome":
        return cls(database=database, success=True, path=path)

    @classmethod
    def failed(cls, database: str, reason: str) -> "DumpOutcome":
        return cls(database=database, success=False, reason=reason)


@dataclass(frozen=True)
class RetentionEntry:
    path: str
    modified_at: float
    is_dir: bool


@dataclass(frozen=True)
class RemovalFailure:
    path: str
    error: str


@dataclass
class ReconciliationReport:
    removed: List[str] = field(default_factory=list)
    failures: List[RemovalFailure] = field(default_factory=list)


class ServerState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    ENUMERATING = "enumerating"
    DUMPING = "dumping"
    RECONCILING = "reconciling"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class ServerReport:
    """Outcome of one server pass, consumed by the CLI and run report."""

    hostname: str
    state: ServerState = ServerState.IDLE
    port: Optional[int] = None
    failed_attempts: List[PortAttempt] = field(default_factory=list)
    outcomes: List[DumpOutcome] = field(default_factory=list)
    reconciliation: ReconciliationReport = field(default_factory=ReconciliationReport)
    abort_reason: Optional[str] = None
    log_file: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.state == ServerState.ABORTED

    @property
    def failed_dumps(self) -> List[DumpOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]


@dataclass(frozen=True)
class RotationConfig:
    retention_days: int
    period_days: Optional[int] = None


@dataclass(frozen=True)
class BackupConfig:
    """Loaded configuration file contents."""

    data_path: str
    rotation: RotationConfig
    servers: Tuple[ServerDescriptor, ...]
    dump_jobs: Optional[int] = None
    probe_timeout: Optional[float] = None
    dump_timeout: Optional[float] = None
    fallback_ports: Optional[Tuple[int, ...]] = None
