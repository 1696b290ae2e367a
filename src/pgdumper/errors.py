"""Domain errors for pgdumper."""


class BackupError(RuntimeError):
    """Raised when a backup operation cannot continue safely."""


class ConfigError(BackupError):
    """Raised when the configuration file cannot be loaded."""


class ResolutionFailure(BackupError):
    """Raised when no candidate port of a server answers the probe."""

    def __init__(self, message: str, attempts=()):
        super().__init__(message)
        self.attempts = tuple(attempts)


class EnumerationFailure(BackupError):
    """Raised when the database listing query could not run."""


class DumpFailure(BackupError):
    """Raised when a dump job is invoked with an ineligible database."""


class ReconciliationFailure(BackupError):
    """Raised when a retention entry could not be removed."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
