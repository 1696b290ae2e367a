"""
pgdumper - PostgreSQL fleet backup tool
"""

__version__ = "0.1.0"

from .core import BackupOrchestrator
from .errors import BackupError

__all__ = ["BackupOrchestrator", "BackupError"]
