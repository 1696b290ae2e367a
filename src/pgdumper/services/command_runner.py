"""Subprocess execution service for pgdumper."""

import os
import subprocess
from typing import Dict, List, Optional

from pgdumper.errors import BackupError


class CommandRunner:
    """Runs external PostgreSQL client tools with consistent error handling."""

    def __init__(self, logger):
        self.logger = logger

    @staticmethod
    def build_env(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Copy of the current environment with ``extra`` applied.

        The parent process environment is never mutated; secrets such as
        ``PGPASSWORD`` only reach the child process.
        """
        env = dict(os.environ)
        env.update(extra or {})
        return env

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                timeout=timeout,
                env=env,
            )
        except FileNotFoundError as exc:
            raise BackupError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise BackupError(f"Command timed out after {timeout}s: {cmd_str}") from exc
        except Exception as exc:
            raise BackupError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise BackupError(message)

        self.logger.warning(message)
        return result
