"""Configuration loader for pgdumper."""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from pgdumper.constants import DEFAULT_PORT
from pgdumper.errors import ConfigError
from pgdumper.errors_catalog import actionable_error
from pgdumper.models import BackupConfig, RotationConfig, ServerDescriptor


def host_config_path(config_dir: str, host: str) -> str:
    return os.path.join(config_dir, f"{host}-config.yml")


class ConfigLoader:
    """Loads the YAML backup configuration into domain models."""

    SUPPORTED_KEYS = {
        "data_path",
        "rotation",
        "servers",
        "dump_jobs",
        "probe_timeout",
        "dump_timeout",
        "fallback_ports",
    }
    SERVER_KEYS = {
        "db_hostname",
        "db_user",
        "db_password",
        "db_port",
        "db_fallback_ports",
    }

    def load(self, config_path: Optional[str]) -> BackupConfig:
        return self.parse(self.read(config_path), source=str(config_path))

    def read(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            raise ConfigError("No configuration file given.")

        path = Path(config_path)
        if not path.exists():
            raise ConfigError(actionable_error("config_not_found", path=str(config_path)))

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict):
            raise ConfigError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ConfigError(f"Unknown configuration keys: {unknown_list}")

        return parsed

    def parse(self, values: Dict[str, Any], source: str = "<config>") -> BackupConfig:
        data_path = values.get("data_path")
        if not data_path:
            raise ConfigError(f"{source}: `data_path` is required.")

        rotation = values.get("rotation") or {}
        if not isinstance(rotation, dict) or "retention_days" not in rotation:
            raise ConfigError(f"{source}: `rotation.retention_days` is required.")
        retention_days = self._as_int(rotation["retention_days"], "rotation.retention_days")
        if retention_days < 0:
            raise ConfigError(f"{source}: `rotation.retention_days` must not be negative.")
        period_days = rotation.get("period_days")

        servers = values.get("servers")
        if not isinstance(servers, list) or not servers:
            raise ConfigError(f"{source}: `servers` must be a non-empty list.")

        fallback_ports = values.get("fallback_ports")

        return BackupConfig(
            data_path=str(data_path),
            rotation=RotationConfig(
                retention_days=retention_days,
                period_days=self._as_int(period_days, "rotation.period_days")
                if period_days is not None
                else None,
            ),
            servers=tuple(self._parse_server(item, index) for index, item in enumerate(servers)),
            dump_jobs=self._optional(values, "dump_jobs", int),
            probe_timeout=self._optional(values, "probe_timeout", float),
            dump_timeout=self._optional(values, "dump_timeout", float),
            fallback_ports=self._ports(fallback_ports, "fallback_ports")
            if fallback_ports is not None
            else None,
        )

    def _parse_server(self, item: Any, index: int) -> ServerDescriptor:
        label = f"servers[{index}]"
        if not isinstance(item, dict):
            raise ConfigError(f"{label} must be a mapping.")

        unknown = sorted(set(item.keys()) - self.SERVER_KEYS)
        if unknown:
            raise ConfigError(f"Unknown keys in {label}: {', '.join(unknown)}")

        hostname = item.get("db_hostname")
        user = item.get("db_user")
        if not hostname or not user:
            raise ConfigError(f"{label} requires `db_hostname` and `db_user`.")

        password = item.get("db_password")
        return ServerDescriptor(
            hostname=str(hostname),
            user=str(user),
            password=str(password) if password is not None else None,
            port=self._port(item.get("db_port", DEFAULT_PORT), f"{label}.db_port"),
            fallback_ports=self._ports(
                item.get("db_fallback_ports", []), f"{label}.db_fallback_ports"
            ),
        )

    def _ports(self, value: Any, label: str) -> Tuple[int, ...]:
        if not isinstance(value, list):
            raise ConfigError(f"`{label}` must be a list of ports.")
        return tuple(self._port(port, label) for port in value)

    def _port(self, value: Any, label: str) -> int:
        port = self._as_int(value, label)
        if not 0 < port < 65536:
            raise ConfigError(f"`{label}` must be a port between 1 and 65535, got {value!r}.")
        return port

    @staticmethod
    def _as_int(value: Any, label: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"`{label}` must be an integer, got {value!r}.") from exc

    @staticmethod
    def _optional(values: Dict[str, Any], key: str, cast):
        if values.get(key) is None:
            return None
        try:
            parsed = cast(values[key])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"`{key}` has an invalid value: {values[key]!r}.") from exc
        if isinstance(values[key], bool) or parsed <= 0:
            raise ConfigError(f"`{key}` must be a positive number, got {values[key]!r}.")
        return parsed
