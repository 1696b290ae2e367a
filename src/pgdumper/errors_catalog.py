"""Actionable error catalog for pgdumper."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "config_not_found": {
        "what": "Config file not found: {path}",
        "next": "Pass `--config` or create `<host>-config.yml` in the config directory.",
    },
    "no_reachable_port": {
        "what": "Could not connect to {hostname} on any port ({ports}).",
        "next": "Check that the server is up, the credentials are valid and the ports are open.",
    },
    "no_databases": {
        "what": "No user databases found on {hostname}:{port}.",
        "next": "Verify that the backup user can see the databases in `pg_database`.",
    },
    "dump_failed": {
        "what": "Dump of database {database} on {hostname} failed.",
        "next": "Inspect the server log in `{log_dir}` for the pg_dump error output.",
    },
    "log_sink_unavailable": {
        "what": "Could not open log file {path}.",
        "next": "Check that the data path exists and is writable by the backup user.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
