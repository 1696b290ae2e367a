import logging
import os

import click
from rich.logging import RichHandler

from .core import BackupOrchestrator
from .errors import BackupError
from .services.config_loader import ConfigLoader, host_config_path


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command(context_settings={"help_option_names": ["--help"]})
@click.option("-h", "--host", required=False, help="Database hostname whose config file to use.")
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Overrides --host lookup.",
)
@click.option(
    "--config-dir",
    required=False,
    type=click.Path(),
    help="Directory holding <host>-config.yml files (default: current directory).",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to a run-wide log file")
@click.option(
    "--dump-jobs",
    required=False,
    type=int,
    default=None,
    help="Parallel workers per pg_dump invocation (default: 4).",
)
@click.option(
    "--probe-timeout",
    required=False,
    type=float,
    default=None,
    help="Timeout in seconds for each connection probe (default: 30).",
)
@click.option(
    "--dump-timeout",
    required=False,
    type=float,
    default=None,
    help="Timeout in seconds for each database dump (default: 21600).",
)
@click.option(
    "--report-file",
    required=False,
    type=click.Path(),
    help="Write a JSON report of the run to this path.",
)
def main(
    host,
    config,
    config_dir,
    verbose,
    log_file,
    dump_jobs,
    probe_timeout,
    dump_timeout,
    report_file,
):
    """Dump every database of the configured PostgreSQL servers and prune old backups."""
    logger = logging.getLogger("pgdumper")

    if not config and not host:
        raise click.ClickException("Provide either '-h/--host' or '--config'.")

    config_path = config or host_config_path(config_dir or os.getcwd(), host)

    try:
        backup_config = ConfigLoader().load(config_path)
    except BackupError as exc:
        raise click.ClickException(str(exc)) from exc

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        orchestrator = BackupOrchestrator(
            config=backup_config,
            dump_jobs=dump_jobs,
            probe_timeout=probe_timeout,
            dump_timeout=dump_timeout,
            report_file=report_file,
        )
    except BackupError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(orchestrator.run())


if __name__ == "__main__":
    main()
