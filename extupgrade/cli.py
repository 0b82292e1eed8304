"""
CLI entry point for extupgrade.

Uses Click for argument parsing and provides a clean interface
for validating an extension upgrade from the command line.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import build_run_config, load_config_file
from .errors import ConfigError, ExtUpgradeError
from .reporting import Reporter
from .runner import run_validation


@click.command(context_settings={"help_option_names": ["--help"]})
@click.option("--extname", help="Name of the extension to validate")
@click.option("--from", "from_version", help="Version to install and upgrade from")
@click.option("--to", "to_version", help="Version to install directly and upgrade to")
@click.option("-h", "--host", help="Database server host or socket directory")
@click.option("-p", "--port", type=int, help="Database server port")
@click.option("-U", "--user", help="Database user name")
@click.option("-d", "--dbname", help="Database name to connect to")
@click.option(
    "-c", "--config", "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="TOML or JSON file with the run settings",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "-q", "--quiet",
    is_flag=True,
    help="Only print the report, warnings and errors",
)
@click.version_option(version=__version__, prog_name="extupgrade")
def main(
    extname: Optional[str],
    from_version: Optional[str],
    to_version: Optional[str],
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    dbname: Optional[str],
    config_file: Optional[Path],
    no_color: bool,
    quiet: bool,
):
    """
    Validate a PostgreSQL extension upgrade.

    Installs the --to version directly, then installs the --from version
    and upgrades it to --to, and reports every difference between both
    resulting extensions.

    \b
    Examples:
        extupgrade --extname myext --from 1.0 --to 1.1
        extupgrade -c myext.toml -d postgres
    """
    try:
        file_values = load_config_file(config_file) if config_file else None
        config = build_run_config(
            file_values,
            extname=extname,
            from_version=from_version,
            to_version=to_version,
            host=host,
            port=port,
            user=user,
            dbname=dbname,
            no_color=no_color or None,
            quiet=quiet or None,
        )
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    sys.exit(run_cli(config))


def run_cli(config) -> int:
    """
    Main CLI logic (can be called programmatically).

    Returns exit code (0 if no difference was found, 1 otherwise).
    """
    reporter = Reporter(quiet=config.quiet, no_color=config.no_color)

    try:
        diffs = run_validation(config, reporter)
    except ExtUpgradeError as e:
        reporter.print_error(str(e))
        return 1

    if diffs:
        reporter.print_report(diffs)
        return 1

    reporter.print_success()
    return 0


if __name__ == "__main__":
    main()
