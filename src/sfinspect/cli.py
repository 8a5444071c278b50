from __future__ import annotations

import json
import logging
from typing import Optional, cast

import click
from click import Command

from . import __version__
from .bulk import BulkQueryRunner
from .cli_context import connect_from_env

# Command Files
from .command_objects import describe_cmd, objects_cmd, record_cmd
from .env_loader import load_env_files
from .exceptions import SalesforceError
from .logging_config import configure_logging

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files()


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfinspect")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int]) -> None:
    """Salesforce inspector CLI. Use subcommands like 'query' or 'describe'."""
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("query")
@click.argument("soql")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_query(soql: str, pretty: bool) -> None:
    """Run a SOQL query through the REST API (first page only)."""
    api, conn = connect_from_env()
    try:
        res = api.execute_query(conn, soql)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(res.to_dict(), indent=2 if pretty else None))


@cli.command("bulk-query")
@click.argument("soql")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_bulk_query(soql: str, pretty: bool) -> None:
    """Run a SOQL query as a Bulk API 2.0 job and wait for every record."""
    api, conn = connect_from_env()
    try:
        res = BulkQueryRunner(api).run(conn, soql)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(res.to_dict(), indent=2 if pretty else None))


@cli.command("limits")
def cmd_limits() -> None:
    """Show daily API request usage and the full limits payload."""
    api, conn = connect_from_env()
    try:
        limits = api.get_org_limits(conn)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    core = limits.get("DailyApiRequests", {})
    _logger.info(
        "Daily API requests: %s max / %s remaining", core.get("Max"), core.get("Remaining")
    )
    click.echo(json.dumps(limits, indent=2))


# Cast ensures IDE knows of the Command type
cli.add_command(cast(Command, objects_cmd))
cli.add_command(cast(Command, describe_cmd))
cli.add_command(cast(Command, record_cmd))
