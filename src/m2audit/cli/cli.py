import logging

import click

from m2audit.cli.commands.audit import audit_cmd
from m2audit.cli.commands.config import config_group
from m2audit.cli.commands.status import status_cmd
from m2audit.core.context import create_context
from m2audit.core.errors import ConfigError

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="m2audit")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Audit and prune the local Maven artifact cache."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(levelname)s - %(message)s")

    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        try:
            ctx.obj = create_context()
        except ConfigError as e:
            raise click.ClickException(str(e)) from e


cli.add_command(audit_cmd)
cli.add_command(config_group)
cli.add_command(status_cmd)


def main() -> None:
    """CLI entry point used by the `m2audit` console script."""
    cli()
