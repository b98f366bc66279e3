"""Terminal output helpers.

Human-oriented messages go to stderr; values meant for scripts (``config
get``) go to stdout.
"""

import logging

import click
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

WARNING_ICON = "⚠️ "


def user_output(message: str = "", nl: bool = True) -> None:
    click.echo(message, err=True, nl=nl)


def machine_output(message: str = "", nl: bool = True) -> None:
    click.echo(message, nl=nl)


def user_warning(context: str, message: str) -> None:
    """Show a warning with its context and record it in the run log."""
    user_output(click.style(f"{WARNING_ICON} {context}: ", fg="yellow") + message)
    logger.warning("%s: %s", context, message)


def print_table(table: Table) -> None:
    console = Console(stderr=True)
    console.print(table)


def new_table(*columns: str) -> Table:
    table = Table(show_header=True, header_style="bold", box=None)
    for column in columns:
        table.add_column(column, no_wrap=True)
    return table
