import click

from m2audit.cli.output import machine_output, user_output
from m2audit.core.config import (
    config_path,
    format_config_value,
    get_config_keys,
    parse_config_value,
    write_config_value,
)
from m2audit.core.context import AuditContext
from m2audit.core.errors import ConfigError


@click.group("config")
def config_group() -> None:
    """Manage m2audit configuration."""


@config_group.command("keys")
def config_keys() -> None:
    """List all available configuration keys with descriptions."""
    formatter = click.HelpFormatter()
    user_output(click.style("Configuration keys:", bold=True))
    formatter.write_dl(list(get_config_keys().items()))
    user_output(formatter.getvalue().rstrip())


@config_group.command("list")
@click.pass_obj
def config_list(ctx: AuditContext) -> None:
    """Print a list of configuration keys and values."""
    path = config_path(ctx.home)
    if path.exists():
        user_output(click.style(f"Configuration ({path}):", bold=True))
    else:
        user_output(click.style("Configuration (defaults, no config file):", bold=True))
    for key in get_config_keys():
        value = getattr(ctx.config, key)
        user_output(f"  {key}={format_config_value(value)}")


@config_group.command("get")
@click.argument("key", metavar="KEY")
@click.pass_obj
def config_get(ctx: AuditContext, key: str) -> None:
    """Print the value of a given configuration key."""
    if key not in get_config_keys():
        user_output(f"Invalid key: {key}")
        raise SystemExit(1)
    machine_output(format_config_value(getattr(ctx.config, key)))


@config_group.command("set")
@click.argument("key", metavar="KEY")
@click.argument("value", metavar="VALUE")
@click.pass_obj
def config_set(ctx: AuditContext, key: str, value: str) -> None:
    """Update configuration with a value for the given key.

    List keys (base_dirs, repos, scopes, exclude_patterns) take a
    comma-separated VALUE.
    """
    try:
        parsed = parse_config_value(key, value)
    except ConfigError as e:
        user_output(str(e))
        raise SystemExit(1) from e

    path = write_config_value(ctx.home, key, parsed)
    user_output(f"Set {key}={format_config_value(parsed)} in {path}")
