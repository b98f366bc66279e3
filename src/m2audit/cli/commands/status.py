from datetime import timedelta
from pathlib import Path

import click

from m2audit.cli.output import new_table, print_table, user_output
from m2audit.core.config import config_path
from m2audit.core.context import AuditContext
from m2audit.core.reports import UNUSED_REPORT_NAME, USED_REPORT_NAME, read_report
from m2audit.core.run_state import days_between, is_report_fresh, load_run_state, should_run


@click.command("status")
@click.pass_obj
def status_cmd(ctx: AuditContext) -> None:
    """Show the last run, report freshness and configured locations."""
    config = ctx.config
    now = ctx.time.now()
    used_report = config.output_dir / USED_REPORT_NAME
    unused_report = config.output_dir / UNUSED_REPORT_NAME
    state = load_run_state(
        config.output_dir,
        used_report=used_report,
        report_age_limit_days=config.max_report_age_days,
        min_run_interval_days=config.min_days_between_runs,
    )

    table = new_table("Item", "Value")
    path = config_path(ctx.home)
    table.add_row("Config file", str(path) if path.exists() else f"{path} [dim](defaults)[/dim]")

    cache_state = "" if config.cache_root.is_dir() else " [red](missing)[/red]"
    table.add_row("Artifact cache", f"{config.cache_root}{cache_state}")

    last_run = state.last_run
    if last_run is None:
        table.add_row("Last run", "never")
    else:
        table.add_row("Last run", f"{last_run:%Y-%m-%d} ({days_between(last_run, now)} days ago)")

    if should_run(now, last_run, state.min_run_interval_days, forced=False):
        table.add_row("Next run", "[green]allowed now[/green]")
    else:
        assert last_run is not None
        next_run = last_run + timedelta(days=state.min_run_interval_days)
        table.add_row("Next run", f"{next_run:%Y-%m-%d}")

    table.add_row("Used report", _describe_report(used_report))
    table.add_row("Unused report", _describe_report(unused_report))
    if is_report_fresh(used_report, now, state.report_age_limit_days):
        table.add_row("Usage scan", "[cyan]will reuse the used report[/cyan]")
    else:
        table.add_row("Usage scan", "will rescan repositories")

    user_output(click.style("m2audit status", bold=True))
    print_table(table)


def _describe_report(path: Path) -> str:
    if not path.is_file():
        return "[dim]not written yet[/dim]"
    return f"{path} ({len(read_report(path))} rows)"
