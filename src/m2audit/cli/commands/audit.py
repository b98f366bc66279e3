import logging
from datetime import datetime
from pathlib import Path

import click

from m2audit.cli.output import new_table, print_table, user_output, user_warning
from m2audit.cli.run_log import attach_run_log, detach_run_log
from m2audit.core.cache_scanner import detect_downloads, scan, snapshot
from m2audit.core.context import AuditContext
from m2audit.core.coordinates import ArtifactCoordinate, InstalledArtifact, Provenance, UsageRecord
from m2audit.core.discovery import MavenModule, build_repository_list, plan_modules
from m2audit.core.protection import ProtectionSettings
from m2audit.core.purge import PurgeResult, format_size, purge
from m2audit.core.reconciler import AuditReport, reconcile
from m2audit.core.reports import (
    UNUSED_REPORT_NAME,
    USED_REPORT_NAME,
    read_report,
    separate_report_names,
    write_report,
)
from m2audit.core.run_report import RunReport
from m2audit.core.run_state import (
    days_between,
    is_report_fresh,
    load_run_state,
    record_run,
    should_run,
)
from m2audit.core.usage_collector import ModuleUsage, Notice, UsageCollector, normalize_scopes
from m2audit.core.verification import restore_repositories, verify_modules

logger = logging.getLogger(__name__)

NOTICE_MESSAGES = {
    Notice.TOOL_UNAVAILABLE: "no mvnw or mvn available, parsed pom.xml instead",
    Notice.LISTING_EMPTY: "dependency:list found nothing, fell back to dependency:tree",
    Notice.LISTING_TIMEOUT: "listing timed out, merged the pom.xml parse",
    Notice.LISTING_FAILED: "the build tool failed for at least one listing",
}


@click.command("audit")
@click.option(
    "--without-transitive",
    is_flag=True,
    help="Parse pom.xml files instead of asking Maven (direct dependencies only).",
)
@click.option("--delete-unused", is_flag=True, help="Delete unused artifacts after confirmation.")
@click.option("--force", is_flag=True, help="Run even if the minimum interval has not elapsed.")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without deleting.")
@click.option("--yes", "-y", is_flag=True, help="Skip the deletion confirmation prompt.")
@click.option(
    "--no-cache", is_flag=True, help="Rescan repositories even if a recent report exists."
)
@click.option(
    "--separate-audits",
    is_flag=True,
    help="Write one report pair per base directory (disables deletion).",
)
@click.option("--scopes", default=None, help="Comma-separated dependency scopes to list.")
@click.option(
    "--m2",
    "m2_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Artifact cache to audit (default: ~/.m2/repository).",
)
@click.option(
    "--exclude",
    "excludes",
    multiple=True,
    help="Skip paths containing this text. Can be repeated.",
)
@click.option(
    "--verify-count",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="After deleting, run a verify build in this many random modules.",
)
@click.option(
    "--go-offline",
    is_flag=True,
    help="After deleting, run dependency:go-offline in every repository with a root pom.xml.",
)
@click.argument("repo_paths", nargs=-1, type=click.Path(path_type=Path))
@click.pass_obj
def audit_cmd(
    ctx: AuditContext,
    without_transitive: bool,
    delete_unused: bool,
    force: bool,
    dry_run: bool,
    yes: bool,
    no_cache: bool,
    separate_audits: bool,
    scopes: str | None,
    m2_dir: Path | None,
    excludes: tuple[str, ...],
    verify_count: int,
    go_offline: bool,
    repo_paths: tuple[Path, ...],
) -> None:
    """Compare the local Maven cache against what your repositories use.

    Scans REPO_PATHS (or every git repository under the configured base
    directories), writes used/unused CSV reports, and optionally deletes
    unused artifact directories.
    """
    config = ctx.config
    now = ctx.time.now()

    log_path = attach_run_log(config.log_dir, now)
    try:
        user_output(click.style(f"Log file: {log_path}", dim=True))

        requested = scopes.split(",") if scopes is not None else config.scopes
        valid_scopes, invalid_scopes = normalize_scopes(requested)
        for name in invalid_scopes:
            user_warning("Scopes", f"invalid scope ignored: {name}")
        if not valid_scopes:
            raise click.ClickException(
                "No valid dependency scopes (choose from compile, runtime, test, provided, system)"
            )

        state = load_run_state(
            config.output_dir,
            used_report=config.output_dir / USED_REPORT_NAME,
            report_age_limit_days=config.max_report_age_days,
            min_run_interval_days=config.min_days_between_runs,
        )
        last_run = state.last_run
        if not should_run(now, last_run, state.min_run_interval_days, force):
            assert last_run is not None
            elapsed = days_between(last_run, now)
            user_output(f"Last run: {last_run:%Y-%m-%d %H:%M:%S} ({elapsed} days ago)")
            user_output(f"Minimum interval: {state.min_run_interval_days} days")
            user_output(
                f"Next recommended run: in {state.min_run_interval_days - elapsed} day(s)"
            )
            if not click.confirm("Run the audit anyway?", default=False, err=True):
                user_output("Cancelled. Use --force to skip this check.")
                return

        cache_root = config.cache_root if m2_dir is None else _resolve_path(ctx, m2_dir)
        _run_audit(
            ctx,
            now=now,
            cache_root=cache_root,
            scopes=valid_scopes,
            repo_paths=[_resolve_path(ctx, path) for path in repo_paths],
            exclude_patterns=[*config.exclude_patterns, *excludes],
            without_transitive=without_transitive,
            delete_unused=delete_unused,
            dry_run=dry_run,
            yes=yes,
            no_cache=no_cache,
            separate_audits=separate_audits,
            verify_count=verify_count,
            go_offline=go_offline,
        )
    finally:
        detach_run_log()


def _resolve_path(ctx: AuditContext, path: Path) -> Path:
    """Resolve a command-line path against the invocation directory."""
    if path.is_absolute():
        return path
    return ctx.cwd / path


def _run_audit(
    ctx: AuditContext,
    *,
    now: datetime,
    cache_root: Path,
    scopes: list[str],
    repo_paths: list[Path],
    exclude_patterns: list[str],
    without_transitive: bool,
    delete_unused: bool,
    dry_run: bool,
    yes: bool,
    no_cache: bool,
    separate_audits: bool,
    verify_count: int,
    go_offline: bool,
) -> None:
    config = ctx.config
    used_report = config.output_dir / USED_REPORT_NAME
    unused_report = config.output_dir / UNUSED_REPORT_NAME

    if not cache_root.is_dir():
        user_warning("Cache", f"artifact cache not found at {cache_root}, audit skipped")
        return
    logger.info("Audit of %s with scopes %s", cache_root, ",".join(scopes))

    targets, run_report = build_repository_list(
        cli_paths=repo_paths,
        configured_repos=config.repos,
        base_dirs=config.base_dirs,
        exclude_patterns=exclude_patterns,
    )
    modules = plan_modules(targets, exclude_patterns)
    user_output(f"Found {len(modules)} Maven module(s) in {len(targets)} repositories")

    reuse = (
        not no_cache
        and not separate_audits
        and is_report_fresh(used_report, now, config.max_report_age_days)
    )
    used_by_base: dict[Path, set[UsageRecord]] = {}
    if reuse:
        used = read_report(used_report)
        user_output(f"Reusing recent report {used_report} ({len(used)} dependencies)")
    else:
        before = snapshot(cache_root)
        used_by_base, usage_report = _collect_usage(ctx, modules, scopes, without_transitive)
        run_report = run_report.merge(usage_report)
        downloads = detect_downloads(before, snapshot(cache_root), cache_root)
        if downloads:
            user_output(f"Counted {len(downloads)} artifact(s) downloaded during the scan as used")
        for records in used_by_base.values():
            records.update(downloads)
        used = {record.coordinate for records in used_by_base.values() for record in records}
        used |= {record.coordinate for record in downloads}

    user_output(f"Scanning artifact cache {cache_root}...")
    installed = scan(cache_root)
    settings = ProtectionSettings(
        keep_latest_version=config.keep_latest_version,
        exclude_plugins=config.exclude_plugins,
    )

    if separate_audits:
        _write_separate_audits(
            ctx, installed=installed, used_by_base=used_by_base, settings=settings
        )
        if delete_unused:
            user_warning("Separate audits", "deletion is disabled in this mode")
        _show_run_report(run_report)
        return

    audit = reconcile(installed, used, settings)
    write_report(used_report, audit.used_coordinates)
    write_report(unused_report, audit.unused_coordinates)
    _show_audit_summary(audit, installed_count=len(installed))
    user_output(f"Reports: {used_report}, {unused_report}")

    if delete_unused or dry_run:
        run_report = run_report.merge(
            _delete_unused(
                ctx,
                audit,
                cache_root=cache_root,
                now=now,
                dry_run=dry_run,
                yes=yes,
                modules=modules,
                repo_roots=[target.path for target in targets],
                verify_count=verify_count,
                go_offline=go_offline,
            )
        )
    _show_run_report(run_report)


def _collect_usage(
    ctx: AuditContext,
    modules: list[MavenModule],
    scopes: list[str],
    without_transitive: bool,
) -> tuple[dict[Path, set[UsageRecord]], RunReport]:
    collector = UsageCollector(
        maven=ctx.maven,
        use_build_tool=not without_transitive,
        timeout_seconds=ctx.config.listing_timeout_seconds,
        on_progress=lambda elapsed: user_output(f"   Still working ({elapsed:.0f}s)..."),
    )
    used_by_base: dict[Path, set[UsageRecord]] = {}
    report = RunReport()
    for index, module in enumerate(modules, start=1):
        user_output(f"[{index}/{len(modules)}] {module.module_dir}")
        usage = collector.collect(module, scopes)
        for notice in usage.notices:
            user_warning(str(module.module_dir), NOTICE_MESSAGES[notice])
        records = used_by_base.setdefault(module.base_dir, set())
        records.update(
            UsageRecord(coordinate=c, provenance=Provenance.DECLARED) for c in usage.coordinates
        )
        report = _record_module(report, module, usage)
        user_output(f"   {len(usage.coordinates)} dependencies ({usage.method.value})")
    return used_by_base, report


def _record_module(report: RunReport, module: MavenModule, usage: ModuleUsage) -> RunReport:
    path = str(module.module_dir)
    if usage.coordinates:
        return report.with_ok(path, f"{len(usage.coordinates)} via {usage.method.value}")
    if Notice.LISTING_FAILED in usage.notices:
        return report.with_failed(path, "listing failed")
    return report.with_skipped(path, "no dependencies found")


def _write_separate_audits(
    ctx: AuditContext,
    *,
    installed: set[InstalledArtifact],
    used_by_base: dict[Path, set[UsageRecord]],
    settings: ProtectionSettings,
) -> None:
    if not used_by_base:
        user_output("No base directories produced dependencies")
        return
    for base_dir in sorted(used_by_base):
        used: set[ArtifactCoordinate] = {record.coordinate for record in used_by_base[base_dir]}
        audit = reconcile(installed, used, settings)
        used_name, unused_name = separate_report_names(base_dir)
        write_report(ctx.config.output_dir / used_name, audit.used_coordinates)
        write_report(ctx.config.output_dir / unused_name, audit.unused_coordinates)
        user_output(
            f"{base_dir}: {len(audit.used)} used, {len(audit.unused)} unused "
            f"({used_name}, {unused_name})"
        )


def _delete_unused(
    ctx: AuditContext,
    audit: AuditReport,
    *,
    cache_root: Path,
    now: datetime,
    dry_run: bool,
    yes: bool,
    modules: list[MavenModule],
    repo_roots: list[Path],
    verify_count: int,
    go_offline: bool,
) -> RunReport:
    if not audit.unused:
        user_output(click.style("✓ Nothing to delete", fg="green"))
        return RunReport()

    if dry_run:
        result = purge(audit.unused, cache_root, ctx.config.max_deletion_attempts, dry_run=True)
        user_output(
            f"[DRY RUN] Would delete {result.deleted} artifact(s), "
            f"freeing {format_size(result.freed_bytes)}"
        )
        return RunReport()

    user_output(
        f"About to delete {len(audit.unused)} artifact(s) "
        f"(~{format_size(audit.unused_bytes)}) from {cache_root}"
    )
    user_output("Deleted artifacts are downloaded again by future builds that need them.")
    if not yes and not click.confirm("Proceed with deletion?", default=False, err=True):
        user_output("Deletion cancelled.")
        return RunReport()

    result = purge(audit.unused, cache_root, ctx.config.max_deletion_attempts)
    _show_purge_result(result)
    if result.failed == 0:
        record_run(ctx.config.output_dir, now)

    report = RunReport()
    if verify_count > 0:
        user_output(f"Verifying {verify_count} random module(s)...")
        report = verify_modules(
            ctx.maven,
            [module.module_dir for module in modules],
            verify_count,
            ctx.rng,
            ctx.config.verify_timeout_seconds,
        )
    if go_offline:
        user_output("Downloading dependencies again (dependency:go-offline)...")
        restored = restore_repositories(ctx.maven, repo_roots, ctx.config.verify_timeout_seconds)
        if restored.total == 0:
            user_output("No repositories with a root pom.xml found")
        report = report.merge(restored)
    return report


def _show_audit_summary(audit: AuditReport, *, installed_count: int) -> None:
    by_reason: dict[str, int] = {}
    for item in audit.protected:
        by_reason[item.reason] = by_reason.get(item.reason, 0) + 1

    table = new_table("Category", "Artifacts", "Size")
    table.add_row("Installed", str(installed_count), "")
    table.add_row("Used", str(len(audit.used)), "")
    table.add_row("Unused", str(len(audit.unused)), format_size(audit.unused_bytes))
    for reason in sorted(by_reason):
        table.add_row(f"Protected ({reason})", str(by_reason[reason]), "")
    print_table(table)


def _show_purge_result(result: PurgeResult) -> None:
    for pass_result in result.passes:
        user_output(
            f"Pass {pass_result.attempt}: deleted {pass_result.deleted}, "
            f"{pass_result.failed} remaining"
        )
    user_output(
        click.style("✓ ", fg="green")
        + f"Deleted {result.deleted} artifact(s), freed {format_size(result.freed_bytes)}"
    )
    if result.missing:
        user_output(f"{result.missing} artifact(s) were already gone")
    if result.failed:
        user_warning("Purge", f"{result.failed} artifact(s) could not be deleted")


def _show_run_report(report: RunReport) -> None:
    user_output(
        f"Summary: ok={len(report.ok)} failed={len(report.failed)} skipped={len(report.skipped)}"
    )
    for entry in report.failed:
        user_output(click.style("  ✗ ", fg="red") + str(entry))
    for entry in report.skipped:
        user_output(click.style("  - ", dim=True) + str(entry))
