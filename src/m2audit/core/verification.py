"""Post-purge checks: sample verify builds and dependency re-download."""

import logging
import random
from pathlib import Path

from m2audit.core.run_report import RunReport
from m2audit.gateway.maven.abc import MavenOutput, MavenRunner, MavenStatus

logger = logging.getLogger(__name__)


def verify_modules(
    maven: MavenRunner,
    modules: list[Path],
    count: int,
    rng: random.Random,
    timeout: float,
) -> RunReport:
    """Run a forced-update verify build in ``count`` randomly chosen modules.

    Modules without a descriptor or without an available executable are not
    eligible. Purged artifacts are downloaded again by these builds.
    """
    report = RunReport()
    if count <= 0:
        return report

    eligible: list[tuple[Path, str]] = []
    for module_dir in sorted(set(modules)):
        if not (module_dir / "pom.xml").is_file():
            continue
        executable = maven.resolve_executable(module_dir)
        if executable is None:
            report = report.with_skipped(str(module_dir), "no mvnw or mvn")
            continue
        eligible.append((module_dir, executable))

    if not eligible:
        logger.info("No modules eligible for verification")
        return report

    chosen = rng.sample(eligible, min(count, len(eligible)))
    for module_dir, executable in chosen:
        logger.info("Verifying %s", module_dir)
        output = maven.verify(executable=executable, module_dir=module_dir, timeout_seconds=timeout)
        report = _record_outcome(report, module_dir, "verify", output)
    return report


def restore_repositories(maven: MavenRunner, repo_roots: list[Path], timeout: float) -> RunReport:
    """Run ``dependency:go-offline`` in every repository with a root pom.xml.

    This downloads again whatever the surviving projects still need, so a
    later offline build does not trip over a purged artifact.
    """
    report = RunReport()
    for repo_root in sorted(set(repo_roots)):
        if not (repo_root / "pom.xml").is_file():
            continue
        executable = maven.resolve_executable(repo_root)
        if executable is None:
            report = report.with_skipped(str(repo_root), "no mvnw or mvn")
            continue
        logger.info("Downloading dependencies for %s", repo_root)
        output = maven.go_offline(
            executable=executable, repo_dir=repo_root, timeout_seconds=timeout
        )
        report = _record_outcome(report, repo_root, "go-offline", output)
    return report


def _record_outcome(report: RunReport, path: Path, goal: str, output: MavenOutput) -> RunReport:
    if output.status == MavenStatus.OK:
        return report.with_ok(str(path), goal)
    if output.status == MavenStatus.TIMEOUT:
        return report.with_failed(str(path), f"{goal} timed out")
    return report.with_failed(str(path), f"{goal} failed (exit code {output.exit_code})")
