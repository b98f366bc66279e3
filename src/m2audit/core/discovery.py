"""Locating repositories, Maven modules and the reactor a module builds in."""

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from m2audit.core.pom_parser import declared_modules, declares_parent
from m2audit.core.run_report import RunReport

logger = logging.getLogger(__name__)

POM_FILENAME = "pom.xml"

# Build output and tooling directories never hold source descriptors
EXCLUDED_DIRS = frozenset({"target", ".git", "build", ".idea", ".vscode", "node_modules"})


@dataclass(frozen=True)
class RepositoryTarget:
    """A git repository selected for scanning.

    Attributes:
        path: Repository root (the directory holding ``.git``)
        base_dir: Directory the repository was grouped under; separate audits
            write one report pair per base directory
    """

    path: Path
    base_dir: Path


@dataclass(frozen=True)
class MavenModule:
    pom_path: Path
    repo_root: Path
    base_dir: Path

    @property
    def module_dir(self) -> Path:
        return self.pom_path.parent


@dataclass(frozen=True)
class ReactorInvocation:
    """Where to run the build tool for a module.

    ``project_list`` is the module path relative to ``exec_dir`` when the
    module is built as part of an aggregator, else None.
    """

    exec_dir: Path
    project_list: str | None


def is_git_repository(path: Path) -> bool:
    return (path / ".git").exists()


def is_excluded(path: Path, exclude_patterns: Iterable[str]) -> bool:
    """Check whether a path contains any of the exclusion substrings."""
    text = str(path)
    return any(pattern and pattern in text for pattern in exclude_patterns)


def find_git_repositories(base_dir: Path) -> list[Path]:
    """Find git repositories below a base directory.

    The walk does not descend into a repository once found, so nested
    checkouts are attributed to their outermost repository.
    """
    found: list[Path] = []
    for dirpath, dirnames, _filenames in os.walk(base_dir, onerror=_log_walk_error):
        if ".git" in dirnames:
            found.append(Path(dirpath))
            dirnames.clear()
            continue
        dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)
    return sorted(found)


def build_repository_list(
    *,
    cli_paths: list[Path],
    configured_repos: list[Path],
    base_dirs: list[Path],
    exclude_patterns: list[str],
) -> tuple[list[RepositoryTarget], RunReport]:
    """Assemble the repositories to scan.

    Explicit paths and configured repositories must each be a git repository.
    Base directories are only walked when no explicit paths were given.

    Returns:
        The deduplicated targets and a report of skipped paths
    """
    report = RunReport()
    targets: list[RepositoryTarget] = []
    seen: set[Path] = set()

    def add(path: Path, base_dir: Path) -> None:
        nonlocal report
        resolved = path.resolve()
        if resolved in seen:
            return
        if is_excluded(resolved, exclude_patterns):
            report = report.with_skipped(str(resolved), "excluded")
            return
        seen.add(resolved)
        targets.append(RepositoryTarget(path=resolved, base_dir=base_dir.resolve()))

    for path in [*cli_paths, *configured_repos]:
        if not path.is_dir():
            logger.warning("Repository path does not exist: %s", path)
            report = report.with_skipped(str(path), "does not exist")
            continue
        if not is_git_repository(path):
            logger.warning("Not a git repository: %s", path)
            report = report.with_skipped(str(path), "not a git repository")
            continue
        add(path, path.resolve().parent)

    if not cli_paths:
        for base_dir in base_dirs:
            if not base_dir.is_dir():
                logger.warning("Base directory does not exist: %s", base_dir)
                report = report.with_skipped(str(base_dir), "base directory does not exist")
                continue
            for repo in find_git_repositories(base_dir):
                add(repo, base_dir)

    return targets, report


def find_pom_files(repo_root: Path, exclude_patterns: Iterable[str] = ()) -> list[Path]:
    """Find every pom.xml inside a repository, skipping build output directories."""
    patterns = list(exclude_patterns)
    poms: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(repo_root, onerror=_log_walk_error):
        dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)
        if POM_FILENAME in filenames:
            pom = Path(dirpath) / POM_FILENAME
            if is_excluded(pom, patterns):
                logger.debug("Excluded descriptor %s", pom)
                continue
            poms.append(pom)
    return sorted(poms)


def plan_modules(
    targets: list[RepositoryTarget], exclude_patterns: Iterable[str] = ()
) -> list[MavenModule]:
    """Expand repositories into modules, largest repositories first.

    Repositories with the most descriptors are processed first; ties keep the
    repository order.
    """
    patterns = list(exclude_patterns)
    per_repo = [(target, find_pom_files(target.path, patterns)) for target in targets]
    per_repo.sort(key=lambda item: len(item[1]), reverse=True)

    modules: list[MavenModule] = []
    for target, poms in per_repo:
        if not poms:
            logger.info("No Maven descriptors in %s", target.path)
            continue
        for pom in poms:
            modules.append(
                MavenModule(pom_path=pom, repo_root=target.path, base_dir=target.base_dir)
            )
    return modules


def resolve_reactor(module: MavenModule) -> ReactorInvocation:
    """Find the aggregator a module should be built from.

    A module that declares a ``<parent>`` is built from the nearest ancestor
    pom inside the same repository whose packaging is ``pom`` and which lists
    the module in its ``<modules>``. Otherwise the module is built on its own.
    """
    module_dir = module.module_dir
    standalone = ReactorInvocation(exec_dir=module_dir, project_list=None)
    if not declares_parent(module.pom_path):
        return standalone

    repo_root = module.repo_root.resolve()
    current = module_dir.resolve()
    while current != repo_root and repo_root in current.parents:
        candidate_dir = current.parent
        candidate_pom = candidate_dir / POM_FILENAME
        if candidate_pom.is_file():
            relative = module_dir.resolve().relative_to(candidate_dir).as_posix()
            if relative in declared_modules(candidate_pom):
                return ReactorInvocation(exec_dir=candidate_dir, project_list=relative)
        current = candidate_dir
    return standalone


def _log_walk_error(error: OSError) -> None:
    logger.warning("Cannot read %s: %s", error.filename, error.strerror)
