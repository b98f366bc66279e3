"""Guarded deletion of unused artifact directories.

Deletion runs in passes. Each pass removes what is still present, then the
remaining candidates are checked again; passes repeat until nothing remains or
the attempt limit is reached. Nothing at or above the cache root is ever
removed.
"""

import logging
import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from m2audit.core.coordinates import InstalledArtifact, encode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassResult:
    attempt: int
    deleted: int
    failed: int
    freed_bytes: int


@dataclass(frozen=True)
class PurgeResult:
    """Totals across all passes.

    Attributes:
        deleted: Directories removed (or that would be removed in a dry run)
        failed: Candidates still present after the last pass
        missing: Candidates already absent before the first pass
        freed_bytes: Bytes removed (or that would be removed in a dry run)
        passes: Per-pass outcomes in order
    """

    deleted: int
    failed: int
    missing: int
    freed_bytes: int
    passes: tuple[PassResult, ...]


def format_size(size_bytes: int) -> str:
    """Render a byte count as KB, MB or GB."""
    if size_bytes >= 1024**3:
        return f"{size_bytes / 1024**3:.2f} GB"
    if size_bytes >= 1024**2:
        return f"{size_bytes / 1024**2:.2f} MB"
    return f"{size_bytes / 1024:.2f} KB"


def directory_size(path: Path) -> int:
    """Sum of the file sizes below ``path``."""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                total += (Path(dirpath) / name).lstat().st_size
            except OSError as e:
                logger.debug("Cannot stat %s: %s", Path(dirpath) / name, e)
    return total


def is_safe_target(target: Path, cache_root: Path) -> bool:
    """Check that ``target`` lies strictly inside ``cache_root``."""
    root = cache_root.resolve()
    resolved = target.resolve()
    return resolved != root and root in resolved.parents


def remove_empty_parents(directory: Path, cache_root: Path) -> None:
    """Remove now-empty ancestors of a deleted directory, stopping below the root."""
    root = cache_root.resolve()
    current = directory.resolve().parent
    while current != root and root in current.parents:
        try:
            if any(current.iterdir()):
                return
            current.rmdir()
        except OSError as e:
            logger.debug("Cannot prune %s: %s", current, e)
            return
        current = current.parent


def _delete(target: Path, cache_root: Path) -> bool:
    try:
        shutil.rmtree(target)
    except OSError as e:
        logger.warning("Failed to delete %s: %s", target, e)
        return False
    remove_empty_parents(target, cache_root)
    return True


def purge(
    candidates: Iterable[InstalledArtifact],
    cache_root: Path,
    max_attempts: int,
    dry_run: bool = False,
) -> PurgeResult:
    """Delete candidate version directories.

    Args:
        candidates: Unused artifacts to remove
        cache_root: Root of the local artifact cache
        max_attempts: Maximum number of deletion passes (at least one runs)
        dry_run: Measure and report without deleting

    Returns:
        PurgeResult with deleted, failed and missing counts
    """
    targets: list[tuple[InstalledArtifact, Path]] = []
    missing = 0
    for candidate in candidates:
        target = encode(candidate.coordinate, cache_root)
        if not is_safe_target(target, cache_root):
            logger.warning("Refusing to delete %s: not inside %s", target, cache_root)
            continue
        if not target.is_dir():
            logger.info("Already absent: %s", candidate.coordinate)
            missing += 1
            continue
        targets.append((candidate, target))

    if dry_run:
        freed = sum(directory_size(target) for _candidate, target in targets)
        for candidate, _target in targets:
            logger.info("Would delete %s", candidate.coordinate)
        dry_pass = PassResult(attempt=1, deleted=len(targets), failed=0, freed_bytes=freed)
        return PurgeResult(
            deleted=len(targets), failed=0, missing=missing, freed_bytes=freed, passes=(dry_pass,)
        )

    passes: list[PassResult] = []
    deleted = 0
    freed = 0
    remaining = targets
    for attempt in range(1, max(max_attempts, 1) + 1):
        pass_deleted = 0
        pass_freed = 0
        for candidate, target in remaining:
            if not target.exists():
                continue
            size = directory_size(target)
            if _delete(target, cache_root):
                logger.info("Deleted %s (%s)", candidate.coordinate, format_size(size))
                pass_deleted += 1
                pass_freed += size

        remaining = [(candidate, target) for candidate, target in remaining if target.exists()]
        passes.append(
            PassResult(
                attempt=attempt,
                deleted=pass_deleted,
                failed=len(remaining),
                freed_bytes=pass_freed,
            )
        )
        deleted += pass_deleted
        freed += pass_freed
        if not remaining:
            break
        logger.info("Pass %d left %d directories, retrying", attempt, len(remaining))

    for candidate, target in remaining:
        logger.warning(
            "Could not delete %s after %d passes: %s", candidate.coordinate, len(passes), target
        )

    return PurgeResult(
        deleted=deleted,
        failed=len(remaining),
        missing=missing,
        freed_bytes=freed,
        passes=tuple(passes),
    )
