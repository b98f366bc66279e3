"""Enumerate what the local artifact cache holds."""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from m2audit.core.coordinates import (
    InstalledArtifact,
    Provenance,
    UsageRecord,
    decode,
)
from m2audit.core.errors import NotAnArtifact

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSIONS = (".jar", ".zip", ".bundle")

# Attached variants that never stand for the main artifact
EXCLUDED_CLASSIFIERS = (
    "-sources",
    "-javadoc",
    "-tests",
    "-test",
    "-native",
    "-linux",
    "-mac",
    "-win",
)


def is_primary_archive(filename: str) -> bool:
    """Check for a main artifact archive (not a sources/javadoc/native variant)."""
    stem, ext = os.path.splitext(filename)
    if ext not in ARCHIVE_EXTENSIONS:
        return False
    return not stem.endswith(EXCLUDED_CLASSIFIERS)


def _archive_paths(cache_root: Path) -> Iterator[tuple[Path, list[str], int]]:
    """Yield (version directory, archive filenames, directory size) per directory."""
    for dirpath, dirnames, filenames in os.walk(cache_root, onerror=_log_walk_error):
        dirnames.sort()
        archives = [name for name in filenames if is_primary_archive(name)]
        if not archives:
            continue
        directory = Path(dirpath)
        yield directory, sorted(archives), _files_size(directory, filenames)


def _files_size(directory: Path, filenames: list[str]) -> int:
    total = 0
    for name in filenames:
        try:
            total += (directory / name).stat().st_size
        except OSError as e:
            logger.debug("Cannot stat %s: %s", directory / name, e)
    return total


def scan(cache_root: Path) -> set[InstalledArtifact]:
    """Build the installed set from the archives under the cache root.

    An archive counts only when its filename starts with
    ``<artifact>-<version>``; snapshot and range versions are left out since
    they are never deletion candidates.
    """
    installed: dict[str, InstalledArtifact] = {}
    for directory, archives, size in _archive_paths(cache_root):
        for name in archives:
            path = directory / name
            try:
                coordinate = decode(path, cache_root, for_deletion=True)
            except NotAnArtifact as e:
                logger.debug("Skipping %s: %s", path, e.reason)
                continue
            if not name.startswith(f"{coordinate.artifact}-{coordinate.version}"):
                logger.debug("Skipping %s: filename does not match its directory", path)
                continue
            installed.setdefault(
                str(coordinate),
                InstalledArtifact(coordinate=coordinate, path=directory, size_bytes=size),
            )
    logger.info("Found %d installed artifacts in %s", len(installed), cache_root)
    return set(installed.values())


def snapshot(cache_root: Path) -> dict[Path, float]:
    """Map every primary archive under the cache root to its modification time."""
    mtimes: dict[Path, float] = {}
    if not cache_root.is_dir():
        return mtimes
    for directory, archives, _size in _archive_paths(cache_root):
        for name in archives:
            path = directory / name
            try:
                mtimes[path] = path.stat().st_mtime
            except OSError as e:
                logger.debug("Cannot stat %s: %s", path, e)
    return mtimes


def detect_downloads(
    before: dict[Path, float], after: dict[Path, float], cache_root: Path
) -> set[UsageRecord]:
    """Archives that appeared or changed between two snapshots.

    This is a best-effort heuristic: a concurrent build touching the cache
    during the scan is indistinguishable from the scan's own downloads.
    """
    records: set[UsageRecord] = set()
    for path, mtime in after.items():
        previous = before.get(path)
        if previous is not None and mtime <= previous:
            continue
        try:
            coordinate = decode(path, cache_root)
        except NotAnArtifact as e:
            logger.debug("Ignoring changed file %s: %s", path, e.reason)
            continue
        records.add(UsageRecord(coordinate=coordinate, provenance=Provenance.DOWNLOADED))
    if records:
        logger.info("Detected %d artifacts downloaded during the scan", len(records))
    return records


def _log_walk_error(error: OSError) -> None:
    logger.warning("Cannot read %s: %s", error.filename, error.strerror)
