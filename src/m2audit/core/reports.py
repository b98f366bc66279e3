"""CSV reports of used and unused artifacts."""

import csv
import logging
from collections.abc import Iterable
from pathlib import Path

from m2audit.core.coordinates import ArtifactCoordinate, parse_report_row, sorted_coordinates

logger = logging.getLogger(__name__)

HEADER = ("Dependency", "Version")

USED_REPORT_NAME = "maven_deps_report_used.csv"
UNUSED_REPORT_NAME = "maven_deps_report_unused.csv"


def separate_report_names(base_dir: Path) -> tuple[str, str]:
    """Report filenames (used, unused) for one base directory in separate-audit mode."""
    name = base_dir.name or "root"
    return f"used_deps_{name}.csv", f"unused_deps_{name}.csv"


def write_report(path: Path, coordinates: Iterable[ArtifactCoordinate]) -> int:
    """Write a ``Dependency,Version`` report, sorted and deduplicated.

    Returns:
        Number of rows written
    """
    rows = sorted_coordinates(coordinates)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(HEADER)
        for coordinate in rows:
            writer.writerow((coordinate.key, coordinate.version))
    logger.info("Wrote %d rows to %s", len(rows), path)
    return len(rows)


def read_report(path: Path) -> set[ArtifactCoordinate]:
    """Load a report back into coordinates, skipping malformed rows."""
    coordinates: set[ArtifactCoordinate] = set()
    with path.open(encoding="utf-8", newline="") as f:
        for row in csv.reader(f):
            if len(row) != 2 or tuple(row) == HEADER:
                continue
            coordinate = parse_report_row(row[0], row[1])
            if coordinate is None:
                logger.debug("Skipping malformed report row %r in %s", row, path)
                continue
            coordinates.add(coordinate)
    return coordinates
