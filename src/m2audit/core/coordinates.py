"""Artifact coordinates and the cache path codec.

The local Maven repository lays artifacts out as
``<group as path>/<artifact>/<version>/<artifact>-<version>[-classifier].<ext>``.
This module maps between those paths and (group, artifact, version) triples
and defines the version ordering used to decide which installed version of an
artifact is the latest.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from m2audit.core.errors import NotAnArtifact

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

# Files the build tool writes next to artifacts to track where they came from
METADATA_SIDECARS = ("_remote.repositories", "resolver-status.properties")
METADATA_MARKER = "maven-metadata"

_VERSION_SPLIT = re.compile(r"[.\-_]")
_RANGE_CHARS = ("[", "]", "(", ")")


def is_valid_token(value: str) -> bool:
    """Check that a coordinate field only uses the characters Maven allows."""
    return bool(TOKEN_PATTERN.match(value))


def is_mutable_version(version: str) -> bool:
    """Check whether a version is a snapshot or an unresolved range.

    Such versions can change under the same directory name, so they are never
    offered as deletion candidates.
    """
    if "SNAPSHOT" in version:
        return True
    return any(ch in version for ch in _RANGE_CHARS)


def version_key(version: str) -> tuple[tuple[tuple[int, int, str], ...], str]:
    """Sort key implementing numeric-segment version ordering.

    Versions are split on ``.``, ``-`` and ``_``. Numeric segments compare as
    integers and rank above alphabetic ones, alphabetic segments compare
    case-insensitively, and a shorter prefix sorts first. The raw string is the
    final tie-breaker so the ordering is total.

    This is not semantic versioning: ``1.0-beta`` sorts above ``1.0``.
    """
    segments: list[tuple[int, int, str]] = []
    for token in _VERSION_SPLIT.split(version):
        if token.isdigit():
            segments.append((1, int(token), ""))
        else:
            segments.append((0, 0, token.lower()))
    return (tuple(segments), version)


@dataclass(frozen=True)
class ArtifactCoordinate:
    """A group:artifact:version triple identifying a dependency or plugin."""

    group: str
    artifact: str
    version: str

    @property
    def key(self) -> str:
        """The ``group:artifact`` part used as the report's Dependency column."""
        return f"{self.group}:{self.artifact}"

    @property
    def ga(self) -> tuple[str, str]:
        return (self.group, self.artifact)

    def sort_key(self) -> tuple[str, str, tuple[tuple[tuple[int, int, str], ...], str]]:
        return (self.group, self.artifact, version_key(self.version))

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"


@dataclass(frozen=True)
class InstalledArtifact:
    """An artifact present in the local cache.

    Attributes:
        coordinate: The decoded coordinate
        path: The version directory inside the cache
        size_bytes: Sum of the file sizes inside the version directory
    """

    coordinate: ArtifactCoordinate
    path: Path
    size_bytes: int


class Provenance(Enum):
    """Why a coordinate is considered used."""

    DECLARED = "declared"
    DOWNLOADED = "downloaded"


@dataclass(frozen=True)
class UsageRecord:
    coordinate: ArtifactCoordinate
    provenance: Provenance


def make_coordinate(group: str, artifact: str, version: str) -> ArtifactCoordinate | None:
    """Build a coordinate after trimming, or None when a field is malformed."""
    group = group.strip()
    artifact = artifact.strip()
    version = version.strip()
    if not (is_valid_token(group) and is_valid_token(artifact) and is_valid_token(version)):
        return None
    return ArtifactCoordinate(group=group, artifact=artifact, version=version)


def parse_coordinate(text: str) -> ArtifactCoordinate | None:
    """Parse ``group:artifact:version`` text, returning None if malformed."""
    parts = text.strip().split(":")
    if len(parts) != 3:
        return None
    return make_coordinate(parts[0], parts[1], parts[2])


def parse_report_row(dependency: str, version: str) -> ArtifactCoordinate | None:
    """Parse a ``group:artifact`` / ``version`` pair from a CSV report row."""
    group, sep, artifact = dependency.strip().partition(":")
    if not sep:
        return None
    return make_coordinate(group, artifact, version)


def encode(coordinate: ArtifactCoordinate, cache_root: Path) -> Path:
    """Return the version directory of a coordinate inside the cache."""
    return cache_root.joinpath(
        *coordinate.group.split("."), coordinate.artifact, coordinate.version
    )


def decode(path: Path, cache_root: Path, *, for_deletion: bool = False) -> ArtifactCoordinate:
    """Decode an artifact file path inside the cache into its coordinate.

    Args:
        path: Path of a file inside a version directory
        cache_root: Root of the local artifact cache
        for_deletion: Also reject snapshot and range versions, which must never
            become deletion candidates

    Raises:
        NotAnArtifact: If the path does not describe an artifact file
    """
    try:
        relative = path.relative_to(cache_root)
    except ValueError:
        raise NotAnArtifact(str(path), "outside cache root") from None

    segments = relative.parts
    if len(segments) < 4:
        raise NotAnArtifact(str(path), "fewer than 4 path segments")

    filename = segments[-1]
    version = segments[-2]
    artifact = segments[-3]
    group = ".".join(segments[:-3])

    if filename in METADATA_SIDECARS or filename.startswith(METADATA_MARKER):
        raise NotAnArtifact(str(path), "repository metadata file")
    if METADATA_MARKER in version:
        raise NotAnArtifact(str(path), "metadata directory")
    if for_deletion and is_mutable_version(version):
        raise NotAnArtifact(str(path), "snapshot or range version")

    coordinate = make_coordinate(group, artifact, version)
    if coordinate is None:
        raise NotAnArtifact(str(path), "malformed coordinate")
    return coordinate


def sorted_coordinates(coordinates: Iterable[ArtifactCoordinate]) -> list[ArtifactCoordinate]:
    """Deduplicate and sort coordinates by group, artifact, then version order."""
    return sorted(set(coordinates), key=ArtifactCoordinate.sort_key)
