"""Rules that keep an unused artifact out of the purge.

Rules are checked in order and the first that applies decides:

1. Core build-tool groups are protected only when the artifact is the latest
   installed version of its (group, artifact) or is in use. Older unused core
   versions are purgeable and no later rule is consulted for them.
2. Plugins (artifact ids ending in ``-plugin``), when plugin protection is on.
3. The latest installed version of each (group, artifact), when latest-version
   protection is on.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from m2audit.core.coordinates import ArtifactCoordinate, InstalledArtifact, version_key

CORE_GROUP_PATTERNS = (
    "org.apache.maven",
    "org.apache.maven.plugins",
    "org.codehaus.plexus",
    "org.sonatype.plexus",
    "org.eclipse.aether",
    "org.codehaus.mojo",
    "org.sonatype.sisu",
    "org.eclipse.sisu",
)

REASON_CORE = "core"
REASON_PLUGIN = "plugin"
REASON_LATEST = "latest-version"


@dataclass(frozen=True)
class ProtectionSettings:
    keep_latest_version: bool
    exclude_plugins: bool
    core_group_patterns: tuple[str, ...] = CORE_GROUP_PATTERNS


def is_core_group(group: str, patterns: Iterable[str] = CORE_GROUP_PATTERNS) -> bool:
    """Check whether a group equals a core pattern or is nested below one."""
    return any(group == pattern or group.startswith(pattern + ".") for pattern in patterns)


def latest_versions(coordinates: Iterable[ArtifactCoordinate]) -> dict[tuple[str, str], str]:
    """Highest version per (group, artifact) under version ordering."""
    latest: dict[tuple[str, str], str] = {}
    for coordinate in coordinates:
        current = latest.get(coordinate.ga)
        if current is None or version_key(coordinate.version) > version_key(current):
            latest[coordinate.ga] = coordinate.version
    return latest


class ProtectionPolicy:
    """Protection decisions against one installed set and one use-set."""

    def __init__(
        self,
        *,
        installed: Iterable[InstalledArtifact],
        used: Iterable[ArtifactCoordinate],
        settings: ProtectionSettings,
    ) -> None:
        self._latest = latest_versions(item.coordinate for item in installed)
        self._used = frozenset(used)
        self._settings = settings

    def is_latest(self, candidate: ArtifactCoordinate) -> bool:
        return self._latest.get(candidate.ga) == candidate.version

    def protection_reason(self, candidate: ArtifactCoordinate) -> str | None:
        """Name of the rule protecting ``candidate``, or None if purgeable."""
        if is_core_group(candidate.group, self._settings.core_group_patterns):
            if self.is_latest(candidate) or candidate in self._used:
                return REASON_CORE
            return None

        if self._settings.exclude_plugins and candidate.artifact.endswith("-plugin"):
            return REASON_PLUGIN

        if self._settings.keep_latest_version and self.is_latest(candidate):
            return REASON_LATEST

        return None


def is_protected(
    candidate: ArtifactCoordinate,
    installed: Iterable[InstalledArtifact],
    used: Iterable[ArtifactCoordinate],
    settings: ProtectionSettings,
) -> bool:
    """Single-candidate form of ``ProtectionPolicy.protection_reason``."""
    policy = ProtectionPolicy(installed=installed, used=used, settings=settings)
    return policy.protection_reason(candidate) is not None
