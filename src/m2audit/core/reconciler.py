"""Split the installed set into used, unused and protected artifacts."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from m2audit.core.coordinates import ArtifactCoordinate, InstalledArtifact
from m2audit.core.protection import ProtectionPolicy, ProtectionSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtectedArtifact:
    installed: InstalledArtifact
    reason: str


@dataclass(frozen=True)
class AuditReport:
    """Partition of the installed set.

    Every installed artifact lands in exactly one of the three tuples, each
    sorted by group, artifact, then version order.
    """

    used: tuple[InstalledArtifact, ...]
    unused: tuple[InstalledArtifact, ...]
    protected: tuple[ProtectedArtifact, ...]

    @property
    def used_coordinates(self) -> list[ArtifactCoordinate]:
        return [item.coordinate for item in self.used]

    @property
    def unused_coordinates(self) -> list[ArtifactCoordinate]:
        return [item.coordinate for item in self.unused]

    @property
    def unused_bytes(self) -> int:
        return sum(item.size_bytes for item in self.unused)


def _order(item: InstalledArtifact):
    return item.coordinate.sort_key()


def reconcile(
    installed: Iterable[InstalledArtifact],
    used: Iterable[ArtifactCoordinate],
    settings: ProtectionSettings,
) -> AuditReport:
    """Compare the installed set against the use-set and apply protection."""
    by_coordinate: dict[ArtifactCoordinate, InstalledArtifact] = {}
    for item in installed:
        by_coordinate.setdefault(item.coordinate, item)
    installed_items = sorted(by_coordinate.values(), key=_order)
    used_set = frozenset(used)

    policy = ProtectionPolicy(installed=installed_items, used=used_set, settings=settings)

    in_use: list[InstalledArtifact] = []
    unused: list[InstalledArtifact] = []
    protected: list[ProtectedArtifact] = []
    for item in installed_items:
        if item.coordinate in used_set:
            in_use.append(item)
            continue
        reason = policy.protection_reason(item.coordinate)
        if reason is None:
            unused.append(item)
        else:
            protected.append(ProtectedArtifact(installed=item, reason=reason))

    logger.info(
        "Reconciled %d installed artifacts: %d used, %d unused, %d protected",
        len(installed_items),
        len(in_use),
        len(unused),
        len(protected),
    )
    return AuditReport(used=tuple(in_use), unused=tuple(unused), protected=tuple(protected))
