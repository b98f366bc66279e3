"""Tests for reconciling the installed set against the use-set."""

from pathlib import Path

from m2audit.core.protection import ProtectionSettings
from m2audit.core.reconciler import reconcile
from m2audit.core.reports import read_report, write_report
from tests.test_utils.maven_builders import gav, installed

ROOT = Path("/cache")
SETTINGS = ProtectionSettings(keep_latest_version=True, exclude_plugins=True)


def _strs(coordinates) -> list[str]:
    return [str(c) for c in coordinates]


def test_old_version_unused_latest_protected() -> None:
    """Two installed versions, nothing used: only the older one is purgeable."""
    items = {installed(ROOT, "org.foo:bar:1.0"), installed(ROOT, "org.foo:bar:2.0")}

    report = reconcile(items, set(), SETTINGS)

    assert _strs(report.unused_coordinates) == ["org.foo:bar:1.0"]
    assert [(str(p.installed.coordinate), p.reason) for p in report.protected] == [
        ("org.foo:bar:2.0", "latest-version")
    ]
    assert report.used == ()


def test_used_plugin_reported_as_used() -> None:
    coordinate = "org.apache.maven.plugins:foo-plugin:1.0"

    report = reconcile({installed(ROOT, coordinate)}, {gav(coordinate)}, SETTINGS)

    assert _strs(report.used_coordinates) == [coordinate]
    assert report.unused == ()


def test_old_unused_core_version_is_purgeable() -> None:
    items = {
        installed(ROOT, "org.apache.maven:maven-model:3.8.1"),
        installed(ROOT, "org.apache.maven:maven-model:3.9.5"),
    }

    report = reconcile(items, set(), SETTINGS)

    assert _strs(report.unused_coordinates) == ["org.apache.maven:maven-model:3.8.1"]


def test_partition_is_complete_and_disjoint() -> None:
    gavs = [
        "org.foo:bar:1.0",
        "org.foo:bar:1.5",
        "org.foo:bar:2.0",
        "org.acme:thing-plugin:1.0",
        "org.apache.maven:maven-core:3.0",
        "org.apache.maven:maven-core:3.9",
        "com.example:lib:0.1",
    ]
    items = {installed(ROOT, g) for g in gavs}
    used = {gav("org.foo:bar:1.5"), gav("com.example:other:9.9")}

    report = reconcile(items, used, SETTINGS)

    used_part = set(report.used_coordinates)
    unused_part = set(report.unused_coordinates)
    protected_part = {p.installed.coordinate for p in report.protected}
    assert used_part | unused_part | protected_part == {gav(g) for g in gavs}
    assert len(report.used) + len(report.unused) + len(report.protected) == len(gavs)
    assert _strs(report.unused_coordinates) == [
        "org.apache.maven:maven-core:3.0",
        "org.foo:bar:1.0",
    ]


def test_latest_version_never_unused() -> None:
    items = {installed(ROOT, f"org.foo:bar:{v}") for v in ("1.9", "1.10", "1.2")}

    report = reconcile(items, set(), SETTINGS)

    assert "org.foo:bar:1.10" not in _strs(report.unused_coordinates)


def test_reconcile_twice_writes_identical_reports(tmp_path: Path) -> None:
    items = {installed(ROOT, g) for g in ("org.foo:bar:1.0", "org.foo:bar:2.0", "a.b:c:1.0")}
    used = {gav("a.b:c:1.0")}

    first = reconcile(items, used, SETTINGS)
    second = reconcile(set(items), set(used), SETTINGS)
    write_report(tmp_path / "first.csv", first.unused_coordinates)
    write_report(tmp_path / "second.csv", second.unused_coordinates)

    assert first == second
    assert (tmp_path / "first.csv").read_bytes() == (tmp_path / "second.csv").read_bytes()
    assert read_report(tmp_path / "first.csv") == {gav("org.foo:bar:1.0")}
