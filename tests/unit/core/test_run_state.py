"""Tests for run throttling and report reuse."""

import os
from datetime import datetime, timedelta
from pathlib import Path

from m2audit.core.run_state import (
    LAST_RUN_MARKER,
    is_report_fresh,
    load_run_state,
    read_last_run,
    record_run,
    should_run,
)

NOW = datetime(2024, 1, 15, 14, 30, 0)


def test_record_run_stores_midnight(tmp_path: Path) -> None:
    epoch = record_run(tmp_path / "out", NOW)

    assert epoch == int(datetime(2024, 1, 15).timestamp())
    assert (tmp_path / "out" / LAST_RUN_MARKER).read_text(encoding="utf-8") == f"{epoch}\n"
    assert read_last_run(tmp_path / "out") == epoch


def test_malformed_marker_is_ignored(tmp_path: Path) -> None:
    (tmp_path / LAST_RUN_MARKER).write_text("yesterday\n", encoding="utf-8")

    assert read_last_run(tmp_path) is None


def test_load_run_state_without_marker(tmp_path: Path) -> None:
    state = load_run_state(
        tmp_path,
        used_report=tmp_path / "used.csv",
        report_age_limit_days=1,
        min_run_interval_days=7,
    )

    assert state.last_run is None


class TestShouldRun:
    def test_first_run(self) -> None:
        assert should_run(NOW, None, 7, forced=False)

    def test_recent_run_is_throttled(self) -> None:
        assert not should_run(NOW, NOW - timedelta(days=2), 7, forced=False)

    def test_old_enough_run(self) -> None:
        assert should_run(NOW, NOW - timedelta(days=7), 7, forced=False)

    def test_forced(self) -> None:
        assert should_run(NOW, NOW - timedelta(days=2), 7, forced=True)

    def test_zero_interval_disables_throttle(self) -> None:
        assert should_run(NOW, NOW, 0, forced=False)


class TestReportFreshness:
    def _report(self, tmp_path: Path, age: timedelta) -> Path:
        path = tmp_path / "used.csv"
        path.write_text("Dependency,Version\n", encoding="utf-8")
        stamp = (NOW - age).timestamp()
        os.utime(path, (stamp, stamp))
        return path

    def test_young_report_is_fresh(self, tmp_path: Path) -> None:
        assert is_report_fresh(self._report(tmp_path, timedelta(hours=3)), NOW, 1)

    def test_old_report_is_stale(self, tmp_path: Path) -> None:
        assert not is_report_fresh(self._report(tmp_path, timedelta(days=2)), NOW, 1)

    def test_zero_age_limit_disables_reuse(self, tmp_path: Path) -> None:
        assert not is_report_fresh(self._report(tmp_path, timedelta(hours=3)), NOW, 0)

    def test_missing_report(self, tmp_path: Path) -> None:
        assert not is_report_fresh(tmp_path / "missing.csv", NOW, 1)
