"""Run throttling and report reuse across invocations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

LAST_RUN_MARKER = "maven_deps_last_run"

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class RunState:
    last_run_timestamp: int | None
    last_report_path: Path
    report_age_limit_days: int
    min_run_interval_days: int

    @property
    def last_run(self) -> datetime | None:
        if self.last_run_timestamp is None:
            return None
        return datetime.fromtimestamp(self.last_run_timestamp)


def read_last_run(output_dir: Path) -> int | None:
    """Epoch stored in the last-run marker, or None when absent or unparsable."""
    marker = output_dir / LAST_RUN_MARKER
    if not marker.is_file():
        return None
    text = marker.read_text(encoding="utf-8").strip()
    if not text.isdigit():
        logger.warning("Ignoring malformed last-run marker %s: %r", marker, text)
        return None
    return int(text)


def load_run_state(
    output_dir: Path, *, used_report: Path, report_age_limit_days: int, min_run_interval_days: int
) -> RunState:
    return RunState(
        last_run_timestamp=read_last_run(output_dir),
        last_report_path=used_report,
        report_age_limit_days=report_age_limit_days,
        min_run_interval_days=min_run_interval_days,
    )


def record_run(output_dir: Path, now: datetime) -> int:
    """Store local midnight of the run day as the last-run epoch.

    Returns:
        The stored epoch
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    epoch = int(midnight.timestamp())
    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / LAST_RUN_MARKER).write_text(f"{epoch}\n", encoding="utf-8")
    return epoch


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``later``."""
    return int((later - earlier).total_seconds() // SECONDS_PER_DAY)


def should_run(
    now: datetime, last_run: datetime | None, min_interval_days: int, forced: bool
) -> bool:
    if forced or min_interval_days <= 0 or last_run is None:
        return True
    return days_between(last_run, now) >= min_interval_days


def is_report_fresh(report_path: Path, now: datetime, max_age_days: int) -> bool:
    """Check whether a report is young enough to stand in for a new usage scan."""
    if max_age_days <= 0 or not report_path.is_file():
        return False
    modified = datetime.fromtimestamp(report_path.stat().st_mtime)
    return days_between(modified, now) < max_age_days
