"""Tests for the per-run log file."""

import logging
from datetime import datetime
from pathlib import Path

from m2audit.cli.run_log import RunLogHandler, attach_run_log, detach_run_log


def test_run_log_receives_package_records(tmp_path: Path) -> None:
    path = attach_run_log(tmp_path / "logs", datetime(2024, 1, 15, 14, 30, 5))
    try:
        logging.getLogger("m2audit.core.purge").info("Deleted org.foo:bar:1.0")
    finally:
        detach_run_log()

    assert path.name == "m2audit_20240115_143005.log"
    assert "Deleted org.foo:bar:1.0" in path.read_text(encoding="utf-8")


def test_attach_replaces_previous_handler(tmp_path: Path) -> None:
    attach_run_log(tmp_path, datetime(2024, 1, 15))
    attach_run_log(tmp_path, datetime(2024, 1, 16))
    try:
        handlers = [
            h for h in logging.getLogger("m2audit").handlers if isinstance(h, RunLogHandler)
        ]
        assert len(handlers) == 1
    finally:
        detach_run_log()

    assert not any(isinstance(h, RunLogHandler) for h in logging.getLogger("m2audit").handlers)
