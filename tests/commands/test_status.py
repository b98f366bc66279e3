"""Tests for the status command."""

from datetime import timedelta
from pathlib import Path

from click.testing import CliRunner

from m2audit.cli.cli import cli
from m2audit.core.context import AuditContext
from m2audit.core.run_state import record_run
from m2audit.gateway.time.fake import FakeTime


def test_status_before_first_run(tmp_path: Path) -> None:
    ctx = AuditContext.for_test(home=tmp_path)

    result = CliRunner().invoke(cli, ["status"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert "never" in result.output
    assert "allowed now" in result.output
    assert "not written yet" in result.output


def test_status_after_recent_run(tmp_path: Path) -> None:
    time = FakeTime()
    ctx = AuditContext.for_test(home=tmp_path, time=time)
    record_run(ctx.config.output_dir, time.now() - timedelta(days=2))

    result = CliRunner().invoke(cli, ["status"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert "2024-01-13" in result.output
    assert "2024-01-20" in result.output
    assert "allowed now" not in result.output


def test_status_once_interval_has_passed(tmp_path: Path) -> None:
    time = FakeTime()
    ctx = AuditContext.for_test(home=tmp_path, time=time)
    record_run(ctx.config.output_dir, time.now())
    time.advance(timedelta(days=8))

    result = CliRunner().invoke(cli, ["status"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert "(8 days ago)" in result.output
    assert "allowed now" in result.output
