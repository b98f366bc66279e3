"""Tests for the config command group."""

from pathlib import Path

from click.testing import CliRunner

from m2audit.cli.cli import cli
from m2audit.core.config import config_path, load_config
from m2audit.core.context import AuditContext


def test_config_keys_lists_descriptions(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["config", "keys"], obj=AuditContext.for_test(home=tmp_path))

    assert result.exit_code == 0, result.output
    assert "keep_latest_version" in result.output
    assert "Directories searched for git repositories" in result.output


def test_config_list_defaults(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["config", "list"], obj=AuditContext.for_test(home=tmp_path))

    assert result.exit_code == 0, result.output
    assert "defaults, no config file" in result.output
    assert "scopes=compile,runtime,test" in result.output
    assert "min_days_between_runs=7" in result.output


def test_config_get(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["config", "get", "max_deletion_attempts"], obj=AuditContext.for_test(home=tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert result.stdout == "3\n"


def test_config_get_invalid_key(tmp_path: Path) -> None:
    ctx = AuditContext.for_test(home=tmp_path)

    result = CliRunner().invoke(cli, ["config", "get", "color"], obj=ctx)

    assert result.exit_code == 1
    assert "Invalid key: color" in result.output


def test_config_set_writes_file(tmp_path: Path) -> None:
    ctx = AuditContext.for_test(home=tmp_path)

    result = CliRunner().invoke(cli, ["config", "set", "base_dirs", "~/work,~/oss"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert f"Set base_dirs=~/work,~/oss in {config_path(tmp_path)}" in result.output
    assert load_config(tmp_path).base_dirs == [tmp_path / "work", tmp_path / "oss"]


def test_config_set_rejects_bad_value(tmp_path: Path) -> None:
    ctx = AuditContext.for_test(home=tmp_path)

    result = CliRunner().invoke(cli, ["config", "set", "keep_latest_version", "maybe"], obj=ctx)

    assert result.exit_code == 1
    assert "Invalid boolean value: maybe" in result.output
    assert not config_path(tmp_path).exists()
