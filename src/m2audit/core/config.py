"""User configuration stored in ``~/.m2audit/config.toml``.

Example config::

    cache_root = "~/.m2/repository"
    base_dirs = ["~/work", "~/oss"]
    scopes = ["compile", "runtime", "test"]
    keep_latest_version = true
    min_days_between_runs = 7
"""

import tomllib
from collections.abc import MutableMapping
from dataclasses import dataclass, field, fields
from functools import cache
from pathlib import Path
from typing import Any, cast

import tomlkit

from m2audit.core.errors import ConfigError

CONFIG_DIR_NAME = ".m2audit"
CONFIG_FILENAME = "config.toml"


@cache
def get_config_keys() -> dict[str, str]:
    """Configuration keys with descriptions, in display order."""
    return {
        "cache_root": "Local artifact cache to audit (~/.m2/repository by default)",
        "base_dirs": "Directories searched for git repositories",
        "repos": "Repositories always scanned in addition to the base directories",
        "output_dir": "Where reports and the last-run marker are written",
        "log_dir": "Where per-run log files are written",
        "scopes": "Dependency scopes to list",
        "exclude_patterns": "Skip repositories and descriptors whose path contains any of these",
        "max_deletion_attempts": "Deletion passes before giving up on a directory",
        "keep_latest_version": "Never delete the newest installed version of an artifact",
        "exclude_plugins": "Never delete artifacts whose id ends in -plugin",
        "min_days_between_runs": "Ask before running again within this many days (0 disables)",
        "max_report_age_days": (
            "Reuse the used-dependency report while younger than this (0 disables)"
        ),
        "listing_timeout_seconds": "Hard timeout for each dependency listing",
        "progress_interval_seconds": "Interval between progress notices while a listing runs",
        "verify_timeout_seconds": "Hard timeout for each post-purge verify build",
    }


@dataclass(frozen=True)
class AuditConfig:
    cache_root: Path
    output_dir: Path
    log_dir: Path
    base_dirs: list[Path] = field(default_factory=list)
    repos: list[Path] = field(default_factory=list)
    scopes: list[str] = field(default_factory=lambda: ["compile", "runtime", "test"])
    exclude_patterns: list[str] = field(default_factory=list)
    max_deletion_attempts: int = 3
    keep_latest_version: bool = True
    exclude_plugins: bool = True
    min_days_between_runs: int = 7
    max_report_age_days: int = 1
    listing_timeout_seconds: int = 60
    progress_interval_seconds: int = 30
    verify_timeout_seconds: int = 600

    @staticmethod
    def defaults(home: Path) -> "AuditConfig":
        return AuditConfig(
            cache_root=home / ".m2" / "repository",
            output_dir=home / CONFIG_DIR_NAME,
            log_dir=home / CONFIG_DIR_NAME / "logs",
        )


_PATH_KEYS = ("cache_root", "output_dir", "log_dir")
_PATH_LIST_KEYS = ("base_dirs", "repos")
_STRING_LIST_KEYS = ("scopes", "exclude_patterns")
_BOOL_KEYS = ("keep_latest_version", "exclude_plugins")
_INT_KEYS = (
    "max_deletion_attempts",
    "min_days_between_runs",
    "max_report_age_days",
    "listing_timeout_seconds",
    "progress_interval_seconds",
    "verify_timeout_seconds",
)


def config_path(home: Path) -> Path:
    return home / CONFIG_DIR_NAME / CONFIG_FILENAME


def expand_path(value: str, home: Path) -> Path:
    """Expand a leading ``~`` against ``home`` rather than the process environment."""
    if value == "~":
        return home
    if value.startswith("~/"):
        return home / value[2:]
    return Path(value)


def _coerce(key: str, value: object, home: Path) -> object:
    if key in _PATH_KEYS:
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string, got {value!r}")
        return expand_path(value, home)
    if key in _PATH_LIST_KEYS or key in _STRING_LIST_KEYS:
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigError(f"{key} must be a list of strings, got {value!r}")
        if key in _PATH_LIST_KEYS:
            return [expand_path(item, home) for item in value]
        return list(value)
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be true or false, got {value!r}")
        return value
    if key in _INT_KEYS:
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        if value < 0:
            raise ConfigError(f"{key} must not be negative, got {value}")
        return value
    raise ConfigError(f"Unknown configuration key: {key}")


def load_config(home: Path) -> AuditConfig:
    """Load the config file if present; otherwise return defaults.

    Raises:
        ConfigError: If the file is not valid TOML or holds an invalid value
    """
    path = config_path(home)
    defaults = AuditConfig.defaults(home)
    if not path.exists():
        return defaults

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    values: dict[str, object] = {}
    for key, value in data.items():
        if key not in get_config_keys():
            raise ConfigError(f"Unknown configuration key in {path}: {key}")
        values[key] = _coerce(key, value, home)

    merged = {f.name: getattr(defaults, f.name) for f in fields(AuditConfig)}
    merged.update(values)
    return AuditConfig(**cast(dict[str, Any], merged))


def parse_config_value(key: str, raw: str) -> object:
    """Parse a command-line value into the TOML value stored for ``key``.

    List keys take comma-separated values. Paths are stored as given so a
    leading ``~`` keeps following the home directory.
    """
    if key not in get_config_keys():
        raise ConfigError(f"Invalid key: {key}")
    if key in _BOOL_KEYS:
        if raw.lower() not in ("true", "false"):
            raise ConfigError(f"Invalid boolean value: {raw}")
        return raw.lower() == "true"
    if key in _INT_KEYS:
        if not raw.isdigit():
            raise ConfigError(f"Invalid value: {raw}. {key} must be a non-negative integer.")
        return int(raw)
    if key in _PATH_LIST_KEYS or key in _STRING_LIST_KEYS:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def write_config_value(home: Path, key: str, value: object) -> Path:
    """Set one key in the config file, preserving existing formatting and comments.

    Returns:
        Path of the written config file
    """
    path = config_path(home)
    if not path.parent.exists():
        path.parent.mkdir(parents=True)

    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            doc = tomlkit.load(f)
    else:
        doc = tomlkit.document()

    assert isinstance(doc, MutableMapping), f"Expected MutableMapping, got {type(doc)}"
    cast(dict[str, Any], doc)[key] = value

    with path.open("w", encoding="utf-8") as f:
        tomlkit.dump(doc, f)
    return path


def format_config_value(value: object) -> str:
    """Format a config value for display."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    return str(value)
