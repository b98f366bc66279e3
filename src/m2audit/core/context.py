"""Dependencies threaded through every command."""

import random
from dataclasses import dataclass
from pathlib import Path

from m2audit.core.config import AuditConfig, load_config
from m2audit.gateway.maven.abc import MavenRunner
from m2audit.gateway.maven.fake import FakeMavenRunner
from m2audit.gateway.maven.real import RealMavenRunner
from m2audit.gateway.process.real import RealProcessSupervisor
from m2audit.gateway.time.abc import Time
from m2audit.gateway.time.fake import FakeTime
from m2audit.gateway.time.real import RealTime


@dataclass(frozen=True)
class AuditContext:
    """Immutable context created at the CLI entry point.

    Tests build one with ``for_test`` and pass it as ``obj`` to the click
    runner, so no command ever touches the real build tool or clock.
    """

    maven: MavenRunner
    time: Time
    config: AuditConfig
    cwd: Path
    home: Path
    rng: random.Random

    @staticmethod
    def for_test(
        *,
        home: Path,
        maven: MavenRunner | None = None,
        time: Time | None = None,
        config: AuditConfig | None = None,
        cwd: Path | None = None,
        rng: random.Random | None = None,
    ) -> "AuditContext":
        """Create a test context with fakes for anything not given.

        Args:
            home: Home directory; config defaults are derived from it
            maven: Defaults to a FakeMavenRunner where every listing is empty
            time: Defaults to FakeTime at its fixed instant
            config: Defaults to AuditConfig.defaults(home)
            cwd: Defaults to home
            rng: Defaults to a seeded Random
        """
        return AuditContext(
            maven=maven if maven is not None else FakeMavenRunner(),
            time=time if time is not None else FakeTime(),
            config=config if config is not None else AuditConfig.defaults(home),
            cwd=cwd if cwd is not None else home,
            home=home,
            rng=rng if rng is not None else random.Random(0),
        )


def create_context() -> AuditContext:
    """Create the production context with real implementations.

    Raises:
        ConfigError: If the config file cannot be loaded
    """
    home = Path.home()
    config = load_config(home)
    maven = RealMavenRunner(
        supervisor=RealProcessSupervisor(),
        progress_interval_seconds=config.progress_interval_seconds,
    )
    return AuditContext(
        maven=maven,
        time=RealTime(),
        config=config,
        cwd=Path.cwd(),
        home=home,
        rng=random.Random(),
    )
