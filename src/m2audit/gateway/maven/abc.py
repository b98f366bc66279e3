from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from m2audit.gateway.process.abc import ProgressCallback

DEPENDENCY_PLUGIN = "org.apache.maven.plugins:maven-dependency-plugin:3.6.1"


class MavenStatus(Enum):
    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class MavenOutput:
    """Text produced by one build-tool invocation and how it ended."""

    status: MavenStatus
    text: str
    exit_code: int | None


class MavenRunner(ABC):
    """Build-tool operations needed by the audit."""

    @abstractmethod
    def resolve_executable(self, exec_dir: Path) -> str | None:
        """Return the wrapper in ``exec_dir`` if present, else ``mvn`` on PATH.

        Returns None when neither is available.
        """

    @abstractmethod
    def list_dependencies(
        self,
        *,
        executable: str,
        cwd: Path,
        project_list: str | None,
        scope: str,
        timeout_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> MavenOutput:
        """Run ``dependency:list`` restricted to one scope."""

    @abstractmethod
    def dependency_tree(
        self,
        *,
        executable: str,
        cwd: Path,
        project_list: str | None,
        timeout_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> MavenOutput:
        """Run ``dependency:tree`` without a scope filter."""

    @abstractmethod
    def verify(self, *, executable: str, module_dir: Path, timeout_seconds: float) -> MavenOutput:
        """Run a forced-update verify build without tests."""

    @abstractmethod
    def go_offline(self, *, executable: str, repo_dir: Path, timeout_seconds: float) -> MavenOutput:
        """Run ``dependency:go-offline`` so everything the project needs is cached."""
