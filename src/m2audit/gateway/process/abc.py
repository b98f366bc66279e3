from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a supervised child process.

    Attributes:
        exit_code: The child's exit status; None when it could not be started
            or was killed at the timeout
        output: Combined stdout and stderr
        timed_out: True when the hard timeout terminated the child
        elapsed_seconds: Wall time spent waiting
    """

    exit_code: int | None
    output: str
    timed_out: bool
    elapsed_seconds: float

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class ProcessSupervisor(ABC):
    """Runs a child process with a hard timeout and periodic progress notices."""

    @abstractmethod
    def run(
        self,
        *,
        cmd: list[str],
        cwd: Path,
        timeout_seconds: float,
        progress_interval_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> ProcessResult:
        """Run ``cmd`` in ``cwd`` and wait at most ``timeout_seconds``.

        ``on_progress`` is called with the elapsed seconds every
        ``progress_interval_seconds`` while the child is still running. At the
        timeout the child's whole process tree is terminated.
        """

    @abstractmethod
    def terminate_tree(self, pid: int) -> None:
        """Terminate a process and everything in its process group."""
