from dataclasses import dataclass
from pathlib import Path

from m2audit.gateway.process.abc import ProcessResult, ProcessSupervisor, ProgressCallback


@dataclass(frozen=True)
class SupervisedCall:
    cmd: list[str]
    cwd: Path
    timeout_seconds: float


class FakeProcessSupervisor(ProcessSupervisor):
    """In-memory supervisor returning scripted results in call order.

    When the scripted results run out, every further call succeeds with empty
    output. A timed-out result also records a terminate_tree call.
    """

    def __init__(self, *, results: list[ProcessResult] | None = None) -> None:
        self._results = list(results) if results is not None else []
        self._calls: list[SupervisedCall] = []
        self._terminated: list[int] = []
        self._next_pid = 1000

    def run(
        self,
        *,
        cmd: list[str],
        cwd: Path,
        timeout_seconds: float,
        progress_interval_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> ProcessResult:
        self._calls.append(SupervisedCall(cmd=cmd, cwd=cwd, timeout_seconds=timeout_seconds))
        self._next_pid += 1
        if not self._results:
            return ProcessResult(exit_code=0, output="", timed_out=False, elapsed_seconds=0.0)

        result = self._results.pop(0)
        if on_progress is not None and progress_interval_seconds > 0:
            ticks = int(result.elapsed_seconds // progress_interval_seconds)
            for tick in range(1, ticks + 1):
                on_progress(tick * progress_interval_seconds)
        if result.timed_out:
            self.terminate_tree(self._next_pid)
        return result

    def terminate_tree(self, pid: int) -> None:
        self._terminated.append(pid)

    @property
    def calls(self) -> list[SupervisedCall]:
        return list(self._calls)

    @property
    def terminated(self) -> list[int]:
        return list(self._terminated)
