from dataclasses import dataclass
from pathlib import Path

from m2audit.gateway.maven.abc import MavenOutput, MavenRunner, MavenStatus
from m2audit.gateway.process.abc import ProgressCallback

EMPTY_OK = MavenOutput(status=MavenStatus.OK, text="", exit_code=0)


def ok_output(text: str) -> MavenOutput:
    return MavenOutput(status=MavenStatus.OK, text=text, exit_code=0)


def failed_output(text: str = "[ERROR] BUILD FAILURE") -> MavenOutput:
    return MavenOutput(status=MavenStatus.FAILED, text=text, exit_code=1)


def timeout_output(text: str = "") -> MavenOutput:
    return MavenOutput(status=MavenStatus.TIMEOUT, text=text, exit_code=None)


@dataclass(frozen=True)
class MavenCall:
    goal: str
    executable: str
    cwd: Path
    project_list: str | None
    scope: str | None


class FakeMavenRunner(MavenRunner):
    """Scripted build tool.

    ``list_outputs`` maps a scope to the output every ``dependency:list`` in
    that scope returns; unscripted scopes succeed with no output. An executable
    is available everywhere unless ``executable`` is None or the directory is
    listed in ``missing_executable_dirs``. ``go_offline_outputs`` scripts the
    result of ``dependency:go-offline`` per repository.
    """

    def __init__(
        self,
        *,
        executable: str | None = "mvn",
        missing_executable_dirs: set[Path] | None = None,
        list_outputs: dict[str, MavenOutput] | None = None,
        tree_output: MavenOutput | None = None,
        failing_verify_dirs: set[Path] | None = None,
        go_offline_outputs: dict[Path, MavenOutput] | None = None,
    ) -> None:
        self._executable = executable
        self._missing_executable_dirs = (
            missing_executable_dirs if missing_executable_dirs is not None else set()
        )
        self._list_outputs = list_outputs if list_outputs is not None else {}
        self._tree_output = tree_output if tree_output is not None else EMPTY_OK
        self._failing_verify_dirs = (
            failing_verify_dirs if failing_verify_dirs is not None else set()
        )
        self._go_offline_outputs = go_offline_outputs if go_offline_outputs is not None else {}
        self._calls: list[MavenCall] = []

    def resolve_executable(self, exec_dir: Path) -> str | None:
        if exec_dir in self._missing_executable_dirs:
            return None
        return self._executable

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
        self._calls.append(
            MavenCall(
                goal="list", executable=executable, cwd=cwd, project_list=project_list, scope=scope
            )
        )
        return self._list_outputs.get(scope, EMPTY_OK)

    def dependency_tree(
        self,
        *,
        executable: str,
        cwd: Path,
        project_list: str | None,
        timeout_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> MavenOutput:
        self._calls.append(
            MavenCall(
                goal="tree", executable=executable, cwd=cwd, project_list=project_list, scope=None
            )
        )
        return self._tree_output

    def verify(self, *, executable: str, module_dir: Path, timeout_seconds: float) -> MavenOutput:
        self._calls.append(
            MavenCall(
                goal="verify", executable=executable, cwd=module_dir, project_list=None, scope=None
            )
        )
        if module_dir in self._failing_verify_dirs:
            return failed_output()
        return EMPTY_OK

    def go_offline(self, *, executable: str, repo_dir: Path, timeout_seconds: float) -> MavenOutput:
        self._calls.append(
            MavenCall(
                goal="go-offline",
                executable=executable,
                cwd=repo_dir,
                project_list=None,
                scope=None,
            )
        )
        return self._go_offline_outputs.get(repo_dir, EMPTY_OK)

    @property
    def calls(self) -> list[MavenCall]:
        return list(self._calls)

    @property
    def goals_run(self) -> list[str]:
        return [call.goal for call in self._calls]
