import logging
import os
import shutil
import tempfile
from pathlib import Path

from m2audit.core.maven_output_parser import has_build_failure
from m2audit.gateway.maven.abc import DEPENDENCY_PLUGIN, MavenOutput, MavenRunner, MavenStatus
from m2audit.gateway.process.abc import ProcessResult, ProcessSupervisor, ProgressCallback

logger = logging.getLogger(__name__)

WRAPPER_NAME = "mvnw"


def scratch_dir() -> Path:
    """Directory for dependency-plugin output files, removed again once empty."""
    return Path(tempfile.gettempdir()) / f"m2audit_{os.getpid()}"


def list_command(
    executable: str, *, scope: str, output_file: Path, project_list: str | None
) -> list[str]:
    cmd = [
        executable,
        "-q",
        "-B",
        f"{DEPENDENCY_PLUGIN}:list",
        f"-DincludeScope={scope}",
        "-DexcludeTypes=pom",
        "-DexcludeClassifiers=tests",
        "-DoutputAbsoluteArtifactFilename=false",
        f"-DoutputFile={output_file}",
        "-DappendOutput=true",
    ]
    return cmd + _project_list_args(project_list)


def tree_command(executable: str, *, output_file: Path, project_list: str | None) -> list[str]:
    cmd = [
        executable,
        "-q",
        "-B",
        f"{DEPENDENCY_PLUGIN}:tree",
        "-DoutputType=text",
        f"-DoutputFile={output_file}",
        "-DappendOutput=true",
    ]
    return cmd + _project_list_args(project_list)


def verify_command(executable: str) -> list[str]:
    return [executable, "-U", "-DskipTests", "-q", "-B", "verify"]


def go_offline_command(executable: str) -> list[str]:
    return [executable, "-q", "-B", f"{DEPENDENCY_PLUGIN}:go-offline"]


def _project_list_args(project_list: str | None) -> list[str]:
    if project_list is None:
        return []
    return ["-pl", project_list, "-am"]


class RealMavenRunner(MavenRunner):
    def __init__(self, *, supervisor: ProcessSupervisor, progress_interval_seconds: float) -> None:
        self._supervisor = supervisor
        self._progress_interval_seconds = progress_interval_seconds
        self._invocations = 0

    def resolve_executable(self, exec_dir: Path) -> str | None:
        wrapper = exec_dir / WRAPPER_NAME
        # LBYL: a wrapper that is not executable is ignored
        if wrapper.is_file() and os.access(wrapper, os.X_OK):
            return str(wrapper)
        return shutil.which("mvn")

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
        output_file = self._output_file(f"list_{scope}")
        cmd = list_command(
            executable, scope=scope, output_file=output_file, project_list=project_list
        )
        return self._run_with_output_file(cmd, cwd, output_file, timeout_seconds, on_progress)

    def dependency_tree(
        self,
        *,
        executable: str,
        cwd: Path,
        project_list: str | None,
        timeout_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> MavenOutput:
        output_file = self._output_file("tree")
        cmd = tree_command(executable, output_file=output_file, project_list=project_list)
        return self._run_with_output_file(cmd, cwd, output_file, timeout_seconds, on_progress)

    def verify(self, *, executable: str, module_dir: Path, timeout_seconds: float) -> MavenOutput:
        result = self._supervisor.run(
            cmd=verify_command(executable),
            cwd=module_dir,
            timeout_seconds=timeout_seconds,
            progress_interval_seconds=self._progress_interval_seconds,
            on_progress=None,
        )
        return _to_output(result, result.output)

    def go_offline(self, *, executable: str, repo_dir: Path, timeout_seconds: float) -> MavenOutput:
        result = self._supervisor.run(
            cmd=go_offline_command(executable),
            cwd=repo_dir,
            timeout_seconds=timeout_seconds,
            progress_interval_seconds=self._progress_interval_seconds,
            on_progress=None,
        )
        return _to_output(result, result.output)

    def _output_file(self, label: str) -> Path:
        directory = scratch_dir()
        directory.mkdir(parents=True, exist_ok=True)
        self._invocations += 1
        output_file = directory / f"{label}_{self._invocations}.txt"
        if output_file.exists():
            output_file.unlink()
        return output_file

    def _run_with_output_file(
        self,
        cmd: list[str],
        cwd: Path,
        output_file: Path,
        timeout_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> MavenOutput:
        result = self._supervisor.run(
            cmd=cmd,
            cwd=cwd,
            timeout_seconds=timeout_seconds,
            progress_interval_seconds=self._progress_interval_seconds,
            on_progress=on_progress,
        )
        text = result.output
        if output_file.is_file():
            text = output_file.read_text(encoding="utf-8", errors="replace")
            output_file.unlink()
        _remove_if_empty(output_file.parent)
        return _to_output(result, text)


def _remove_if_empty(directory: Path) -> None:
    try:
        if directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()
    except OSError as e:
        logger.debug("Cannot remove scratch directory %s: %s", directory, e)


def _to_output(result: ProcessResult, text: str) -> MavenOutput:
    if result.timed_out:
        return MavenOutput(status=MavenStatus.TIMEOUT, text=text, exit_code=None)
    if result.exit_code != 0 or has_build_failure(result.output):
        logger.debug("Build tool failed with exit code %s", result.exit_code)
        return MavenOutput(status=MavenStatus.FAILED, text=text, exit_code=result.exit_code)
    return MavenOutput(status=MavenStatus.OK, text=text, exit_code=result.exit_code)
