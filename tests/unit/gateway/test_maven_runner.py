"""Tests for the real build-tool gateway, driven through a fake supervisor."""

import os
import tempfile
from pathlib import Path

from m2audit.gateway.maven.abc import MavenStatus
from m2audit.gateway.maven.real import (
    RealMavenRunner,
    go_offline_command,
    list_command,
    scratch_dir,
    tree_command,
    verify_command,
)
from m2audit.gateway.process.abc import ProcessResult
from m2audit.gateway.process.fake import FakeProcessSupervisor

PLUGIN = "org.apache.maven.plugins:maven-dependency-plugin:3.6.1"


def _result(
    *, exit_code: int | None = 0, output: str = "", timed_out: bool = False
) -> ProcessResult:
    return ProcessResult(
        exit_code=exit_code, output=output, timed_out=timed_out, elapsed_seconds=65.0
    )


def test_list_command_for_reactor_module() -> None:
    cmd = list_command(
        "mvn", scope="test", output_file=Path("/tmp/out.txt"), project_list="services/api"
    )

    assert cmd == [
        "mvn",
        "-q",
        "-B",
        f"{PLUGIN}:list",
        "-DincludeScope=test",
        "-DexcludeTypes=pom",
        "-DexcludeClassifiers=tests",
        "-DoutputAbsoluteArtifactFilename=false",
        "-DoutputFile=/tmp/out.txt",
        "-DappendOutput=true",
        "-pl",
        "services/api",
        "-am",
    ]


def test_tree_command_standalone() -> None:
    cmd = tree_command("./mvnw", output_file=Path("/tmp/tree.txt"), project_list=None)

    assert cmd[:4] == ["./mvnw", "-q", "-B", f"{PLUGIN}:tree"]
    assert "-pl" not in cmd


def test_verify_command_forces_updates() -> None:
    assert verify_command("mvn") == ["mvn", "-U", "-DskipTests", "-q", "-B", "verify"]


class TestResolveExecutable:
    def test_executable_wrapper_preferred(self, tmp_path: Path) -> None:
        wrapper = tmp_path / "mvnw"
        wrapper.write_text("#!/bin/sh\n", encoding="utf-8")
        os.chmod(wrapper, 0o755)
        runner = RealMavenRunner(supervisor=FakeProcessSupervisor(), progress_interval_seconds=30)

        assert runner.resolve_executable(tmp_path) == str(wrapper)

    def test_non_executable_wrapper_ignored(self, tmp_path: Path, monkeypatch) -> None:
        wrapper = tmp_path / "mvnw"
        wrapper.write_text("#!/bin/sh\n", encoding="utf-8")
        os.chmod(wrapper, 0o644)
        monkeypatch.setenv("PATH", str(tmp_path / "empty-bin"))
        runner = RealMavenRunner(supervisor=FakeProcessSupervisor(), progress_interval_seconds=30)

        assert runner.resolve_executable(tmp_path) is None


def test_list_runs_in_reactor_directory_and_reports_progress(tmp_path: Path) -> None:
    supervisor = FakeProcessSupervisor(results=[_result(output="   a.b:c:jar:1.0:compile\n")])
    runner = RealMavenRunner(supervisor=supervisor, progress_interval_seconds=30)
    ticks: list[float] = []

    output = runner.list_dependencies(
        executable="mvn",
        cwd=tmp_path,
        project_list="api",
        scope="compile",
        timeout_seconds=120,
        on_progress=ticks.append,
    )

    assert output.status == MavenStatus.OK
    assert "a.b:c:jar:1.0:compile" in output.text
    assert ticks == [30, 60]
    (call,) = supervisor.calls
    assert call.cwd == tmp_path
    assert call.timeout_seconds == 120
    assert call.cmd[-3:] == ["-pl", "api", "-am"]


def test_build_failure_text_marks_failed(tmp_path: Path) -> None:
    supervisor = FakeProcessSupervisor(results=[_result(output="[ERROR] BUILD FAILURE\n")])
    runner = RealMavenRunner(supervisor=supervisor, progress_interval_seconds=30)

    output = runner.dependency_tree(
        executable="mvn", cwd=tmp_path, project_list=None, timeout_seconds=60, on_progress=None
    )

    assert output.status == MavenStatus.FAILED


def test_timeout_terminates_process_tree(tmp_path: Path) -> None:
    supervisor = FakeProcessSupervisor(results=[_result(exit_code=None, timed_out=True)])
    runner = RealMavenRunner(supervisor=supervisor, progress_interval_seconds=30)

    output = runner.verify(executable="mvn", module_dir=tmp_path, timeout_seconds=60)

    assert output.status == MavenStatus.TIMEOUT
    assert output.exit_code is None
    assert len(supervisor.terminated) == 1


def test_nonzero_verify_exit(tmp_path: Path) -> None:
    supervisor = FakeProcessSupervisor(results=[_result(exit_code=2)])
    runner = RealMavenRunner(supervisor=supervisor, progress_interval_seconds=30)

    output = runner.verify(executable="mvn", module_dir=tmp_path, timeout_seconds=60)

    assert output.status == MavenStatus.FAILED
    assert output.exit_code == 2


def test_go_offline_runs_in_repository(tmp_path: Path) -> None:
    supervisor = FakeProcessSupervisor()
    runner = RealMavenRunner(supervisor=supervisor, progress_interval_seconds=30)

    output = runner.go_offline(executable="mvn", repo_dir=tmp_path, timeout_seconds=600)

    assert output.status == MavenStatus.OK
    (call,) = supervisor.calls
    assert call.cmd == go_offline_command("mvn")
    assert call.cmd[-1] == f"{PLUGIN}:go-offline"
    assert call.cwd == tmp_path


class OutputFileSupervisor(FakeProcessSupervisor):
    """Writes the dependency-plugin output file the way Maven would."""

    def __init__(self, text: str) -> None:
        super().__init__()
        self._text = text

    def run(self, **kwargs) -> ProcessResult:
        for arg in kwargs["cmd"]:
            if arg.startswith("-DoutputFile="):
                Path(arg.removeprefix("-DoutputFile=")).write_text(self._text, encoding="utf-8")
        return super().run(**kwargs)


def test_scratch_directory_removed_after_each_listing(tmp_path: Path, monkeypatch) -> None:
    temp_root = tmp_path / "tmp"
    temp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_root))
    runner = RealMavenRunner(
        supervisor=OutputFileSupervisor("   a.b:c:jar:1.0:compile\n"), progress_interval_seconds=30
    )

    listed = runner.list_dependencies(
        executable="mvn",
        cwd=tmp_path,
        project_list=None,
        scope="compile",
        timeout_seconds=60,
        on_progress=None,
    )
    tree = runner.dependency_tree(
        executable="mvn", cwd=tmp_path, project_list=None, timeout_seconds=60, on_progress=None
    )

    assert listed.text == "   a.b:c:jar:1.0:compile\n"
    assert tree.status == MavenStatus.OK
    assert scratch_dir().parent == temp_root
    assert not scratch_dir().exists()
    assert list(temp_root.iterdir()) == []
