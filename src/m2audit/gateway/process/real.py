import logging
import os
import signal
import subprocess
import tempfile
import time
from pathlib import Path

from m2audit.gateway.process.abc import ProcessResult, ProcessSupervisor, ProgressCallback

logger = logging.getLogger(__name__)

# Time between SIGTERM and SIGKILL when tearing down a process group
TERMINATE_GRACE_SECONDS = 1.0


class RealProcessSupervisor(ProcessSupervisor):
    """Runs children in their own session so the whole tree can be signalled."""

    def run(
        self,
        *,
        cmd: list[str],
        cwd: Path,
        timeout_seconds: float,
        progress_interval_seconds: float,
        on_progress: ProgressCallback | None,
    ) -> ProcessResult:
        logger.debug("Running %s in %s", " ".join(cmd), cwd)
        started = time.monotonic()
        with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as spool:
            try:
                proc = subprocess.Popen(
                    cmd,
                    cwd=cwd,
                    stdin=subprocess.DEVNULL,
                    stdout=spool,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
            except OSError as e:
                logger.warning("Cannot start %s: %s", cmd[0], e)
                return ProcessResult(
                    exit_code=None, output=str(e), timed_out=False, elapsed_seconds=0.0
                )

            timed_out = False
            interval = (
                progress_interval_seconds if progress_interval_seconds > 0 else timeout_seconds
            )
            while True:
                elapsed = time.monotonic() - started
                remaining = timeout_seconds - elapsed
                if remaining <= 0:
                    timed_out = True
                    logger.warning("Timed out after %.0fs: %s", elapsed, " ".join(cmd))
                    self.terminate_tree(proc.pid)
                    proc.wait()
                    break
                try:
                    proc.wait(timeout=min(interval, remaining))
                    break
                except subprocess.TimeoutExpired:
                    if on_progress is not None and time.monotonic() - started < timeout_seconds:
                        on_progress(time.monotonic() - started)

            spool.seek(0)
            output = spool.read()

        return ProcessResult(
            exit_code=None if timed_out else proc.returncode,
            output=output,
            timed_out=timed_out,
            elapsed_seconds=time.monotonic() - started,
        )

    def terminate_tree(self, pid: int) -> None:
        try:
            pgid = os.getpgid(pid)
        except ProcessLookupError:
            return

        try:
            os.killpg(pgid, signal.SIGTERM)
        except ProcessLookupError:
            return
        time.sleep(TERMINATE_GRACE_SECONDS)
        try:
            os.killpg(pgid, signal.SIGKILL)
        except ProcessLookupError:
            logger.debug("Process group %d exited after SIGTERM", pgid)
