import logging
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(name)s - %(levelname)s - %(message)s"


class RunLogHandler(logging.FileHandler):
    """File handler for one audit run's persistent log."""


def run_log_path(log_dir: Path, started: datetime) -> Path:
    return log_dir / f"m2audit_{started.strftime('%Y%m%d_%H%M%S')}.log"


def attach_run_log(log_dir: Path, started: datetime) -> Path:
    """Send INFO and above from the m2audit loggers to a per-run log file.

    A handler left over from an earlier run in the same process is replaced.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    path = run_log_path(log_dir, started)

    root = logging.getLogger("m2audit")
    detach_run_log()
    handler = RunLogHandler(path, encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    if root.getEffectiveLevel() > logging.INFO:
        root.setLevel(logging.INFO)
    return path


def detach_run_log() -> None:
    root = logging.getLogger("m2audit")
    for handler in list(root.handlers):
        if isinstance(handler, RunLogHandler):
            root.removeHandler(handler)
            handler.close()
