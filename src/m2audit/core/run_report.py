"""Per-phase outcome accounting."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RunEntry:
    path: str
    reason: str

    def __str__(self) -> str:
        if not self.reason:
            return self.path
        return f"{self.path} ({self.reason})"


@dataclass(frozen=True)
class RunReport:
    """Which paths a phase handled, failed on, or skipped.

    Each phase returns its own report; the command merges them for the final
    summary.
    """

    ok: tuple[RunEntry, ...] = ()
    failed: tuple[RunEntry, ...] = ()
    skipped: tuple[RunEntry, ...] = ()

    def with_ok(self, path: str, reason: str = "") -> "RunReport":
        return RunReport(
            ok=(*self.ok, RunEntry(path, reason)), failed=self.failed, skipped=self.skipped
        )

    def with_failed(self, path: str, reason: str) -> "RunReport":
        return RunReport(
            ok=self.ok, failed=(*self.failed, RunEntry(path, reason)), skipped=self.skipped
        )

    def with_skipped(self, path: str, reason: str) -> "RunReport":
        return RunReport(
            ok=self.ok, failed=self.failed, skipped=(*self.skipped, RunEntry(path, reason))
        )

    def merge(self, other: "RunReport") -> "RunReport":
        return RunReport(
            ok=self.ok + other.ok,
            failed=self.failed + other.failed,
            skipped=self.skipped + other.skipped,
        )

    @property
    def total(self) -> int:
        return len(self.ok) + len(self.failed) + len(self.skipped)
