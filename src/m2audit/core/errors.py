"""Exception types raised by the audit engine.

Only conditions that callers must handle explicitly are exceptions. Recoverable
conditions during a run (tool unavailable, empty listing, listing timeout,
failed deletion) are reported as values on the phase results instead.
"""


class AuditError(Exception):
    """Base class for m2audit errors."""


class NotAnArtifact(AuditError):
    """A path under the cache root does not decode to an artifact coordinate."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigError(AuditError):
    """The configuration file is unreadable or holds an invalid value."""
