from abc import ABC, abstractmethod
from datetime import datetime


class Time(ABC):
    """Clock used for run throttling and report freshness."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current local time."""
