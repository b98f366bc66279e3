from datetime import datetime, timedelta

from m2audit.gateway.time.abc import Time

DEFAULT_NOW = datetime(2024, 1, 15, 14, 30, 0)


class FakeTime(Time):
    def __init__(self, *, now: datetime | None = None) -> None:
        self._now = now if now is not None else DEFAULT_NOW

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta
