from datetime import datetime

from m2audit.gateway.time.abc import Time


class RealTime(Time):
    def now(self) -> datetime:
        return datetime.now()
