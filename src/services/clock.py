"""Where services get "now" and "today" from."""

from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


class Clock:
    """Wall clock. Pass a zone name to pin what "today" means; None uses host local time."""

    def __init__(self, timezone: Optional[str] = None):
        self.tz = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """Clock frozen at a given moment; advance() moves it forward."""

    def __init__(self, moment):
        super().__init__()
        if isinstance(moment, date) and not isinstance(moment, datetime):
            moment = datetime(moment.year, moment.month, moment.day, 12, 0)
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, days: int = 0, **kwargs) -> None:
        self.moment = self.moment + timedelta(days=days, **kwargs)
