from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Tuple
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def _zone(tz_name: str):
    if tz_name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(tz_name)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_date(instant: datetime, tz_name: str = "UTC") -> date:
    """Calendar day of an instant in the given zone"""
    return instant.astimezone(_zone(tz_name)).date()


def day_bounds(day: date, tz_name: str = "UTC", spread_days: int = 0) -> Tuple[datetime, datetime]:
    """UTC instants covering [day - spread, day + spread] in local time"""
    zone = _zone(tz_name)
    start = datetime.combine(day - timedelta(days=spread_days), time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=spread_days), time.max, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
