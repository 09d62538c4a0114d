from datetime import datetime, time, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sleepdata.models.sleep import AggregationWindow

START_OF_DAY = "start_of_day"
ROLLING = "rolling"


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        raise ValueError(f"Invalid timezone '{name}'. Use IANA timezone identifiers.")


def build_windows(
    lookback_days: int,
    rule: str = START_OF_DAY,
    tz: str = "UTC",
    now: Optional[datetime] = None
) -> List[AggregationWindow]:
    """Build one window per day going back from now, newest first.

    start_of_day windows cover whole local calendar days (today included).
    rolling windows end at now minus N days and span 24 hours.
    """
    if lookback_days < 1:
        raise ValueError(f"lookback_days must be at least 1, got {lookback_days}")

    zone = resolve_timezone(tz)
    if now is None:
        now = datetime.now(zone)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=zone)
    else:
        now = now.astimezone(zone)

    windows = []
    for offset in range(lookback_days):
        if rule == START_OF_DAY:
            day = (now - timedelta(days=offset)).date()
            start = datetime.combine(day, time(0, 0), tzinfo=zone)
            end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=zone)
        elif rule == ROLLING:
            end = now - timedelta(days=offset)
            start = end - timedelta(days=1)
            day = end.date()
        else:
            raise ValueError(f"Unknown window start rule: {rule}. Expected '{START_OF_DAY}' or '{ROLLING}'")

        windows.append(AggregationWindow(day=day, start=start, end=end))

    return windows


def window_for_date(day_str: str, tz: str = "UTC") -> AggregationWindow:
    """Calendar-day window for a YYYY-MM-DD string"""
    try:
        day = datetime.strptime(day_str, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date format: {day_str}. Expected YYYY-MM-DD")

    zone = resolve_timezone(tz)
    return AggregationWindow(
        day=day,
        start=datetime.combine(day, time(0, 0), tzinfo=zone),
        end=datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=zone),
    )
