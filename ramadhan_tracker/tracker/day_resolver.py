"""
Observance-day resolution.

The Islamic day begins at sunset, so from ROLLOVER_HOUR local time onwards a
moment is tracked against the next calendar date. The day number is the whole
number of days between that tracked date and the start date, plus one, with no
clamping: values below 1 mean Ramadhan has not started, values above
RAMADAN_DAYS mean it is over.
"""
from collections import namedtuple
from datetime import date, datetime, timedelta
from typing import Union

from ramadhan_tracker.tracker.reference import RAMADAN_DAYS

ROLLOVER_HOUR = 18

DayInfo = namedtuple("DayInfo", ["day", "date_key", "tracked_date", "phase"])


class Phase:
    """Where a day number falls relative to the observance period."""
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    FINISHED = "finished"


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def tracked_date(now: datetime) -> date:
    """Calendar date the moment is recorded under (tomorrow from 18:00)."""
    current = now.date()
    if now.hour >= ROLLOVER_HOUR:
        current += timedelta(days=1)
    return current


def observance_day(now: datetime, start_date: Union[date, datetime]) -> int:
    return (tracked_date(now) - _as_date(start_date)).days + 1


def is_active(day: int) -> bool:
    return 1 <= day <= RAMADAN_DAYS


def phase_for(day: int) -> str:
    if day < 1:
        return Phase.NOT_STARTED
    if day > RAMADAN_DAYS:
        return Phase.FINISHED
    return Phase.ACTIVE


def resolve(now: datetime, start_date: Union[date, datetime]) -> DayInfo:
    """Day number, date key and phase for a moment."""
    tracked = tracked_date(now)
    day = (tracked - _as_date(start_date)).days + 1
    return DayInfo(day=day, date_key=tracked.isoformat(), tracked_date=tracked, phase=phase_for(day))
