"""
Slot availability for a single barber on a single day.

Working hours come from the barber record, one entry per weekday::

    {"dayOfWeek": 1, "startTime": "09:00", "endTime": "18:00",
     "isAvailable": True, "lunchStart": "12:00", "lunchEnd": "13:00"}

``dayOfWeek`` counts from Sunday (0) to Saturday (6). All datetimes are naive
wall-clock times in the shop's timezone. Intervals are half-open, so an
appointment ending at 10:00 does not collide with one starting at 10:00.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Iterable, NamedTuple

from barbercmz.core import config

OCCUPYING_STATUSES = ("scheduled", "completed")

HHMM_PATTERN = re.compile(r'^([0-1][0-9]|2[0-3]):[0-5][0-9]$')


class WorkingWindow(NamedTuple):
    start: datetime
    end: datetime
    lunch: tuple[datetime, datetime] | None


def weekday_index(on_date: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (on_date.weekday() + 1) % 7


def parse_hhmm(value: str) -> time:
    if not isinstance(value, str) or not HHMM_PATTERN.match(value):
        raise ValueError(f'Invalid time {value!r}, expected HH:mm.')
    hours, minutes = value.split(':')
    return time(int(hours), int(minutes))


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def hours_for_day(working_hours: Iterable[dict], on_date: date) -> dict | None:
    day = weekday_index(on_date)
    for entry in working_hours or []:
        if entry.get('dayOfWeek') == day:
            return entry
    return None


def working_window(working_hours: Iterable[dict], on_date: date) -> WorkingWindow | None:
    entry = hours_for_day(working_hours, on_date)
    if entry is None or not entry.get('isAvailable', True):
        return None

    start = datetime.combine(on_date, parse_hhmm(entry['startTime']))
    end = datetime.combine(on_date, parse_hhmm(entry['endTime']))
    if start >= end:
        return None

    lunch = None
    if entry.get('lunchStart') and entry.get('lunchEnd'):
        lunch_start = datetime.combine(on_date, parse_hhmm(entry['lunchStart']))
        lunch_end = datetime.combine(on_date, parse_hhmm(entry['lunchEnd']))
        if lunch_start < lunch_end:
            lunch = (lunch_start, lunch_end)

    return WorkingWindow(start, end, lunch)


def is_unavailable_date(unavailable_dates: Iterable[str], on_date: date) -> bool:
    return on_date.isoformat() in set(unavailable_dates or [])


def _fits(
    window: WorkingWindow,
    slot_start: datetime,
    slot_end: datetime,
    busy: list[tuple[datetime, datetime]],
) -> bool:
    if slot_start < window.start or slot_end > window.end:
        return False
    if window.lunch and overlaps(slot_start, slot_end, *window.lunch):
        return False
    for busy_start, busy_end in busy:
        if overlaps(slot_start, slot_end, busy_start, busy_end):
            return False
    return True


def generate_slots(
    working_hours: Iterable[dict],
    unavailable_dates: Iterable[str],
    on_date: date,
    duration_minutes: int,
    busy: Iterable[tuple[datetime, datetime]] = (),
    now: datetime | None = None,
    interval_minutes: int | None = None,
) -> list[datetime]:
    """Return every start time on ``on_date`` where a service of the given length fits."""
    if duration_minutes <= 0 or is_unavailable_date(unavailable_dates, on_date):
        return []

    window = working_window(working_hours, on_date)
    if window is None:
        return []

    step = timedelta(minutes=interval_minutes or config.SLOT_INTERVAL_MINUTES)
    duration = timedelta(minutes=duration_minutes)
    busy = sorted(busy)

    slots: list[datetime] = []
    current = window.start
    while current + duration <= window.end:
        if (now is None or current > now) and _fits(window, current, current + duration, busy):
            slots.append(current)
        current += step

    return slots


def is_slot_available(
    working_hours: Iterable[dict],
    unavailable_dates: Iterable[str],
    start: datetime,
    duration_minutes: int,
    busy: Iterable[tuple[datetime, datetime]] = (),
    now: datetime | None = None,
    interval_minutes: int | None = None,
) -> bool:
    """Check one requested start against the same rules as ``generate_slots``."""
    if duration_minutes <= 0 or is_unavailable_date(unavailable_dates, start.date()):
        return False
    if now is not None and start <= now:
        return False

    window = working_window(working_hours, start.date())
    if window is None:
        return False

    step_minutes = interval_minutes or config.SLOT_INTERVAL_MINUTES
    offset_minutes = (start - window.start).total_seconds() / 60
    if offset_minutes < 0 or offset_minutes % step_minutes != 0:
        return False

    return _fits(window, start, start + timedelta(minutes=duration_minutes), list(busy))
