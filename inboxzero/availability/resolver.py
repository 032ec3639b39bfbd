"""
Availability Resolver - free calendar windows for requested dates

``find_free_slots`` is pure: given busy intervals for one day it returns
the gaps inside working hours that are long enough for a meeting.
``AvailabilityResolver`` drives it against the calendar for the dates a
scheduling email asks about, pacing the API calls.
"""

import time as _time
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from inboxzero.logging_config import get_logger
from inboxzero.models import CalendarAvailability, TimeSlot
from inboxzero.resilience import APIRateLimiters, PacedExecutor, RateLimiter

logger = get_logger(__name__)

DEFAULT_WORKING_HOURS = ("09:00", "17:00")
DEFAULT_MIN_SLOT_MINUTES = 30
DEFAULT_MAX_DATES = 3
DEFAULT_REQUEST_DELAY = 0.2


def _as_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip()[:10])


def _clock_time(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def find_free_slots(
    day: Union[str, date],
    busy: Iterable[Tuple[datetime, datetime]],
    working_hours: Tuple[str, str] = DEFAULT_WORKING_HOURS,
    min_slot_minutes: int = DEFAULT_MIN_SLOT_MINUTES,
    tz: str = "UTC",
) -> CalendarAvailability:
    """
    Compute free windows on one day.

    Busy intervals are walked in start order; every gap between the
    working-day start, the busy intervals and the working-day end that
    lasts at least ``min_slot_minutes`` becomes a slot. Overlapping and
    out-of-hours intervals are handled. Naive datetimes are read in ``tz``.

    Args:
        day: Date as YYYY-MM-DD or a date
        busy: (start, end) intervals
        working_hours: ("HH:MM", "HH:MM") window in ``tz``
        min_slot_minutes: Shortest slot worth offering
        tz: IANA timezone name

    Returns:
        CalendarAvailability with ISO timestamps in ``tz``

    Raises:
        ValueError: If ``day`` is not a valid date
    """
    zone = ZoneInfo(tz)
    day = _as_date(day)
    day_start = datetime.combine(day, _clock_time(working_hours[0]), tzinfo=zone)
    day_end = datetime.combine(day, _clock_time(working_hours[1]), tzinfo=zone)
    minimum = timedelta(minutes=min_slot_minutes)

    def localize(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=zone)
        return value.astimezone(zone)

    intervals = sorted((localize(start), localize(end)) for start, end in busy)

    gaps = []
    cursor = day_start
    for start, end in intervals:
        if start >= day_end:
            break
        if end <= cursor:
            continue
        if start > cursor:
            gaps.append((cursor, start))
        cursor = end
    if cursor < day_end:
        gaps.append((cursor, day_end))

    slots = [
        TimeSlot(start=start.isoformat(), end=end.isoformat())
        for start, end in gaps
        if end - start >= minimum
    ]
    return CalendarAvailability(date=day.isoformat(), available_slots=slots)


class AvailabilityResolver:
    """
    Resolve free windows for the dates a scheduling email mentions.

    ``calendar`` is anything with ``list_busy(day, tz)``, normally a
    CalendarClient.
    """

    def __init__(
        self,
        calendar,
        working_hours: Tuple[str, str] = DEFAULT_WORKING_HOURS,
        min_slot_minutes: int = DEFAULT_MIN_SLOT_MINUTES,
        max_dates: int = DEFAULT_MAX_DATES,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        timezone: str = "UTC",
        rate_limiter: Optional[RateLimiter] = APIRateLimiters.calendar,
        sleep: Callable[[float], None] = _time.sleep,
    ):
        self.calendar = calendar
        self.working_hours = working_hours
        self.min_slot_minutes = min_slot_minutes
        self.timezone = timezone
        self.executor = PacedExecutor(
            delay=request_delay,
            max_items=max_dates,
            rate_limiter=rate_limiter,
            sleep=sleep,
        )

    @classmethod
    def from_config(cls, calendar, config) -> "AvailabilityResolver":
        return cls(
            calendar,
            working_hours=config.working_hours,
            min_slot_minutes=config.min_slot_minutes,
            max_dates=config.max_calendar_dates,
            request_delay=config.calendar_request_delay,
            timezone=config.timezone,
        )

    def resolve(
        self, dates: Sequence[str], working_hours: Optional[Tuple[str, str]] = None
    ) -> List[CalendarAvailability]:
        """
        Look up availability for the first few requested dates.

        Dates whose lookup fails, or that have no qualifying slot, are
        skipped. Never raises for a single bad date.

        Args:
            dates: Requested dates (YYYY-MM-DD), in request order
            working_hours: Override for the configured working hours

        Returns:
            Availabilities with at least one slot, in request order
        """
        hours = working_hours or self.working_hours

        def lookup(value: str) -> CalendarAvailability:
            day = _as_date(value)
            busy = self.calendar.list_busy(day, self.timezone)
            return find_free_slots(day, busy, hours, self.min_slot_minutes, self.timezone)

        availabilities = []
        for value, availability, error in self.executor.map(lookup, dates):
            if error is not None:
                logger.warning(f"Could not check availability for {value}: {error}")
                continue
            if availability.available_slots:
                availabilities.append(availability)
            else:
                logger.debug(f"No free slot on {value}")
        return availabilities
