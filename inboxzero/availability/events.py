"""
Calendar Events - busy intervals from the user's primary Google Calendar
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Tuple
from zoneinfo import ZoneInfo

from inboxzero.gmail.client import GoogleClient

logger = logging.getLogger(__name__)

BusyInterval = Tuple[datetime, datetime]


def _parse_event_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class CalendarClient:
    """Read-only access to busy times on the primary calendar."""

    def __init__(self, client: GoogleClient, calendar_id: str = "primary"):
        self.client = client
        self.calendar_id = calendar_id

    def list_busy(self, day: date, tz: str = "UTC") -> List[BusyInterval]:
        """
        List timed events on ``day`` as (start, end) intervals.

        All-day events carry no dateTime and are ignored.

        Raises:
            googleapiclient.errors.HttpError: On API failure
        """
        zone = ZoneInfo(tz)
        day_start = datetime.combine(day, time.min, tzinfo=zone)
        day_end = day_start + timedelta(days=1)

        response = (
            self.client.calendar()
            .events()
            .list(
                calendarId=self.calendar_id,
                timeMin=day_start.isoformat(),
                timeMax=day_end.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                timeZone=tz,
            )
            .execute()
        )

        busy = []
        for event in response.get("items", []):
            start = (event.get("start") or {}).get("dateTime")
            if not start:
                continue
            end = (event.get("end") or {}).get("dateTime") or start
            busy.append((_parse_event_time(start), _parse_event_time(end)))

        logger.debug(f"{len(busy)} busy interval(s) on {day.isoformat()}")
        return busy
