"""
Availability Package - calendar lookups for scheduling emails
"""

from .events import CalendarClient
from .resolver import AvailabilityResolver, find_free_slots

__all__ = [
    "AvailabilityResolver",
    "CalendarClient",
    "find_free_slots",
]
