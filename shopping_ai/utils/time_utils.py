"""
Time helpers shared by the learning and traffic engines.

All helpers take an explicit datetime so callers can pin the clock in
tests; ``now()`` is the single place the wall clock is read.
"""

from datetime import datetime

from shopping_ai.utils.constants import (
    TIME_SLOT_BOUNDS,
    TIME_SLOT_LATE,
    WEEKEND_DAYS,
)


def now() -> datetime:
    """Current local wall-clock time."""
    return datetime.now()


def get_time_slot(hour: int) -> str:
    """
    Map an hour of day (0-23) to a named shopping time slot.

    Returns:
        One of early-morning, morning, midday, afternoon, evening, night
    """
    for upper_bound, slot in TIME_SLOT_BOUNDS:
        if hour < upper_bound:
            return slot
    return TIME_SLOT_LATE


def is_weekend(moment: datetime) -> bool:
    """True on Saturday and Sunday."""
    return moment.weekday() in WEEKEND_DAYS


def weekday_name(moment: datetime) -> str:
    """Full English weekday name, e.g. "Saturday"."""
    return moment.strftime("%A")


def in_hour_band(hour: int, first: int, last: int) -> bool:
    """Inclusive hour-band membership."""
    return first <= hour <= last
