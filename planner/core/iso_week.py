"""ISO-8601 week numbering.

The (week_number, year) pair is the key for all weekly chore state, so it
must agree with ISO-8601 exactly, including around New Year.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import NamedTuple

_THURSDAY = 3
_WEEK = timedelta(days=7)


class IsoWeek(NamedTuple):
    week_number: int
    year: int


def _thursday_of(day: date) -> date:
    """Return the Thursday of the Monday-based week containing ``day``."""
    return day + timedelta(days=_THURSDAY - day.weekday())


def iso_week(day: date | datetime) -> IsoWeek:
    """Return the ISO week number and ISO week-year of ``day``.

    The week-year is the year of the week's Thursday, which may differ from
    the calendar year: 2024-12-31 is week 1 of 2025, 2021-01-01 is week 53
    of 2020.
    """
    if isinstance(day, datetime):
        day = day.date()

    thursday = _thursday_of(day)
    year = thursday.year

    first_thursday = date(year, 1, 1)
    if first_thursday.weekday() != _THURSDAY:
        first_thursday += timedelta(days=(_THURSDAY - first_thursday.weekday()) % 7)

    week_number = 1 + math.ceil((thursday - first_thursday) / _WEEK)
    return IsoWeek(week_number=week_number, year=year)
