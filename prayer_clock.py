"""Time-string parsing and prayer period classification."""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Mapping, Optional

LOGGER = logging.getLogger(__name__)

PRAYER_ORDER = ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]
WRAP_PERIOD = "Isha"

_CLOCK_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")
_MERIDIEM_PATTERN = re.compile(r"\b(am|pm)\b", re.IGNORECASE)


class FormatError(ValueError):
    """Raised when a prayer time string has no usable ``H:MM`` value."""


def parse_time(raw: str, day_offset: int = 0, today: Optional[date] = None) -> datetime:
    """Turn a free-form prayer time string into a local wall-clock datetime.

    The first ``H:MM``/``HH:MM`` group is used; a standalone ``am``/``pm``
    token anywhere in the string switches to 12-hour interpretation.
    *day_offset* shifts the calendar day (``1`` is tomorrow).
    """
    if not raw:
        raise FormatError("Empty time string")

    match = _CLOCK_PATTERN.search(raw)
    if match is None:
        raise FormatError(f"Invalid time format: {raw}")

    hours = int(match.group(1))
    minutes = int(match.group(2))

    meridiem = _MERIDIEM_PATTERN.search(raw)
    if meridiem is not None:
        marker = meridiem.group(1).lower()
        if marker == "pm" and hours < 12:
            hours += 12
        elif marker == "am" and hours == 12:
            hours = 0

    base = (today or date.today()) + timedelta(days=day_offset)
    try:
        parsed = datetime.combine(base, time(hour=hours, minute=minutes))
    except ValueError as exc:
        raise FormatError(f"Invalid time format: {raw}") from exc
    LOGGER.debug("Parsed prayer time %r (offset=%d) -> %s", raw, day_offset, parsed)
    return parsed


def compute_current_period(
    now: datetime,
    period_starts: Mapping[str, datetime],
    fajr_tomorrow: datetime,
) -> str:
    """Return the prayer period containing *now*.

    Periods run from their own start to the next one's start; Isha ends at
    tomorrow's Fajr. Before today's Fajr the overnight Isha is still current.
    """
    for index, name in enumerate(PRAYER_ORDER):
        start = period_starts[name]
        if index + 1 < len(PRAYER_ORDER):
            next_start = period_starts[PRAYER_ORDER[index + 1]]
        else:
            next_start = fajr_tomorrow
        if start <= now < next_start:
            return name
    return WRAP_PERIOD


def is_fasting(now: datetime, fajr_start: datetime, maghrib_start: datetime) -> bool:
    return fajr_start <= now < maghrib_start
