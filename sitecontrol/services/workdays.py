"""
Working-day calendar service.
Handles weekends, fixed and recurring holidays, and spreading a quantity
over the working days of a date range.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple, Union
import pytz

from ..config import settings
from ..schemas.calendar import WorkCalendar


DateLike = Union[date, datetime, str, None]


def to_local_date(value: DateLike, timezone_str: Optional[str] = None) -> Optional[date]:
    """
    Normalize a stored date value into a calendar date.

    Args:
        value: date, datetime (naive values are taken as UTC) or ISO string
        timezone_str: Timezone used to pick the calendar day of a timestamp
                      (default from settings)

    Returns:
        The local calendar date, or None for empty values
    """
    if value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if len(raw) == 10:
            return date.fromisoformat(raw)
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=pytz.UTC)
        try:
            tz = pytz.timezone(timezone_str or settings.tz_default)
        except pytz.UnknownTimeZoneError:
            tz = pytz.UTC
        return value.astimezone(tz).date()
    if isinstance(value, date):
        return value
    raise ValueError(f"Unsupported date value: {value!r}")


def _calendar(calendar: Optional[WorkCalendar]) -> WorkCalendar:
    return calendar if calendar is not None else WorkCalendar()


def is_weekend(day: date, calendar: Optional[WorkCalendar] = None) -> bool:
    cal = _calendar(calendar)
    if cal.include_weekends:
        return False
    return day.weekday() in cal.weekend_days


def holiday_name(day: date, calendar: Optional[WorkCalendar] = None) -> Optional[str]:
    """Return the name of the holiday falling on ``day``, if any."""
    for holiday in _calendar(calendar).holidays:
        if holiday.is_recurring:
            if (holiday.date.month, holiday.date.day) == (day.month, day.day):
                return holiday.name
        elif holiday.date == day:
            return holiday.name
    return None


def is_holiday(day: date, calendar: Optional[WorkCalendar] = None) -> bool:
    return holiday_name(day, calendar) is not None


def is_working_day(day: date, calendar: Optional[WorkCalendar] = None) -> bool:
    cal = _calendar(calendar)
    return not is_weekend(day, cal) and not is_holiday(day, cal)


def working_days(start: date, end: date, calendar: Optional[WorkCalendar] = None) -> List[date]:
    """
    List working days between two dates (both inclusive).

    Returns:
        Ordered list of working dates; empty when end < start
    """
    cal = _calendar(calendar)
    days: List[date] = []
    current = start
    while current <= end:
        if is_working_day(current, cal):
            days.append(current)
        current += timedelta(days=1)
    return days


def count_workdays(start: date, end: date, calendar: Optional[WorkCalendar] = None) -> int:
    return len(working_days(start, end, calendar))


def add_workdays(start: date, days: int, calendar: Optional[WorkCalendar] = None) -> date:
    """Move forward ``days`` working days from ``start`` (start itself is not counted)."""
    cal = _calendar(calendar)
    if cal.include_weekends is False and len(cal.weekend_days) >= 7:
        raise ValueError("calendar has no working weekdays")
    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if is_working_day(result, cal):
            added += 1
    return result


def calculate_end_date(start: date, duration_in_workdays: int, calendar: Optional[WorkCalendar] = None) -> date:
    """End date of a task starting on ``start`` and lasting ``duration_in_workdays``."""
    if duration_in_workdays <= 0:
        return start
    return add_workdays(start, duration_in_workdays - 1, calendar)


def distribute_over_workdays(
    start: date,
    end: date,
    total_quantity: float,
    calendar: Optional[WorkCalendar] = None,
) -> List[Tuple[date, float]]:
    """
    Spread a quantity over the working days of a range.

    Every day gets the integer base share, the first ``floor(remainder)`` days
    get one extra unit, and any fractional leftover goes on the last day, so
    the day quantities always add up to exactly ``total_quantity``.

    Returns:
        List of (date, quantity) pairs; empty when the range has no working days
    """
    days = working_days(start, end, calendar)
    if not days:
        return []

    total = Decimal(str(total_quantity))
    count = len(days)
    base = total // count
    remainder = total - base * count
    extra_units = int(remainder // 1)
    fraction = remainder - extra_units

    shares = [base + 1 if index < extra_units else base for index in range(count)]
    shares[-1] += fraction
    return [(day, float(share)) for day, share in zip(days, shares)]
