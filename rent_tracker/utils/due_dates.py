"""Rent due date arithmetic.

Weekly and fortnightly rules store the due weekday as 1 (Sunday) to
7 (Saturday). Monthly rules store the day of month; days past the end of a
short month fall on that month's last day.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from rent_tracker.utils.errors import InvalidSchedule

WEEKLY = 'WEEKLY'
FORTNIGHTLY = 'FORTNIGHTLY'
MONTHLY = 'MONTHLY'

# Fortnightly rent weeks are counted from this Sunday, even offsets are rent weeks
FORTNIGHT_EPOCH = date(1970, 1, 4)

DEFAULT_CUTOFF_HOUR = 12


def day_of_week(value: date) -> int:
    """Weekday of ``value`` as 1 (Sunday) .. 7 (Saturday)."""
    return value.isoweekday() % 7 + 1


def is_rent_week(value: date) -> bool:
    last_sunday = value - timedelta(days=value.isoweekday() % 7)
    weeks_since_epoch = (last_sunday - FORTNIGHT_EPOCH).days // 7
    return weeks_since_epoch % 2 == 0


def validate_schedule(rent_due_day, rent_frequency):
    if rent_frequency not in (WEEKLY, FORTNIGHTLY, MONTHLY):
        raise InvalidSchedule(f"Unknown rent frequency: {rent_frequency!r}")
    if not isinstance(rent_due_day, int) or isinstance(rent_due_day, bool):
        raise InvalidSchedule(f"Rent due day must be an integer, got {rent_due_day!r}")
    upper = 31 if rent_frequency == MONTHLY else 7
    if not 1 <= rent_due_day <= upper:
        raise InvalidSchedule(
            f"Rent due day for {rent_frequency.lower()} rent must be between 1 and {upper}"
        )


def _past_cutoff(now: datetime, cutoff_hour: int) -> bool:
    return now.time() > time(cutoff_hour)


def _days_until_weekday(rent_due_day: int, today: date) -> int:
    return (rent_due_day - day_of_week(today) + 7) % 7


def calculate_rent_due_date(
    rent_due_day: int,
    rent_frequency: str,
    now: Optional[datetime] = None,
    cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
) -> date:
    """Return the next rent due date for a schedule as seen at ``now``.

    Monthly: this month's due day unless its midnight is already at or before
    ``now``, then next month's. Weekly: the next due weekday, today included
    until ``cutoff_hour``. Fortnightly: as weekly, pushed one more week when
    today is not in a rent week or today's occurrence has passed.
    """
    validate_schedule(rent_due_day, rent_frequency)
    now = now or datetime.now()
    today = now.date()

    if rent_frequency == MONTHLY:
        due = today + relativedelta(day=rent_due_day)
        if datetime.combine(due, time.min) <= now:
            due = today + relativedelta(months=1, day=rent_due_day)
        return due

    days_until_due = _days_until_weekday(rent_due_day, today)
    same_day_passed = days_until_due == 0 and _past_cutoff(now, cutoff_hour)

    if rent_frequency == WEEKLY:
        if same_day_passed:
            days_until_due += 7
        return today + timedelta(days=days_until_due)

    if not is_rent_week(today) or same_day_passed:
        days_until_due += 7
    return today + timedelta(days=days_until_due)


get_next_rent_due_date = calculate_rent_due_date


def cycle_due_date(
    rent_due_day: int,
    rent_frequency: str,
    today: date,
    cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
) -> date:
    """Due date of the cycle a daily run on ``today`` has to evaluate.

    This is the first due date on or after yesterday, i.e. the schedule as it
    looked at the very start of yesterday.
    """
    start = datetime.combine(today - timedelta(days=1), time.min)
    if rent_frequency == MONTHLY:
        # a monthly due day already counts as passed at its own midnight
        start -= timedelta(microseconds=1)
    return calculate_rent_due_date(rent_due_day, rent_frequency, now=start, cutoff_hour=cutoff_hour)


def should_check_rent(rent_due_date: date, check_date: date) -> bool:
    """Rent is checked on the day after it was due, never earlier or later."""
    if isinstance(check_date, datetime):
        check_date = check_date.date()
    return check_date == rent_due_date + timedelta(days=1)
