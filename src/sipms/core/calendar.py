"""
Calendar arithmetic for SIP schedules.

Pure date functions: week/month/quarter offsets with end-of-month clamping,
comparisons and formatting. Month arithmetic never overflows into the next
month: Jan 31 + 1 month is Feb 28 (Feb 29 in a leap year).
"""

from datetime import date, timedelta

from sipms.core.models import SIPFrequency

_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def is_leap_year(year: int) -> bool:
    """Gregorian leap year rule."""
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month (1-12)."""
    if month == 2 and is_leap_year(year):
        return 29
    return _DAYS_IN_MONTH[month - 1]


def add_weeks(d: date, weeks: int) -> date:
    """Add (or subtract) whole weeks."""
    return d + timedelta(weeks=weeks)


def add_months(d: date, months: int) -> date:
    """
    Add calendar months, clamping the day to the target month's last day.

    Args:
        d: Starting date
        months: Months to add (may be negative)

    Returns:
        Shifted date
    """
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(d.day, days_in_month(year, month))
    return date(year, month, day)


def add_quarters(d: date, quarters: int) -> date:
    """Add quarters (3 calendar months each)."""
    return add_months(d, quarters * 3)


def is_on_or_before(a: date, b: date) -> bool:
    return a <= b


def format_date(d: date) -> str:
    """Format as YYYY-MM-DD."""
    return d.isoformat()


def next_execution_date(current: date, frequency: SIPFrequency) -> date:
    """
    Next scheduled date one frequency period after ``current``.

    The schedule is always derived from the previous scheduled date, never
    from today, so missed periods are worked off one installment at a time.
    """
    if frequency == SIPFrequency.WEEKLY:
        return add_weeks(current, 1)
    if frequency == SIPFrequency.QUARTERLY:
        return add_quarters(current, 1)
    return add_months(current, 1)
