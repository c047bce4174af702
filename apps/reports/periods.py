"""
Reporting periods.

A period is a calendar window in the dealership's local time zone
(``settings.TIME_ZONE``) that always ends today at 23:59:59.999999:

    monthly  - from the 1st of the current month
    6months  - from the 1st of the month five months back (six calendar
               months including the current one)
    yearly   - from January 1st of the current year
"""

from datetime import datetime

from django.utils import timezone

from .exceptions import InvalidPeriodError

MONTHLY = 'monthly'
SIX_MONTHS = '6months'
YEARLY = 'yearly'

PERIODS = (MONTHLY, SIX_MONTHS, YEARLY)


def local_now(now=None) -> datetime:
    """``now`` (default: current time) as an aware local datetime."""
    if now is None:
        return timezone.localtime()
    if timezone.is_naive(now):
        now = timezone.make_aware(now)
    return timezone.localtime(now)


def get_period_range(period, now=None):
    """
    Return ``(start, end)`` aware datetimes for ``period``.

    Args:
        period: One of ``PERIODS``.
        now: Reference time; defaults to the current time.

    Raises:
        InvalidPeriodError: Unknown period selector.

    Example::

        start, end = get_period_range('6months', now=datetime(2025, 3, 15, 10, 0))
        # start: 2024-10-01 00:00:00, end: 2025-03-15 23:59:59.999999
    """
    if period not in PERIODS:
        raise InvalidPeriodError(
            f"Invalid period: {period!r}. Must be one of: {', '.join(PERIODS)}",
            field='period',
        )

    now = local_now(now)
    midnight = {'hour': 0, 'minute': 0, 'second': 0, 'microsecond': 0}

    if period == MONTHLY:
        start = now.replace(day=1, **midnight)
    elif period == SIX_MONTHS:
        year, month = divmod(now.year * 12 + now.month - 1 - 5, 12)
        start = now.replace(year=year, month=month + 1, day=1, **midnight)
    else:
        start = now.replace(month=1, day=1, **midnight)

    end = now.replace(hour=23, minute=59, second=59, microsecond=999999)
    return start, end
