import pytest
from datetime import datetime, timezone as dt_timezone

from django.test import override_settings
from django.utils import timezone

from apps.reports.exceptions import InvalidPeriodError
from apps.reports.periods import get_period_range, MONTHLY, SIX_MONTHS, YEARLY


def local(*args):
    return timezone.make_aware(datetime(*args))


class TestGetPeriodRange:

    def test_monthly(self):
        start, end = get_period_range(MONTHLY, now=local(2025, 3, 15, 10, 30))

        assert start == local(2025, 3, 1)
        assert end == local(2025, 3, 15, 23, 59, 59, 999999)

    def test_six_months_spans_year_boundary(self):
        start, end = get_period_range(SIX_MONTHS, now=local(2025, 3, 15, 10, 30))

        assert start == local(2024, 10, 1)
        assert end.date() == local(2025, 3, 15).date()

    def test_six_months_in_june(self):
        start, _ = get_period_range(SIX_MONTHS, now=local(2025, 6, 30, 8, 0))
        assert start == local(2025, 1, 1)

    def test_yearly(self):
        start, end = get_period_range(YEARLY, now=local(2025, 3, 15, 10, 30))

        assert start == local(2025, 1, 1)
        assert end == local(2025, 3, 15, 23, 59, 59, 999999)

    def test_first_day_of_month(self):
        start, end = get_period_range(MONTHLY, now=local(2025, 3, 1, 0, 0))

        assert start == local(2025, 3, 1)
        assert end.date() == start.date()

    def test_naive_reference_time_is_local(self):
        start, _ = get_period_range(MONTHLY, now=datetime(2025, 3, 15, 10, 30))
        assert start == local(2025, 3, 1)

    @override_settings(TIME_ZONE='Asia/Phnom_Penh')
    def test_uses_local_calendar(self):
        # 2025-02-28 20:00 UTC is already March 1st in Phnom Penh
        utc_now = datetime(2025, 2, 28, 20, 0, tzinfo=dt_timezone.utc)

        start, end = get_period_range(MONTHLY, now=utc_now)

        assert timezone.localtime(start).date().isoformat() == '2025-03-01'
        assert timezone.localtime(end).date().isoformat() == '2025-03-01'

    def test_defaults_to_today(self):
        _, end = get_period_range(YEARLY)
        assert timezone.localtime(end).date() == timezone.localdate()

    @pytest.mark.parametrize('period', ['weekly', '', None, 'MONTHLY'])
    def test_invalid_period(self, period):
        with pytest.raises(InvalidPeriodError) as exc:
            get_period_range(period)
        assert exc.value.field == 'period'
