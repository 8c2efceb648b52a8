"""
Tests for occurrence generation.
"""

import pytest
from datetime import date

from daylight.occurrences import expand, generate, is_occurrence, next_occurrence
from daylight.recurrence import (
    daily,
    monthly_by_day,
    monthly_nth_weekday,
    weekly,
    yearly,
)
from daylight.rrule_codec import decode


def d(text: str) -> date:
    return date.fromisoformat(text)


@pytest.mark.unit
class TestDaily:
    def test_every_three_days(self):
        rule = daily(d("2026-02-01"), interval=3)
        assert generate(rule, d("2026-02-01"), d("2026-02-10")) == [
            d("2026-02-01"),
            d("2026-02-04"),
            d("2026-02-07"),
            d("2026-02-10"),
        ]

    def test_window_before_start(self):
        rule = daily(d("2026-02-05"))
        assert generate(rule, d("2026-02-01"), d("2026-02-06")) == [
            d("2026-02-05"),
            d("2026-02-06"),
        ]

    def test_interval_counts_from_start_not_window(self):
        rule = daily(d("2026-02-01"), interval=3)
        assert generate(rule, d("2026-02-05"), d("2026-02-08")) == [d("2026-02-07")]

    def test_end_date_is_inclusive(self):
        rule = daily(d("2026-02-01"), end_date=d("2026-02-03"))
        assert generate(rule, d("2026-01-01"), d("2026-12-31")) == [
            d("2026-02-01"),
            d("2026-02-02"),
            d("2026-02-03"),
        ]

    def test_empty_window(self):
        rule = daily(d("2026-02-01"))
        assert generate(rule, d("2026-02-10"), d("2026-02-01")) == []


@pytest.mark.unit
class TestWeekly:
    def test_mon_wed_fri(self):
        rule = weekly(d("2026-02-02"), ["mon", "wed", "fri"])
        assert generate(rule, d("2026-02-02"), d("2026-02-08")) == [
            d("2026-02-02"),
            d("2026-02-04"),
            d("2026-02-06"),
        ]

    def test_every_other_week_uses_whole_weeks_from_start(self):
        # started on a Wednesday: the Monday five days later is still in week 0
        rule = weekly(d("2026-02-04"), ["mon", "wed"], interval=2)
        assert generate(rule, d("2026-02-04"), d("2026-02-22")) == [
            d("2026-02-04"),
            d("2026-02-09"),
            d("2026-02-18"),
        ]

    def test_weekday_match_can_fail_interval(self):
        rule = weekly(d("2026-02-02"), ["mon"], interval=2)
        assert is_occurrence(rule, d("2026-02-16"))
        assert not is_occurrence(rule, d("2026-02-09"))


@pytest.mark.unit
class TestMonthly:
    def test_day_31_skips_short_months(self):
        rule = monthly_by_day(d("2026-01-31"), 31)
        found = generate(rule, d("2026-01-01"), d("2026-04-30"))
        assert d("2026-01-31") in found
        assert d("2026-03-31") in found
        assert not [x for x in found if x.month in (2, 4)]
        assert found == [d("2026-01-31"), d("2026-03-31")]

    def test_last_friday(self):
        rule = monthly_nth_weekday(d("2026-01-01"), -1, "fri")
        assert generate(rule, d("2026-01-01"), d("2026-03-31")) == [
            d("2026-01-30"),
            d("2026-02-27"),
            d("2026-03-27"),
        ]

    def test_second_tuesday(self):
        rule = monthly_nth_weekday(d("2026-01-01"), 2, "tue")
        assert generate(rule, d("2026-01-01"), d("2026-03-31")) == [
            d("2026-01-13"),
            d("2026-02-10"),
            d("2026-03-10"),
        ]

    def test_fifth_weekday_only_in_long_months(self):
        rule = monthly_nth_weekday(d("2026-01-01"), 5, "fri")
        assert generate(rule, d("2026-01-01"), d("2026-03-31")) == [d("2026-01-30")]

    def test_month_interval(self):
        rule = monthly_by_day(d("2026-01-15"), interval=2)
        assert generate(rule, d("2026-01-01"), d("2026-06-30")) == [
            d("2026-01-15"),
            d("2026-03-15"),
            d("2026-05-15"),
        ]

    def test_monthly_without_mode_never_fires(self):
        rule = decode("DTSTART:20260101;FREQ=MONTHLY")
        assert generate(rule, d("2026-01-01"), d("2026-12-31")) == []


@pytest.mark.unit
class TestYearly:
    def test_anniversary(self):
        rule = yearly(d("2026-03-14"))
        assert generate(rule, d("2026-01-01"), d("2028-12-31")) == [
            d("2026-03-14"),
            d("2027-03-14"),
            d("2028-03-14"),
        ]

    def test_feb_29_only_in_leap_years(self):
        rule = yearly(d("2024-02-29"))
        assert not is_occurrence(rule, d("2025-02-28"))
        assert not is_occurrence(rule, d("2025-03-01"))
        assert is_occurrence(rule, d("2028-02-29"))


@pytest.mark.unit
class TestCeiling:
    def test_truncation_is_reported(self):
        rule = daily(d("2026-01-01"))
        found = expand(rule, d("2026-01-01"), d("2026-12-31"), max_iterations=10)
        assert found.truncated
        assert len(found.dates) == 10
        assert found.stopped_at == d("2026-01-11")

    def test_full_window_is_not_truncated(self):
        rule = daily(d("2026-01-01"))
        found = expand(rule, d("2026-01-01"), d("2026-01-10"), max_iterations=10)
        assert not found.truncated
        assert found.stopped_at is None

    def test_generate_returns_partial_list(self, daylight_home):
        rule = daily(d("2026-01-01"))
        found = generate(rule, d("2026-01-01"), d("2040-01-01"))
        assert len(found) == 5000
        assert found[-1] == d("2039-09-09")
        assert list((daylight_home / "logs").glob("log_*.md"))


@pytest.mark.unit
class TestNextOccurrence:
    def test_next_weekly(self):
        rule = weekly(d("2026-02-02"), ["mon", "fri"])
        assert next_occurrence(rule, d("2026-02-02")) == d("2026-02-06")

    def test_next_before_start(self):
        rule = yearly(d("2027-06-01"))
        assert next_occurrence(rule, d("2026-02-05")) == d("2027-06-01")

    def test_next_leap_day(self):
        rule = yearly(d("2024-02-29"))
        assert next_occurrence(rule, d("2024-03-01")) == d("2028-02-29")

    def test_none_after_end(self):
        rule = daily(d("2026-02-01"), end_date=d("2026-02-03"))
        assert next_occurrence(rule, d("2026-02-03")) is None
