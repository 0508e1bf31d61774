"""
Tests for numeric and formatting helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from messagewise.helpers import (
    average,
    coefficient_of_variation,
    format_currency,
    group_by,
    idr_to_usd,
    linear_trend,
    percentage,
    percentage_change,
    round_int,
    round_value,
    usd_to_idr,
    utc_date_key,
    utc_hour,
)


class TestRounding:
    def test_rounds_half_away_from_zero(self):
        assert round_value(2.675, 2) == 2.68
        assert round_value(0.125, 2) == 0.13
        assert round_value(-1.5, 0) == -2.0
        assert round_int(2.5) == 3

    def test_default_two_decimals(self):
        assert round_value(4.11000001) == 4.11

    def test_non_finite_values_become_zero(self):
        assert round_value(float("nan")) == 0.0
        assert round_value(float("inf"), 4) == 0.0


class TestPercentages:
    def test_percentage(self):
        assert percentage(1, 3) == 33.33
        assert percentage(50, 200) == 25.0

    def test_percentage_of_zero_total(self):
        assert percentage(5, 0) == 0.0

    def test_percentage_change(self):
        assert percentage_change(110, 100) == 10.0
        assert percentage_change(50, 100) == -50.0
        assert percentage_change(5, 0) == 100.0
        assert percentage_change(0, 0) == 0.0


class TestStatistics:
    def test_average(self):
        assert average([1, 2, 3]) == 2.0
        assert average([]) == 0.0
        assert average(x for x in (4, 6)) == 5.0

    @pytest.mark.parametrize(
        "values, slope",
        [([1, 2, 3, 4], 1.0), ([4, 2, 0], -2.0), ([3, 3, 3], 0.0), ([5], 0.0), ([], 0.0)],
    )
    def test_linear_trend(self, values, slope):
        assert linear_trend(values) == pytest.approx(slope)

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([2, 2, 2]) == 0.0
        assert coefficient_of_variation([1, 3]) == pytest.approx(0.5)
        assert coefficient_of_variation([0, 0]) == 1.0
        assert coefficient_of_variation([]) == 1.0

    def test_group_by_keeps_first_seen_order(self):
        groups = group_by(["apple", "bean", "avocado", "beet"], lambda s: s[0])
        assert list(groups) == ["a", "b"]
        assert groups["a"] == ["apple", "avocado"]


class TestDates:
    def test_utc_date_key_converts_to_utc(self):
        jakarta = timezone(timedelta(hours=7))
        timestamp = datetime(2026, 3, 16, 2, 0, tzinfo=jakarta)
        assert utc_date_key(timestamp) == "2026-03-15"
        assert utc_hour(timestamp) == 19

    def test_naive_timestamps_are_treated_as_utc(self):
        timestamp = datetime(2026, 3, 16, 2, 0)
        assert utc_date_key(timestamp) == "2026-03-16"
        assert utc_hour(timestamp) == 2


class TestCurrency:
    def test_usd_idr_conversion(self):
        assert usd_to_idr(1.5) == 23550
        assert idr_to_usd(15700) == 1.0
        assert usd_to_idr(1, rate=16000) == 16000

    def test_format_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(1234567, "IDR") == "Rp 1.234.567"
        assert format_currency(0.004, "usd") == "$0.00"
