"""Tests for billing cadence classification."""

import pytest
from datetime import date, timedelta

from wastewatch.detection.context import Occurrence, Series
from wastewatch.detection.frequency import classify_frequency, classify_series, day_gaps
from wastewatch.models.subscription import Frequency


def _spaced(start, gaps):
    dates = [start]
    for gap in gaps:
        dates.append(dates[-1] + timedelta(days=gap))
    return dates


class TestClassifyFrequency:
    """Tests for classify_frequency."""

    def test_monthly(self):
        assert classify_frequency([date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 2)]) == Frequency.monthly

    def test_weekly(self):
        assert classify_frequency([date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]) == Frequency.weekly

    def test_irregular_is_none(self):
        assert classify_frequency([date(2024, 1, 1), date(2024, 1, 20), date(2024, 4, 1)]) is None

    def test_yearly(self):
        assert classify_frequency([date(2022, 3, 1), date(2023, 3, 1), date(2024, 3, 1)]) == Frequency.yearly

    def test_single_date_is_none(self):
        assert classify_frequency([date(2024, 1, 1)]) is None

    def test_empty_is_none(self):
        assert classify_frequency([]) is None

    def test_unsorted_input(self):
        assert classify_frequency([date(2024, 3, 2), date(2024, 1, 1), date(2024, 2, 1)]) == Frequency.monthly

    @pytest.mark.parametrize("gap,expected", [
        (4, None),
        (5, Frequency.weekly),
        (9, Frequency.weekly),
        (10, None),
        (22, None),
        (23, Frequency.monthly),
        (36, Frequency.monthly),
        (37, None),
        (354, None),
        (355, Frequency.yearly),
        (375, Frequency.yearly),
        (376, None),
    ])
    def test_window_edges(self, gap, expected):
        assert classify_frequency(_spaced(date(2024, 1, 1), [gap, gap])) == expected

    def test_majority_wins(self):
        # Two of three gaps monthly
        assert classify_frequency(_spaced(date(2024, 1, 1), [30, 31, 60])) == Frequency.monthly

    def test_half_is_not_majority(self):
        assert classify_frequency(_spaced(date(2024, 1, 1), [30, 60])) is None


class TestDayGaps:

    def test_gaps(self):
        assert day_gaps([date(2024, 1, 1), date(2024, 1, 31), date(2024, 3, 1)]) == [30, 30]


class TestClassifySeries:

    def test_sets_frequency(self):
        series = Series(
            merchant="Netflix",
            account_id="acc",
            occurrences=[
                Occurrence(transaction_id=str(i), date=d, amount=None, category_id=None)
                for i, d in enumerate([date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)])
            ],
        )
        classify_series([series])
        assert series.frequency == Frequency.monthly
