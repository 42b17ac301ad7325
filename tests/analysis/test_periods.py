"""
Tests for periods.py - Per-period sales breakdown

Tests cover:
1. summarize_periods() - per-period totals, spread and growth
2. overall_period_stats() - median, best/worst, growth rate, volatility
3. period_trend() - direction, strength, seasonality
4. analyze_periods() - end-to-end breakdown and tabular export
"""

import numpy as np
import pandas as pd
import pytest

from sales_factors.analysis.periods import (
    analyze_periods,
    overall_period_stats,
    period_trend,
    summarize_periods,
)
from sales_factors.errors import InsufficientData, InvalidParameter


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def three_weeks(make_series):
    """A week of 10s, a week of 20s, then three days of 30, 40, 50."""
    return make_series([10.0] * 7 + [20.0] * 7 + [30.0, 40.0, 50.0], name="sales")


def weekly_totals(totals):
    """One point per Monday so each ISO week holds exactly one value."""
    dates = pd.date_range("2024-01-01", periods=len(totals), freq="7D")
    return pd.Series(np.asarray(totals, dtype=float), index=dates)


# =============================================================================
# TEST: summarize_periods()
# =============================================================================


class TestSummarizePeriods:
    """Tests for summarize_periods()."""

    def test_weekly_breakdown(self, three_weeks):
        periods = summarize_periods(three_weeks, "weekly")
        assert [p.label for p in periods] == ["2024-W01", "2024-W02", "2024-W03"]
        assert [p.total for p in periods] == [70.0, 140.0, 120.0]
        assert [p.observations for p in periods] == [7, 7, 3]

    def test_partial_week(self, three_weeks):
        """The last week keeps its calendar end but reports observed dates."""
        last = summarize_periods(three_weeks, "weekly")[-1]
        assert last.start == pd.Timestamp("2024-01-15")
        assert last.end == pd.Timestamp("2024-01-21")
        assert last.first_date == pd.Timestamp("2024-01-15")
        assert last.last_date == pd.Timestamp("2024-01-17")
        assert last.mean == pytest.approx(40.0)
        assert last.minimum == 30.0
        assert last.maximum == 50.0
        assert last.stddev == pytest.approx(np.sqrt(200.0 / 3.0))

    def test_growth(self, three_weeks):
        """Growth compares each total with the previous period's total."""
        periods = summarize_periods(three_weeks, "weekly")
        assert periods[0].growth_pct is None
        assert periods[1].growth_pct == pytest.approx(100.0)
        assert periods[2].growth_pct == pytest.approx(-100.0 / 7.0)

    def test_growth_undefined_after_zero_total(self):
        periods = summarize_periods(weekly_totals([0.0, 10.0, 20.0]), "weekly")
        assert [p.growth_pct for p in periods] == [None, None, pytest.approx(100.0)]

    def test_monthly(self):
        s = pd.Series(
            [1.0, 3.0, 10.0],
            index=pd.to_datetime(["2024-01-05", "2024-01-20", "2024-02-10"]),
        )
        periods = summarize_periods(s, "monthly")
        assert [p.label for p in periods] == ["2024-01", "2024-02"]
        assert [p.total for p in periods] == [4.0, 10.0]
        assert periods[1].end == pd.Timestamp("2024-02-29")
        assert periods[1].growth_pct == pytest.approx(150.0)

    def test_daily_periods_are_single_days(self, make_series):
        periods = summarize_periods(make_series([5.0, 10.0]), "daily")
        assert [p.observations for p in periods] == [1, 1]
        assert periods[1].stddev == 0.0
        assert periods[1].growth_pct == pytest.approx(100.0)

    def test_empty(self):
        empty = pd.Series([], dtype=float, index=pd.DatetimeIndex([]))
        assert summarize_periods(empty) == []

    def test_unknown_granularity(self, three_weeks):
        with pytest.raises(InvalidParameter):
            summarize_periods(three_weeks, "quarterly")


# =============================================================================
# TEST: overall_period_stats()
# =============================================================================


class TestOverallPeriodStats:
    """Tests for overall_period_stats()."""

    def test_totals_distribution(self, three_weeks):
        overall = overall_period_stats(summarize_periods(three_weeks))
        assert overall.mean == pytest.approx(110.0)
        assert overall.median == pytest.approx(120.0)
        assert overall.stddev == pytest.approx(np.sqrt(2600.0 / 3.0))
        assert overall.best_period == "2024-W02"
        assert overall.worst_period == "2024-W01"
        assert overall.growth_rate == pytest.approx(50.0 / 70.0 * 100)
        assert overall.volatility == pytest.approx(np.sqrt(2600.0 / 3.0) / 110.0)

    def test_single_period_has_no_growth(self):
        overall = overall_period_stats(summarize_periods(weekly_totals([5.0])))
        assert overall.growth_rate is None
        assert overall.stddev == 0.0
        assert overall.best_period == overall.worst_period == "2024-W01"

    def test_ties_go_to_earliest(self):
        overall = overall_period_stats(summarize_periods(weekly_totals([3.0, 1.0, 3.0, 1.0])))
        assert overall.best_period == "2024-W01"
        assert overall.worst_period == "2024-W02"

    def test_empty(self):
        with pytest.raises(InsufficientData):
            overall_period_stats([])


# =============================================================================
# TEST: period_trend()
# =============================================================================


class TestPeriodTrend:
    """Tests for period_trend()."""

    def test_upward(self, three_weeks):
        trend = period_trend(summarize_periods(three_weeks))
        assert trend.direction == "up"
        assert trend.strength == 1.0
        assert trend.average_growth == pytest.approx((100.0 - 100.0 / 7.0) / 2)
        assert trend.positive_periods == 1
        assert trend.negative_periods == 1
        assert trend.peak_period == "2024-W02"
        assert trend.low_period == "2024-W01"
        assert trend.seasonality is None

    def test_downward_with_earlier_demand(self):
        """Falling totals concentrate demand in the first half."""
        trend = period_trend(summarize_periods(weekly_totals([100, 80, 60, 40])))
        assert trend.direction == "down"
        assert trend.strength == 1.0
        assert trend.negative_periods == 3
        assert trend.seasonality == "earlier_half_heavier"

    def test_flat(self):
        """Small alternating growth averages out to a flat trend."""
        trend = period_trend(summarize_periods(weekly_totals([100, 101, 100, 101])))
        growths = [1.0, -100.0 / 101.0, 1.0]
        average = sum(growths) / 3
        assert trend.direction == "flat"
        assert trend.average_growth == pytest.approx(average)
        assert trend.strength == pytest.approx(1.0 - average / 2.0)
        assert trend.seasonality == "none"

    def test_later_half_heavier(self):
        trend = period_trend(summarize_periods(weekly_totals([50, 50, 80, 80])))
        assert trend.seasonality == "later_half_heavier"

    def test_single_period(self):
        trend = period_trend(summarize_periods(weekly_totals([5.0])))
        assert trend.direction == "insufficient_data"
        assert trend.average_growth is None


# =============================================================================
# TEST: analyze_periods()
# =============================================================================


class TestAnalyzePeriods:
    """Tests for analyze_periods()."""

    def test_end_to_end(self, three_weeks):
        analysis = analyze_periods(three_weeks, granularity="weekly", name="widget")
        assert analysis.name == "widget"
        assert analysis.granularity == "weekly"
        assert len(analysis.periods) == 3
        assert analysis.overall.best_period == "2024-W02"
        assert analysis.trend.direction == "up"

    def test_to_frame(self, three_weeks):
        frame = analyze_periods(three_weeks).to_frame()
        assert list(frame.index) == ["2024-W01", "2024-W02", "2024-W03"]
        assert frame.loc["2024-W02", "total"] == 140.0
        assert "growth_pct" in frame.columns

    def test_empty_series(self):
        empty = pd.Series([], dtype=float, index=pd.DatetimeIndex([]))
        with pytest.raises(InsufficientData):
            analyze_periods(empty)

    def test_input_not_modified(self, three_weeks):
        before = three_weeks.copy()
        analyze_periods(three_weeks, granularity="monthly")
        assert three_weeks.equals(before)
