"""
Period Sales Analysis

Breaks a daily sales series into daily, ISO-weekly or monthly periods and
reports, per period and overall:

- Totals, means, ranges and spread of the points inside each period
- Period-over-period growth of the totals
- Best/worst period, overall growth rate and volatility of the totals
- Trend direction and a coarse first-half vs second-half seasonality check

Periods are the same buckets analysis/series.aggregate() produces; periods
without any observed point are omitted, so growth compares each period with
the previous observed one.
"""

import logging
from typing import Any, Optional

import numpy as np
import pandas as pd

from .. import config
from ..errors import InsufficientData
from ..models import PeriodAnalysis, PeriodOverallStats, PeriodStats, PeriodTrend
from .series import _check_granularity, _period_bounds, _period_label, ensure_series

logger = logging.getLogger(__name__)


def _optional(value: float) -> Optional[float]:
    return None if pd.isna(value) else float(value)


# =============================================================================
# PER-PERIOD STATISTICS
# =============================================================================

def summarize_periods(series: Any, granularity: str = "weekly") -> list[PeriodStats]:
    """
    Per-period statistics of a sales series.

    Args:
        series: Date-keyed sales series
        granularity: "daily", "weekly" or "monthly"

    Returns:
        PeriodStats in chronological order
    """
    _check_granularity(granularity)
    s = ensure_series(series)
    if s.empty:
        return []

    starts, ends = _period_bounds(s.index, granularity)
    frame = pd.DataFrame({
        "value": s.to_numpy(),
        "date": s.index,
        "start": starts,
        "end": ends,
    })
    table = frame.groupby("start").agg(
        end=("end", "first"),
        first_date=("date", "min"),
        last_date=("date", "max"),
        observations=("value", "count"),
        total=("value", "sum"),
        mean=("value", "mean"),
        minimum=("value", "min"),
        maximum=("value", "max"),
        stddev=("value", lambda v: float(v.to_numpy().std())),
    ).sort_index()

    previous = table["total"].shift(1)
    table["growth_pct"] = (table["total"] - previous) / previous.where(previous > 0) * 100

    return [
        PeriodStats(
            label=_period_label(row.Index, granularity),
            start=row.Index,
            end=row.end,
            first_date=row.first_date,
            last_date=row.last_date,
            observations=int(row.observations),
            total=float(row.total),
            mean=float(row.mean),
            minimum=float(row.minimum),
            maximum=float(row.maximum),
            stddev=float(row.stddev),
            growth_pct=_optional(row.growth_pct),
        )
        for row in table.itertuples()
    ]


# =============================================================================
# OVERALL STATISTICS & TREND
# =============================================================================

def overall_period_stats(periods: list[PeriodStats]) -> PeriodOverallStats:
    """
    Distribution of period totals.

    growth_rate compares the last period with the first (percent) and is
    None with a single period or a non-positive first total. volatility is
    the coefficient of variation of the totals, None when their mean is not
    positive. Ties for best/worst go to the earliest period.
    """
    if not periods:
        raise InsufficientData("Overall statistics need at least one period")

    totals = np.array([p.total for p in periods])
    average = float(totals.mean())
    spread = float(totals.std())

    growth_rate = None
    if len(periods) >= 2 and totals[0] > 0:
        growth_rate = float((totals[-1] - totals[0]) / totals[0] * 100)

    return PeriodOverallStats(
        mean=average,
        median=float(np.median(totals)),
        stddev=spread,
        best_period=periods[int(np.argmax(totals))].label,
        worst_period=periods[int(np.argmin(totals))].label,
        growth_rate=growth_rate,
        volatility=spread / average if average > 0 else None,
    )


def _seasonality(totals: np.ndarray) -> Optional[str]:
    if totals.size < config.MIN_SEASONALITY_PERIODS:
        return None
    mid = totals.size // 2
    first_half = float(totals[:mid].mean())
    second_half = float(totals[mid:].mean())
    if first_half <= 0:
        return None
    shift = (second_half - first_half) / first_half * 100
    if shift > config.SEASONALITY_SHIFT_PCT:
        return "later_half_heavier"
    if shift < -config.SEASONALITY_SHIFT_PCT:
        return "earlier_half_heavier"
    return "none"


def period_trend(periods: list[PeriodStats]) -> PeriodTrend:
    """
    Trend of the period totals from their average period-over-period growth.

    Average growth above TREND_GROWTH_THRESHOLD_PCT is "up", below its
    negative is "down", anything in between "flat". Strength scales with
    |growth| for up/down and with closeness to zero for flat, both in [0, 1].
    Periods without a defined growth are left out of the average; with none
    left (or fewer than two periods) the direction is "insufficient_data".
    """
    if not periods:
        raise InsufficientData("Trend analysis needs at least one period")

    totals = np.array([p.total for p in periods])
    peak = periods[int(np.argmax(totals))].label
    low = periods[int(np.argmin(totals))].label

    growths = [p.growth_pct for p in periods[1:] if p.growth_pct is not None]
    if not growths:
        return PeriodTrend(
            direction="insufficient_data",
            strength=0.0,
            average_growth=None,
            positive_periods=0,
            negative_periods=0,
            peak_period=peak,
            low_period=low,
        )

    average_growth = float(np.mean(growths))
    threshold = config.TREND_GROWTH_THRESHOLD_PCT
    if average_growth > threshold:
        direction = "up"
        strength = min(average_growth / config.TREND_FULL_STRENGTH_PCT, 1.0)
    elif average_growth < -threshold:
        direction = "down"
        strength = min(-average_growth / config.TREND_FULL_STRENGTH_PCT, 1.0)
    else:
        direction = "flat"
        strength = 1.0 - min(abs(average_growth) / threshold, 1.0)

    return PeriodTrend(
        direction=direction,
        strength=strength,
        average_growth=average_growth,
        positive_periods=sum(1 for g in growths if g > 0),
        negative_periods=sum(1 for g in growths if g < 0),
        peak_period=peak,
        low_period=low,
        seasonality=_seasonality(totals),
    )


def analyze_periods(
    series: Any,
    granularity: str = "weekly",
    name: Optional[str] = None,
) -> PeriodAnalysis:
    """
    Period breakdown of a sales series.

    Args:
        series: Date-keyed sales series (usually daily)
        granularity: "daily", "weekly" (ISO weeks) or "monthly"
        name: Label for the analysed series (e.g. product name)

    Returns:
        PeriodAnalysis with per-period stats, overall stats and trend

    Raises:
        InsufficientData: If the series is empty
        InvalidParameter: For an unknown granularity
    """
    periods = summarize_periods(series, granularity)
    if not periods:
        raise InsufficientData("Period analysis needs a non-empty series")

    trend = period_trend(periods)
    logger.debug(
        "Period analysis (%s, %s): %d periods, trend %s",
        name or "unnamed", granularity, len(periods), trend.direction,
    )
    return PeriodAnalysis(
        periods=tuple(periods),
        overall=overall_period_stats(periods),
        trend=trend,
        granularity=granularity,
        name=name,
    )


# =============================================================================
# MODULE TEST
# =============================================================================

if __name__ == "__main__":
    print("=== Period Sales Analysis Module ===")

    rng = np.random.default_rng(5)
    dates = pd.date_range("2024-01-01", periods=84, freq="D")
    sales = pd.Series(1000 + 8 * np.arange(84) + rng.normal(0, 40, 84), index=dates)

    analysis = analyze_periods(sales, granularity="weekly", name="demo")
    print(analysis.to_frame()[["total", "mean", "growth_pct"]].round(1))
    print(f"\nBest {analysis.overall.best_period}, worst {analysis.overall.worst_period}")
    print(f"Trend: {analysis.trend.direction} (strength {analysis.trend.strength:.2f})")
    print(f"Seasonality: {analysis.trend.seasonality}")
