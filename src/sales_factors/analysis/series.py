"""
Series Alignment and Aggregation

Date-keyed series are plain pandas Series with a strictly increasing
DatetimeIndex and float values. Missing dates are simply absent: nothing
here ever zero-fills or interpolates a gap.

Key features:
- Validation/normalization of caller-supplied series
- Lagged alignment of two series on common dates
- Daily / ISO-weekly / monthly bucketing by sum, mean or last value
- Stationarity transforms on date-keyed series
- Summary statistics
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from .. import config
from ..errors import DegenerateInput, InsufficientData, InvalidParameter
from ..models import AggregatedPeriod, AggregatedSeries, SeriesSummary
from .primitives import detrend, first_difference

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

def ensure_series(data: Any, name: Optional[str] = None) -> pd.Series:
    """
    Build a validated date-keyed float Series.

    Args:
        data: pandas Series with date-like index, a {date: value} mapping,
            or an iterable of (date, value) pairs
        name: Optional series name (defaults to the input Series' name)

    Returns:
        New Series with a midnight-normalized DatetimeIndex sorted ascending

    Raises:
        InvalidParameter: If dates cannot be parsed or repeat (two
            timestamps on the same calendar day count as a repeat)
        DegenerateInput: If any value is NaN or infinite
    """
    if isinstance(data, pd.Series):
        series = data.copy()
    elif isinstance(data, Mapping):
        series = pd.Series(dict(data))
    else:
        pairs = list(data)
        if pairs:
            dates, values = zip(*pairs)
        else:
            dates, values = (), ()
        series = pd.Series(list(values), index=list(dates))

    try:
        index = pd.DatetimeIndex(pd.to_datetime(series.index)).normalize()
    except (TypeError, ValueError) as e:
        raise InvalidParameter(f"Series index is not date-like: {e}") from e

    try:
        values = series.to_numpy(dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidParameter(f"Series values are not numeric: {e}") from e

    result = pd.Series(values, index=index, name=name if name is not None else series.name)

    if not result.index.is_unique:
        dupes = result.index[result.index.duplicated()].unique()
        raise InvalidParameter(
            f"Series has duplicate dates: {[d.strftime('%Y-%m-%d') for d in dupes[:5]]}"
        )
    if not np.all(np.isfinite(result.to_numpy())):
        raise DegenerateInput("Series contains NaN or infinite values")

    if not result.index.is_monotonic_increasing:
        result = result.sort_index()

    return result


def _check_granularity(granularity: str) -> None:
    if granularity not in config.GRANULARITIES:
        raise InvalidParameter(
            f"Unknown granularity '{granularity}'. Expected one of {config.GRANULARITIES}"
        )


# =============================================================================
# ALIGNMENT
# =============================================================================

@dataclass(frozen=True)
class AlignedPair:
    """Paired values; dates are x's dates."""
    dates: pd.DatetimeIndex
    x: np.ndarray
    y: np.ndarray

    @property
    def n(self) -> int:
        return int(self.x.size)


def shift_dates(
    dates: pd.DatetimeIndex,
    lag: int,
    granularity: str = "daily",
) -> pd.DatetimeIndex:
    """Move dates forward by lag periods (backward for negative lag)."""
    _check_granularity(granularity)
    if lag == 0:
        return dates
    if granularity == "daily":
        return dates + pd.Timedelta(days=lag)
    if granularity == "weekly":
        return dates + pd.Timedelta(days=7 * lag)
    return dates + pd.DateOffset(months=lag)


def align(
    x: Any,
    y: Any,
    lag: int = 0,
    granularity: str = "daily",
) -> AlignedPair:
    """
    Pair x's value at date d with y's value at d + lag periods.

    Positive lag means x is hypothesized to lead y; negative lag means y
    leads x. Dates with no partner after shifting are dropped, as are
    monthly shifts that land past the end of a shorter month (Jan 31 has
    no partner one month later).

    Args:
        x: Leading-candidate series
        y: Following-candidate series
        lag: Signed offset in periods of the granularity
        granularity: "daily", "weekly" (7 days) or "monthly" (calendar month)

    Returns:
        AlignedPair with x's dates and the paired value arrays
    """
    if int(lag) != lag:
        raise InvalidParameter(f"Lag must be an integer, got {lag}")
    xs = ensure_series(x)
    ys = ensure_series(y)

    targets = shift_dates(xs.index, int(lag), granularity)
    paired = ys.reindex(targets)
    mask = paired.notna().to_numpy()
    if granularity == "monthly":
        # Days clipped to a shorter month would share one y value
        mask &= np.asarray(targets.day == xs.index.day)

    return AlignedPair(
        dates=xs.index[mask],
        x=xs.to_numpy()[mask],
        y=paired.to_numpy()[mask],
    )


def restrict(series: Any, start: Any, end: Any) -> pd.Series:
    """Copy of the series limited to start <= date <= end."""
    s = ensure_series(series)
    start, end = pd.Timestamp(start), pd.Timestamp(end)
    if end < start:
        raise InvalidParameter(f"Empty date range: {start.date()} > {end.date()}")
    return s.loc[(s.index >= start) & (s.index <= end)].copy()


# =============================================================================
# AGGREGATION
# =============================================================================

def _period_bounds(index: pd.DatetimeIndex, granularity: str):
    days = index.normalize()
    if granularity == "daily":
        return days, days
    if granularity == "weekly":
        starts = days - pd.to_timedelta(days.weekday, unit="D")
        return starts, starts + pd.Timedelta(days=6)
    starts = days.to_period("M").to_timestamp()
    return starts, starts + pd.offsets.MonthEnd(0)


def _period_label(start: pd.Timestamp, granularity: str) -> str:
    if granularity == "daily":
        return start.strftime("%Y-%m-%d")
    if granularity == "weekly":
        iso = start.isocalendar()
        return f"{iso[0]}-W{iso[1]:02d}"
    return start.strftime("%Y-%m")


def aggregate(
    series: Any,
    granularity: str = "weekly",
    method: str = "sum",
) -> AggregatedSeries:
    """
    Bucket a daily series into contiguous, non-overlapping periods.

    Weekly periods are ISO weeks (Monday to Sunday, labelled like
    "2024-W03"), monthly periods are calendar months ("2024-01"), daily
    periods are single dates. Periods without any source point are omitted.

    Args:
        series: Date-keyed series
        granularity: "daily", "weekly" or "monthly"
        method: "sum", "mean" or "last" (last value in the period)

    Returns:
        AggregatedSeries in chronological order
    """
    _check_granularity(granularity)
    if method not in config.AGGREGATION_METHODS:
        raise InvalidParameter(
            f"Unknown aggregation method '{method}'. Expected one of {config.AGGREGATION_METHODS}"
        )

    s = ensure_series(series)
    if s.empty:
        return AggregatedSeries(periods=(), granularity=granularity, method=method)

    starts, ends = _period_bounds(s.index, granularity)
    grouped = s.groupby(starts)
    if method == "sum":
        values = grouped.sum()
    elif method == "mean":
        values = grouped.mean()
    else:
        values = grouped.last()

    end_by_start = pd.Series(ends, index=starts).groupby(level=0).first()

    periods = tuple(
        AggregatedPeriod(
            label=_period_label(start, granularity),
            start=start,
            end=end_by_start.loc[start],
            value=float(value),
        )
        for start, value in values.sort_index().items()
    )

    logger.debug(
        "Aggregated %d points into %d %s periods (%s)",
        len(s), len(periods), granularity, method,
    )
    return AggregatedSeries(periods=periods, granularity=granularity, method=method)


# =============================================================================
# TRANSFORMS
# =============================================================================

def apply_transform(series: Any, transform: str = "none") -> pd.Series:
    """
    Apply a stationarity-inducing transform to a date-keyed series.

    "difference" keys each difference by the later date; "detrend" keeps
    all dates. The input is never modified.
    """
    if transform not in config.TRANSFORMS:
        raise InvalidParameter(
            f"Unknown transform '{transform}'. Expected one of {config.TRANSFORMS}"
        )
    s = ensure_series(series)
    if transform == "difference":
        return first_difference(s)
    if transform == "detrend":
        return detrend(s)
    return s


# =============================================================================
# SUMMARY
# =============================================================================

def summarize(series: Any) -> SeriesSummary:
    """Count, location, spread and range of a series."""
    s = ensure_series(series)
    if s.empty:
        raise InsufficientData("Cannot summarize an empty series")
    values = s.to_numpy()
    return SeriesSummary(
        count=int(values.size),
        mean=float(values.mean()),
        median=float(np.median(values)),
        stddev=float(values.std(ddof=1)) if values.size > 1 else 0.0,
        minimum=float(values.min()),
        maximum=float(values.max()),
        total=float(values.sum()),
        start=s.index[0],
        end=s.index[-1],
    )
