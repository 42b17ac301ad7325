"""
Sales-Factor Correlation Analysis Module

Lagged correlation between a business series (sales) and external factor
series (weather, market indices), with significance testing and
multiple-comparison control.

Key features:
- Single-lag Pearson correlation with a Student-t p-value
- Lag scans with Benjamini-Hochberg FDR correction across the scanned lags
- Sliding-window lag scans to surface time-varying lead/lag structure
- Multi-factor sweeps keeping the strongest relationships

Lag convention (used everywhere in this package):
    lag L pairs x at date d with y at date d + L periods.
    Positive L: x leads y. Negative L: y leads x.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

import numpy as np
import pandas as pd

from .. import config
from ..errors import InsufficientData, InvalidParameter
from ..models import (
    CorrelationResult,
    FactorSweepResult,
    LagScanResult,
    WindowedScanResult,
    WindowResult,
)
from .parallel import run_units, split_outcomes
from .primitives import benjamini_hochberg, pearson, student_t_pvalue
from .series import align, apply_transform, ensure_series, restrict

logger = logging.getLogger(__name__)


# =============================================================================
# INTERPRETATION
# =============================================================================

def interpret_correlation(
    r: float,
    p_value: float,
    alpha: float = config.DEFAULT_ALPHA,
) -> str:
    """
    Human-readable strength, direction and significance of r.

    Example: "strong positive correlation (significant)"
    """
    abs_r = abs(r)
    if abs_r >= config.STRONG_CORRELATION:
        strength = "strong"
    elif abs_r >= config.MODERATE_CORRELATION:
        strength = "moderate"
    else:
        strength = "weak"

    direction = "negative" if r < 0 else "positive"
    significance = "significant" if p_value < alpha else "not significant"
    return f"{strength} {direction} correlation ({significance})"


def _lag_label(lag: int) -> str:
    return f"lag={lag:+d}" if lag else "lag=0"


# =============================================================================
# SINGLE LAG
# =============================================================================

def correlate(
    x: Any,
    y: Any,
    lag: int = 0,
    factor: Optional[str] = None,
    granularity: str = "daily",
    alpha: float = config.DEFAULT_ALPHA,
    min_samples: int = config.MIN_CORRELATION_SAMPLES,
) -> CorrelationResult:
    """
    Pearson correlation of x and y at one lag.

    Args:
        x: Date-keyed series hypothesized to lead at positive lag
        y: Date-keyed series
        lag: Signed lag in periods (positive: x leads y)
        factor: Label stored on the result (default: "lag=+L")
        granularity: Period unit for the lag
        alpha: Significance level used in the interpretation
        min_samples: Minimum aligned pairs (never below 3)

    Returns:
        CorrelationResult without an adjusted p-value

    Raises:
        InsufficientData: If fewer than min_samples pairs align
        DegenerateInput: If either aligned side has zero variance
    """
    minimum = max(config.MIN_CORRELATION_SAMPLES, min_samples)
    pair = align(x, y, lag=lag, granularity=granularity)
    if pair.n < minimum:
        raise InsufficientData(
            f"Only {pair.n} aligned pairs at lag {lag}; need at least {minimum}"
        )

    r = pearson(pair.x, pair.y)
    p = student_t_pvalue(r, pair.n)

    return CorrelationResult(
        factor=factor if factor is not None else _lag_label(lag),
        lag=int(lag),
        coefficient=r,
        p_value=p,
        n=pair.n,
        interpretation=interpret_correlation(r, p, alpha),
        granularity=granularity,
    )


# =============================================================================
# LAG SCAN
# =============================================================================

def _rank_key(result: CorrelationResult):
    # |r| descending, then the more immediate lag, then x-leads before y-leads
    return (-round(abs(result.coefficient), 12), abs(result.lag), -result.lag)


def _with_adjusted(results: list[CorrelationResult], alpha: float) -> list[CorrelationResult]:
    adjusted = benjamini_hochberg([r.p_value for r in results])
    return [
        CorrelationResult(
            factor=r.factor,
            lag=r.lag,
            coefficient=r.coefficient,
            p_value=r.p_value,
            n=r.n,
            interpretation=interpret_correlation(r.coefficient, float(p_adj), alpha),
            adjusted_p_value=float(p_adj),
            granularity=r.granularity,
        )
        for r, p_adj in zip(results, adjusted)
    ]


def scan_lags(
    x: Any,
    y: Any,
    max_lag: int = config.DEFAULT_MAX_LAG,
    factor: Optional[str] = None,
    granularity: str = "daily",
    alpha: float = config.DEFAULT_ALPHA,
    min_samples: int = config.MIN_CORRELATION_SAMPLES,
    transform: str = "none",
    max_workers: int = config.DEFAULT_MAX_WORKERS,
) -> LagScanResult:
    """
    Correlate x and y at every lag in [-max_lag, +max_lag].

    Lags that cannot be computed (too few aligned pairs, zero variance) are
    left out and reported in failures. The remaining p-values form one
    family for Benjamini-Hochberg adjustment; the interpretation of each
    result reflects its adjusted p-value.

    Args:
        x: Date-keyed series (leads at positive lag)
        y: Date-keyed series
        max_lag: Largest absolute lag to scan (0 scans only lag 0)
        factor: Label stored on every result (default: the lag label)
        granularity: Period unit for lags
        alpha: Significance level
        min_samples: Minimum aligned pairs per lag
        transform: "none", "difference" or "detrend", applied to both series
        max_workers: Worker threads (1 = serial)

    Returns:
        LagScanResult ranked by |r| desc, then smaller |lag|
    """
    if int(max_lag) != max_lag or max_lag < 0:
        raise InvalidParameter(f"max_lag must be a non-negative integer, got {max_lag}")
    max_lag = int(max_lag)

    xs = apply_transform(x, transform)
    ys = apply_transform(y, transform)

    lags = list(range(-max_lag, max_lag + 1))

    def _one(lag: int) -> CorrelationResult:
        return correlate(
            xs, ys, lag=lag, factor=factor, granularity=granularity,
            alpha=alpha, min_samples=min_samples,
        )

    outcomes = run_units(_one, lags, max_workers=max_workers)
    succeeded, failures = split_outcomes(lags, outcomes)

    raw = [result for _, result in succeeded]
    ranked = sorted(_with_adjusted(raw, alpha), key=_rank_key) if raw else []

    logger.debug(
        "Lag scan over %d lags: %d computed, %d skipped", len(lags), len(ranked), len(failures)
    )
    return LagScanResult(results=tuple(ranked), max_lag=max_lag, failures=tuple(failures))


# =============================================================================
# WINDOWED LAG SCAN
# =============================================================================

def _windows(
    span_start: pd.Timestamp,
    span_end: pd.Timestamp,
    window_days: int,
    step_days: int,
) -> list[tuple[pd.Timestamp, pd.Timestamp]]:
    windows = []
    start = span_start
    while True:
        end = start + pd.Timedelta(days=window_days - 1)
        windows.append((start, min(end, span_end)))
        if end >= span_end:
            break
        start = start + pd.Timedelta(days=step_days)
        if start > span_end:
            break
    return windows


def scan_lags_windowed(
    x: Any,
    y: Any,
    max_lag: int = config.DEFAULT_MAX_LAG,
    window_days: int = config.DEFAULT_WINDOW_DAYS,
    step_days: int = config.DEFAULT_STEP_DAYS,
    granularity: str = "daily",
    alpha: float = config.DEFAULT_ALPHA,
    min_samples: int = config.MIN_CORRELATION_SAMPLES,
    transform: str = "none",
    max_workers: int = config.DEFAULT_MAX_WORKERS,
) -> WindowedScanResult:
    """
    Re-run the lag scan inside sliding calendar windows.

    The span runs from the earliest to the latest date of either series.
    Windows are window_days wide and start every step_days; the last one
    is the first window that reaches the span end, clipped to it. Both
    series are restricted to each window before scanning, so the adjusted
    p-value of a window's best lag is local to that window's lag family.
    Windows where no lag reaches min_samples are dropped (see failures).

    Args:
        x: Date-keyed series (leads at positive lag)
        y: Date-keyed series
        max_lag: Largest absolute lag per window
        window_days: Window width in calendar days
        step_days: Advance between window starts in calendar days
        granularity: Period unit for lags
        alpha: Significance level
        min_samples: Minimum aligned pairs per lag
        transform: Applied to the full series before windowing
        max_workers: Worker threads across windows (1 = serial)

    Returns:
        WindowedScanResult with one WindowResult per surviving window
    """
    if int(window_days) != window_days or window_days <= 0:
        raise InvalidParameter(f"window_days must be a positive integer, got {window_days}")
    if int(step_days) != step_days or step_days <= 0:
        raise InvalidParameter(f"step_days must be a positive integer, got {step_days}")
    if int(max_lag) != max_lag or max_lag < 0:
        raise InvalidParameter(f"max_lag must be a non-negative integer, got {max_lag}")
    window_days, step_days, max_lag = int(window_days), int(step_days), int(max_lag)

    xs = apply_transform(x, transform)
    ys = apply_transform(y, transform)
    if xs.empty or ys.empty:
        raise InvalidParameter("Empty date range: both series need at least one date")

    span_start = min(xs.index[0], ys.index[0])
    span_end = max(xs.index[-1], ys.index[-1])
    windows = _windows(span_start, span_end, window_days, step_days)

    def _one(window: tuple[pd.Timestamp, pd.Timestamp]) -> WindowResult:
        start, end = window
        scan = scan_lags(
            restrict(xs, start, end),
            restrict(ys, start, end),
            max_lag=max_lag,
            granularity=granularity,
            alpha=alpha,
            min_samples=min_samples,
        )
        best = scan.best
        if best is None:
            raise InsufficientData(
                f"No lag in window {start.date()}..{end.date()} reached {min_samples} aligned pairs"
            )
        return WindowResult(
            window_start=start,
            window_end=end,
            best_lag=best.lag,
            coefficient=best.coefficient,
            p_value=best.p_value,
            adjusted_p_value=best.adjusted_p_value,
            n=best.n,
            result=best,
        )

    outcomes = run_units(_one, windows, max_workers=max_workers)
    succeeded, failures = split_outcomes(windows, outcomes)

    logger.info(
        "Windowed lag scan: %d windows of %d days, %d with results",
        len(windows), window_days, len(succeeded),
    )
    return WindowedScanResult(
        windows=tuple(result for _, result in succeeded),
        window_days=window_days,
        step_days=step_days,
        max_lag=max_lag,
        failures=tuple(failures),
    )


# =============================================================================
# MULTI-FACTOR SWEEP
# =============================================================================

def analyze_factors(
    target: Any,
    factors: Mapping[str, Any],
    max_lag: int = config.DEFAULT_MAX_LAG,
    granularity: str = "daily",
    alpha: float = config.DEFAULT_ALPHA,
    min_abs_correlation: float = config.FACTOR_MIN_ABS_CORRELATION,
    top_n: Optional[int] = config.FACTOR_TOP_N,
    min_samples: int = config.MIN_CORRELATION_SAMPLES,
    transform: str = "none",
    max_workers: int = config.DEFAULT_MAX_WORKERS,
) -> FactorSweepResult:
    """
    Scan several external factors against one target series.

    Each factor is the x side of its own lag scan (positive lag: factor
    leads the target) with its own FDR family. A factor/lag result is kept
    when its adjusted p-value is below alpha or |r| >= min_abs_correlation.
    Kept results from all factors are ranked together by |r|.

    Args:
        target: Business series, e.g. daily sales
        factors: Factor name -> date-keyed series
        max_lag: Largest absolute lag per factor
        granularity: Period unit for lags
        alpha: Significance level
        min_abs_correlation: |r| that keeps a result regardless of p
        top_n: Keep only the strongest top_n results (None keeps all)
        min_samples: Minimum aligned pairs per lag
        transform: Applied to target and every factor
        max_workers: Worker threads across factors (1 = serial)

    Returns:
        FactorSweepResult with the kept results, every factor's full scan
        and the factors that could not be scanned
    """
    if top_n is not None and top_n < 1:
        raise InvalidParameter(f"top_n must be positive or None, got {top_n}")

    target_series = ensure_series(target)
    names = list(factors)

    def _one(name: str) -> LagScanResult:
        scan = scan_lags(
            factors[name],
            target_series,
            max_lag=max_lag,
            factor=name,
            granularity=granularity,
            alpha=alpha,
            min_samples=min_samples,
            transform=transform,
        )
        if not scan.results:
            raise InsufficientData(f"Factor '{name}' produced no computable lag")
        return scan

    outcomes = run_units(_one, names, max_workers=max_workers)
    succeeded, failures = split_outcomes(names, outcomes)

    kept = []
    for name, scan in succeeded:
        for result in scan.results:
            if result.adjusted_p_value < alpha or abs(result.coefficient) >= min_abs_correlation:
                kept.append(result)
        logger.debug("Factor '%s': %d lags scanned", name, len(scan.results))

    kept.sort(key=_rank_key)
    if top_n is not None:
        kept = kept[:top_n]

    return FactorSweepResult(
        results=tuple(kept),
        scans={name: scan for name, scan in succeeded},
        failures=tuple(failures),
    )


# =============================================================================
# MODULE TEST
# =============================================================================

if __name__ == "__main__":
    print("=== Sales-Factor Correlation Module ===")

    rng = np.random.default_rng(42)
    dates = pd.date_range("2024-01-01", periods=120, freq="D")

    temperature = pd.Series(20 + np.cumsum(rng.normal(0, 1, 120)), index=dates)
    sales = pd.Series(
        100 + 3 * temperature.shift(3).bfill().to_numpy() + rng.normal(0, 2, 120),
        index=dates,
    )

    scan = scan_lags(temperature, sales, max_lag=7, factor="temperature")
    print("\nTop lags (temperature -> sales):")
    for result in scan.results[:5]:
        print(
            f"  {result.lag_description:>26}  r={result.coefficient:+.3f}  "
            f"p_adj={result.adjusted_p_value:.2e}  n={result.n}"
        )

    windowed = scan_lags_windowed(temperature, sales, max_lag=7, window_days=30, step_days=30)
    print("\nWindowed best lags:")
    print(windowed.to_frame().to_string(index=False))
