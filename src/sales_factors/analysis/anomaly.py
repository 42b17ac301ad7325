"""
Sales Anomaly Detection

Flags periods of a sales series whose aggregated value sits unusually far
from the baseline of its peer periods (z-score / 3-sigma rule).

The raw series is summed into periods of the requested granularity
(sales are additive), then every period's z-score is computed against
one of three baselines:

- "series": mean and sample stddev of the whole aggregated series
- "leave_one_out": mean and sample stddev of all other periods
- "trailing": mean and sample stddev of the preceding periods (30 days,
  4 weeks or 3 months by default); the first window of periods is never
  scored

A zero-spread baseline never produces a z-score: a constant series has no
anomalies.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

import numpy as np

from .. import config
from ..errors import InsufficientData, InvalidParameter
from ..models import AggregatedSeries, AnomalyRecord, AnomalySweepResult
from .parallel import run_units, split_outcomes
from .series import aggregate

logger = logging.getLogger(__name__)

BASELINES = ("series", "leave_one_out", "trailing")


def classify_severity(abs_z: float) -> str:
    """Severity bucket for |z| (see config.SEVERITY_BANDS)."""
    for lower, severity in config.SEVERITY_BANDS:
        if abs_z >= lower:
            return severity
    return "low"


def _series_baseline(values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    n = values.size
    center = float(values.mean())
    spread = float(values.std(ddof=1))
    return np.full(n, center), np.full(n, spread)


def _leave_one_out_baseline(values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    n = values.size
    total = values.sum()
    peers = n - 1
    means = (total - values) / peers
    # Sum of squared deviations of the peers around their own mean
    centered = values - values.mean()
    ss_all = float(np.dot(centered, centered))
    ss_peers = ss_all - centered ** 2 * n / peers
    # Identical peers leave only rounding error here
    ss_peers = np.where(ss_peers > 1e-10 * ss_all, ss_peers, 0.0)
    spreads = np.sqrt(ss_peers / (peers - 1))
    return means, spreads


def _trailing_baseline(values: np.ndarray, window: int) -> tuple[np.ndarray, np.ndarray]:
    n = values.size
    means = np.full(n, np.nan)
    spreads = np.full(n, np.nan)
    # Row i covers periods i..i+window-1 and scores period i+window
    history = np.lib.stride_tricks.sliding_window_view(values, window)[:-1]
    means[window:] = history.mean(axis=1)
    spreads[window:] = np.where(
        np.ptp(history, axis=1) == 0, 0.0, history.std(axis=1, ddof=1)
    )
    return means, spreads


def detect_anomalies_in_periods(
    periods: AggregatedSeries,
    threshold: float = config.DEFAULT_ANOMALY_THRESHOLD,
    group: Optional[str] = None,
    baseline: str = "series",
    min_periods: int = config.MIN_ANOMALY_PERIODS,
) -> list[AnomalyRecord]:
    """Flag anomalous periods of an already aggregated series."""
    if threshold <= 0:
        raise InvalidParameter(f"threshold must be positive, got {threshold}")
    if baseline not in BASELINES:
        raise InvalidParameter(f"Unknown baseline '{baseline}'. Expected one of {BASELINES}")

    window = config.TRAILING_WINDOWS.get(periods.granularity, 0)
    if baseline == "trailing":
        minimum = max(min_periods, window + 1)
    else:
        minimum = max(min_periods, 3 if baseline == "leave_one_out" else 2)
    if len(periods) < minimum:
        raise InsufficientData(
            f"Anomaly baseline needs at least {minimum} periods, have {len(periods)}"
        )

    values = np.asarray(periods.values(), dtype=float)
    if np.ptp(values) == 0:
        logger.debug("Constant series (%s): no anomalies", group or "ungrouped")
        return []

    if baseline == "series":
        means, spreads = _series_baseline(values)
    elif baseline == "leave_one_out":
        means, spreads = _leave_one_out_baseline(values)
    else:
        means, spreads = _trailing_baseline(values, window)

    anomalies = []
    for period, actual, expected, spread in zip(periods, values, means, spreads):
        if spread <= 0 or not np.isfinite(spread):
            continue
        z = (actual - expected) / spread
        if abs(z) < threshold:
            continue
        anomalies.append(AnomalyRecord(
            period=period.label,
            actual=float(actual),
            expected=float(expected),
            z_score=float(z),
            severity=classify_severity(abs(z)),
            kind="spike" if actual > expected else "drop",
            period_start=period.start,
            period_end=period.end,
            group=group,
        ))

    logger.debug(
        "Anomaly detection (%s, %s): %d of %d periods flagged",
        group or "ungrouped", periods.granularity, len(anomalies), len(periods),
    )
    return anomalies


def detect_anomalies(
    series: Any,
    granularity: str = config.DEFAULT_ANOMALY_GRANULARITY,
    threshold: float = config.DEFAULT_ANOMALY_THRESHOLD,
    group: Optional[str] = None,
    baseline: str = "series",
    min_periods: int = config.MIN_ANOMALY_PERIODS,
) -> list[AnomalyRecord]:
    """
    Detect spikes and drops in a sales series.

    Args:
        series: Date-keyed sales series (usually daily)
        granularity: "daily", "weekly" or "monthly"; values are summed
        threshold: Flag periods with |z| >= threshold (default 3 sigma)
        group: Grouping key (e.g. product id) copied onto every record
        baseline: "series", "leave_one_out" or "trailing"
        min_periods: Minimum aggregated periods for a baseline

    Returns:
        AnomalyRecords in chronological order

    Raises:
        InsufficientData: If fewer than min_periods periods exist
        InvalidParameter: For an unknown granularity/baseline or threshold <= 0
    """
    periods = aggregate(series, granularity=granularity, method="sum")
    return detect_anomalies_in_periods(
        periods,
        threshold=threshold,
        group=group,
        baseline=baseline,
        min_periods=min_periods,
    )


def detect_anomalies_by_group(
    series_by_group: Mapping[str, Any],
    granularity: str = config.DEFAULT_ANOMALY_GRANULARITY,
    threshold: float = config.DEFAULT_ANOMALY_THRESHOLD,
    baseline: str = "series",
    min_periods: int = config.MIN_ANOMALY_PERIODS,
    max_workers: int = config.DEFAULT_MAX_WORKERS,
) -> AnomalySweepResult:
    """
    Run detect_anomalies for each group (e.g. product).

    A group that fails (too few periods, invalid values) is reported in
    failures; every other group is still processed.
    """
    groups = list(series_by_group)

    def _one(group: str) -> list[AnomalyRecord]:
        return detect_anomalies(
            series_by_group[group],
            granularity=granularity,
            threshold=threshold,
            group=group,
            baseline=baseline,
            min_periods=min_periods,
        )

    outcomes = run_units(_one, groups, max_workers=max_workers)
    succeeded, failures = split_outcomes(groups, outcomes)

    logger.info(
        "Anomaly sweep over %d groups: %d anomalies, %d groups failed",
        len(groups), sum(len(records) for _, records in succeeded), len(failures),
    )
    return AnomalySweepResult(
        anomalies={group: tuple(records) for group, records in succeeded},
        failures=tuple(failures),
    )


# =============================================================================
# MODULE TEST
# =============================================================================

if __name__ == "__main__":
    import pandas as pd

    print("=== Sales Anomaly Detection Module ===")

    rng = np.random.default_rng(3)
    dates = pd.date_range("2024-01-01", periods=120, freq="D")
    sales = pd.Series(rng.normal(1000, 50, 120), index=dates)
    sales.iloc[45] = 1600.0
    sales.iloc[90] = 400.0

    for granularity in ("daily", "weekly"):
        records = detect_anomalies(sales, granularity=granularity)
        print(f"\n{granularity}: {len(records)} anomalies")
        for record in records:
            print(
                f"  {record.period:>10}  {record.kind:<5}  z={record.z_score:+.2f}  "
                f"({record.severity})"
            )
