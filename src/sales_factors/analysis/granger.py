"""
Granger Causality Testing

Tests whether past values of series A improve the prediction of series B
beyond B's own past. Does NOT imply true causation.

For lag order p, with T contemporaneous (A, B) pairs:
- Restricted model:   B_t ~ 1 + B_{t-1..t-p}
- Unrestricted model: B_t ~ 1 + B_{t-1..t-p} + A_{t-1..t-p}
- Both are fit on the T - p rows that have a full lag history
- F = ((RSS_r - RSS_u) / p) / (RSS_u / (T - p - 2p - 1))

This matches the ssr F-test reported by statsmodels' grangercausalitytests.

Important: both series should be stationary for valid results; pass
transform="difference" or "detrend" when they trend.
"""

import logging
from typing import Any

import numpy as np

from .. import config
from ..errors import DegenerateInput, InsufficientData, InvalidParameter
from ..models import GrangerOrderScan, GrangerResult
from .parallel import run_units, split_outcomes
from .primitives import f_survival, ols_residual_ss
from .series import align, apply_transform

logger = logging.getLogger(__name__)


def get_required_observations(order: int = config.DEFAULT_GRANGER_ORDER) -> int:
    """Minimum aligned observations for a Granger test of the given order."""
    return 2 * order + config.GRANGER_EXTRA_OBSERVATIONS


def _lag_matrix(values: np.ndarray, order: int) -> np.ndarray:
    """Columns v[t-1], ..., v[t-order] for t = order..T-1."""
    T = values.size
    return np.column_stack([values[order - j:T - j] for j in range(1, order + 1)])


def granger_f_test(
    cause: np.ndarray,
    effect: np.ndarray,
    order: int,
) -> tuple[float, float, int, int]:
    """
    One-direction Granger F-test on already aligned arrays.

    Args:
        cause: Candidate cause values (A)
        effect: Candidate effect values (B), same length as cause
        order: Lag order p

    Returns:
        (F statistic, p-value, numerator df, denominator df)

    Raises:
        InvalidParameter: If order < 1 or lengths differ
        InsufficientData: If T < 2p + 5 or no residual degrees of freedom
        DegenerateInput: If a regression is singular or fits exactly
    """
    if int(order) != order or order < 1:
        raise InvalidParameter(f"Granger order must be a positive integer, got {order}")
    order = int(order)
    cause = np.asarray(cause, dtype=float)
    effect = np.asarray(effect, dtype=float)
    if cause.size != effect.size:
        raise InvalidParameter(
            f"Length mismatch: cause has {cause.size}, effect has {effect.size}"
        )

    T = effect.size
    required = get_required_observations(order)
    if T < required:
        raise InsufficientData(
            f"Granger test of order {order} needs {required} observations, have {T}"
        )

    rows = T - order
    df_num = order
    df_denom = rows - 2 * order - 1
    if df_denom < 1:
        raise InsufficientData(
            f"No residual degrees of freedom for order {order} with {T} observations"
        )

    response = effect[order:]
    ones = np.ones((rows, 1))
    own_lags = _lag_matrix(effect, order)
    cause_lags = _lag_matrix(cause, order)

    rss_restricted = ols_residual_ss(np.hstack([ones, own_lags]), response)
    rss_full = ols_residual_ss(np.hstack([ones, own_lags, cause_lags]), response)

    if rss_full <= 0.0:
        raise DegenerateInput("Unrestricted model fits exactly; F statistic is undefined")

    improvement = max(rss_restricted - rss_full, 0.0)
    f_stat = (improvement / df_num) / (rss_full / df_denom)
    p_value = f_survival(f_stat, df_num, df_denom)
    return float(f_stat), p_value, df_num, df_denom


def _direction(p_a_to_b: float, p_b_to_a: float, alpha: float) -> str:
    a_to_b = p_a_to_b < alpha
    b_to_a = p_b_to_a < alpha
    if a_to_b and b_to_a:
        return "bidirectional"
    if a_to_b:
        return "A_to_B"
    if b_to_a:
        return "B_to_A"
    return "none"


def granger_causality(
    a: Any,
    b: Any,
    order: int = config.DEFAULT_GRANGER_ORDER,
    alpha: float = config.DEFAULT_ALPHA,
    transform: str = "none",
    a_label: str = "A",
    b_label: str = "B",
) -> GrangerResult:
    """
    Bidirectional Granger test between two date-keyed series.

    Args:
        a: Candidate cause series
        b: Candidate effect series
        order: Lag order p (periods)
        alpha: Significance level for the direction decision
        transform: "none", "difference" or "detrend", applied to both series
        a_label: Name of A used in descriptions
        b_label: Name of B used in descriptions

    Returns:
        GrangerResult with F and p for A->B and B->A and the direction:
        bidirectional if both p < alpha, A_to_B / B_to_A if exactly one,
        none otherwise

    Raises:
        InsufficientData: If fewer than 2p + 5 dates are shared
        DegenerateInput: If either regression is singular
    """
    a_series = apply_transform(a, transform)
    b_series = apply_transform(b, transform)
    pair = align(a_series, b_series, lag=0)

    f_ab, p_ab, _, _ = granger_f_test(pair.x, pair.y, order)
    f_ba, p_ba, _, _ = granger_f_test(pair.y, pair.x, order)
    direction = _direction(p_ab, p_ba, alpha)

    logger.debug(
        "Granger order %d (n=%d): %s->%s p=%.4g, %s->%s p=%.4g => %s",
        order, pair.n, a_label, b_label, p_ab, b_label, a_label, p_ba, direction,
    )
    return GrangerResult(
        order=int(order),
        f_stat_a_to_b=f_ab,
        p_value_a_to_b=p_ab,
        f_stat_b_to_a=f_ba,
        p_value_b_to_a=p_ba,
        direction=direction,
        n=pair.n,
        a_label=a_label,
        b_label=b_label,
    )


def scan_granger_orders(
    a: Any,
    b: Any,
    max_order: int = 4,
    alpha: float = config.DEFAULT_ALPHA,
    transform: str = "none",
    a_label: str = "A",
    b_label: str = "B",
    max_workers: int = config.DEFAULT_MAX_WORKERS,
) -> GrangerOrderScan:
    """
    Run granger_causality for every order 1..max_order.

    Orders that cannot be tested (too few observations, singular design)
    are reported in failures; the others are returned in order.
    """
    if int(max_order) != max_order or max_order < 1:
        raise InvalidParameter(f"max_order must be a positive integer, got {max_order}")

    a_series = apply_transform(a, transform)
    b_series = apply_transform(b, transform)
    orders = list(range(1, int(max_order) + 1))

    def _one(order: int) -> GrangerResult:
        return granger_causality(
            a_series, b_series, order=order, alpha=alpha,
            a_label=a_label, b_label=b_label,
        )

    outcomes = run_units(_one, orders, max_workers=max_workers)
    succeeded, failures = split_outcomes(orders, outcomes)
    return GrangerOrderScan(
        results=tuple(result for _, result in succeeded),
        failures=tuple(failures),
    )


# =============================================================================
# MODULE TEST
# =============================================================================

if __name__ == "__main__":
    import pandas as pd

    print("=== Granger Causality Module ===")
    print(f"Minimum observations for order {config.DEFAULT_GRANGER_ORDER}: "
          f"{get_required_observations()}")

    rng = np.random.default_rng(7)
    dates = pd.date_range("2024-01-01", periods=180, freq="D")

    # Promotion spend drives sales one day later
    promo = rng.normal(0, 1, 180)
    sales = np.zeros(180)
    for t in range(1, 180):
        sales[t] = 0.4 * sales[t - 1] + 0.8 * promo[t - 1] + rng.normal(0, 0.5)

    result = granger_causality(
        pd.Series(promo, index=dates),
        pd.Series(sales, index=dates),
        a_label="promo",
        b_label="sales",
    )
    print(f"\n{result.description}")
    print(f"  promo -> sales: F={result.f_stat_a_to_b:.2f}, p={result.p_value_a_to_b:.2e}")
    print(f"  sales -> promo: F={result.f_stat_b_to_a:.2f}, p={result.p_value_b_to_a:.2e}")
