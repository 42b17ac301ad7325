"""
Statistical Primitives

Numerically stable building blocks shared by the correlation, Granger and
anomaly modules:

- Descriptive statistics (mean, sample standard deviation)
- Pearson correlation and its two-sided Student-t p-value
- F-distribution survival function (Granger p-values)
- Benjamini-Hochberg FDR adjustment
- OLS via the normal equations with a singularity check
- Stationarity-inducing transforms (first difference, linear detrend)
- Simple linear regression

The t and F tails are evaluated through the regularized incomplete beta
function (scipy.special.betainc), which is itself built on a log-gamma
approximation. No input array is modified in place.
"""

import logging
import math
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import linalg
from scipy.special import betainc

from .. import config
from ..errors import DegenerateInput, InsufficientData, InvalidParameter
from ..models import RegressionResult

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]


def _as_array(values: ArrayLike, name: str = "values") -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1:
        raise InvalidParameter(f"{name} must be one-dimensional, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise DegenerateInput(f"{name} contains NaN or infinite values")
    return arr


# =============================================================================
# DESCRIPTIVE STATISTICS
# =============================================================================

def mean(values: ArrayLike) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        raise InsufficientData("Mean of an empty sequence is undefined")
    return float(arr.mean())


def stddev(values: ArrayLike) -> float:
    """Sample standard deviation (n - 1 denominator)."""
    arr = _as_array(values)
    if arr.size < 2:
        raise InsufficientData(
            f"Sample standard deviation needs at least 2 values, have {arr.size}"
        )
    return float(arr.std(ddof=1))


# =============================================================================
# CORRELATION
# =============================================================================

def pearson(x: ArrayLike, y: ArrayLike) -> float:
    """
    Pearson correlation coefficient of two equal-length sequences.

    Raises:
        InvalidParameter: If lengths differ
        InsufficientData: If fewer than 2 pairs
        DegenerateInput: If either sequence has zero variance
    """
    xa = _as_array(x, "x")
    ya = _as_array(y, "y")
    if xa.size != ya.size:
        raise InvalidParameter(f"Length mismatch: x has {xa.size}, y has {ya.size}")
    if xa.size < 2:
        raise InsufficientData(f"Correlation needs at least 2 pairs, have {xa.size}")
    if np.ptp(xa) == 0 or np.ptp(ya) == 0:
        raise DegenerateInput("Correlation is undefined for a zero-variance series")

    dx = xa - xa.mean()
    dy = ya - ya.mean()
    sxx = float(np.dot(dx, dx))
    syy = float(np.dot(dy, dy))
    if sxx == 0.0 or syy == 0.0:
        raise DegenerateInput("Correlation is undefined for a zero-variance series")

    r = float(np.dot(dx, dy)) / math.sqrt(sxx * syy)
    return max(-1.0, min(1.0, r))


def student_t_cdf(t: float, df: float) -> float:
    """CDF of Student's t with df degrees of freedom."""
    if df <= 0:
        raise InvalidParameter(f"Degrees of freedom must be positive, got {df}")
    if t == 0:
        return 0.5
    if math.isinf(t):
        return 1.0 if t > 0 else 0.0
    # For t > 0: CDF = 1 - 0.5 * I_{df/(df+t^2)}(df/2, 1/2)
    z = df / (df + t * t)
    tail = 0.5 * float(betainc(0.5 * df, 0.5, z))
    return 1.0 - tail if t > 0 else tail


def student_t_pvalue(r: float, n: int) -> float:
    """
    Two-sided p-value for H0: rho = 0 given sample correlation r over n pairs.

    Uses t = r * sqrt((n - 2) / (1 - r^2)) with n - 2 degrees of freedom.
    The two-sided tail 2 * (1 - CDF(|t|)) equals I_{df/(df+t^2)}(df/2, 1/2),
    which is evaluated directly to avoid cancellation near p = 0.
    """
    if n < 3:
        raise InsufficientData(f"p-value for r needs at least 3 pairs, have {n}")
    if not -1.0 <= r <= 1.0:
        raise InvalidParameter(f"Correlation must be within [-1, 1], got {r}")

    one_minus_r2 = 1.0 - r * r
    if one_minus_r2 <= 0.0:
        return 0.0

    df = n - 2
    t2 = r * r * df / one_minus_r2
    p = float(betainc(0.5 * df, 0.5, df / (df + t2)))
    return min(1.0, max(0.0, p))


# =============================================================================
# F DISTRIBUTION
# =============================================================================

def f_survival(f: float, df1: float, df2: float) -> float:
    """P(F > f) for F ~ F(df1, df2)."""
    if df1 <= 0 or df2 <= 0:
        raise InvalidParameter(
            f"F degrees of freedom must be positive, got ({df1}, {df2})"
        )
    if math.isnan(f):
        raise DegenerateInput("F statistic is NaN")
    if f <= 0:
        return 1.0
    if math.isinf(f):
        return 0.0
    # survival = I_{df2/(df2+df1*f)}(df2/2, df1/2)
    x = df2 / (df2 + df1 * f)
    p = float(betainc(0.5 * df2, 0.5 * df1, x))
    return min(1.0, max(0.0, p))


# =============================================================================
# MULTIPLE TESTING
# =============================================================================

def benjamini_hochberg(p_values: ArrayLike) -> np.ndarray:
    """
    Benjamini-Hochberg FDR adjustment.

    Sorts ascending, scales p_(i) by m / i, then takes the running minimum
    from the largest rank down so adjusted values are monotone. Results are
    capped at 1 and returned in the original order.
    """
    p = np.asarray(p_values, dtype=float)
    if p.ndim != 1:
        raise InvalidParameter("p-values must be one-dimensional")
    m = p.size
    if m == 0:
        return np.array([], dtype=float)
    if not np.all(np.isfinite(p)) or np.any(p < 0) or np.any(p > 1):
        raise InvalidParameter("p-values must be finite and within [0, 1]")

    order = np.argsort(p, kind="mergesort")
    scaled = p[order] * m / np.arange(1, m + 1)
    monotone = np.minimum.accumulate(scaled[::-1])[::-1]

    adjusted = np.empty(m, dtype=float)
    adjusted[order] = np.minimum(monotone, 1.0)
    return adjusted


# =============================================================================
# LEAST SQUARES
# =============================================================================

def ols_fit(
    design: ArrayLike,
    target: ArrayLike,
    max_condition: float = config.MAX_CONDITION_NUMBER,
) -> tuple[np.ndarray, float]:
    """
    Solve OLS through the normal equations.

    The Gram matrix X'X is equilibrated (scaled to unit diagonal) before the
    conditioning check, so the check does not depend on the units of the
    regressors. The system is then solved by Cholesky factorization.

    Args:
        design: (n, k) design matrix; include a column of ones for an intercept
        target: length-n response
        max_condition: Largest acceptable condition number of the scaled X'X

    Returns:
        (coefficients, residual sum of squares)

    Raises:
        InvalidParameter: If shapes do not match
        InsufficientData: If there are fewer rows than columns
        DegenerateInput: If X'X is singular or near-singular
    """
    X = np.asarray(design, dtype=float)
    y = np.asarray(target, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2 or y.ndim != 1 or X.shape[0] != y.size:
        raise InvalidParameter(
            f"Design {X.shape} does not match target of length {y.size}"
        )
    n, k = X.shape
    if n < k:
        raise InsufficientData(f"OLS needs at least {k} rows for {k} regressors, have {n}")
    if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
        raise DegenerateInput("OLS inputs contain NaN or infinite values")

    gram = X.T @ X
    scale = np.sqrt(np.diag(gram))
    if np.any(scale == 0):
        raise DegenerateInput("Design matrix has an all-zero column")

    scaled = gram / np.outer(scale, scale)
    condition = np.linalg.cond(scaled)
    if not np.isfinite(condition) or condition > max_condition:
        logger.debug("Rejecting %dx%d normal equations, condition %.3g", k, k, condition)
        raise DegenerateInput(
            f"Normal equations are singular or near-singular (condition {condition:.3g})"
        )

    try:
        factor = linalg.cho_factor(scaled, lower=True)
        beta_scaled = linalg.cho_solve(factor, (X.T @ y) / scale)
    except linalg.LinAlgError as e:
        raise DegenerateInput(f"Normal equations could not be factorized: {e}") from e

    beta = beta_scaled / scale
    residuals = y - X @ beta
    rss = float(np.dot(residuals, residuals))
    return beta, rss


def ols_residual_ss(
    design: ArrayLike,
    target: ArrayLike,
    max_condition: float = config.MAX_CONDITION_NUMBER,
) -> float:
    """Residual sum of squares of the OLS fit of target on design."""
    _, rss = ols_fit(design, target, max_condition=max_condition)
    return rss


# =============================================================================
# REGRESSION
# =============================================================================

def linear_regression(
    x: ArrayLike,
    y: ArrayLike,
    x_value: Optional[float] = None,
) -> RegressionResult:
    """
    Fit y = slope * x + intercept.

    Args:
        x: Regressor values
        y: Response values
        x_value: Point at which to predict (default: last x)

    Returns:
        RegressionResult. When y is constant the fit is exact and r_squared
        is reported as 1.0.
    """
    xa = _as_array(x, "x")
    ya = _as_array(y, "y")
    if xa.size != ya.size:
        raise InvalidParameter(f"Length mismatch: x has {xa.size}, y has {ya.size}")
    if xa.size < 2:
        raise InsufficientData(f"Regression needs at least 2 points, have {xa.size}")
    if np.ptp(xa) == 0:
        raise DegenerateInput("Regression slope is undefined for constant x")

    dx = xa - xa.mean()
    slope = float(np.dot(dx, ya - ya.mean()) / np.dot(dx, dx))
    intercept = float(ya.mean() - slope * xa.mean())

    residuals = ya - (slope * xa + intercept)
    ss_residual = float(np.dot(residuals, residuals))
    ss_total = float(np.sum((ya - ya.mean()) ** 2))
    r_squared = 1.0 if ss_total == 0 else 1.0 - ss_residual / ss_total

    if x_value is None:
        x_value = float(xa[-1])
    prediction = slope * x_value + intercept

    return RegressionResult(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        prediction=prediction,
        x_value=float(x_value),
        description=f"y = {slope:.2f}x + {intercept:.2f} (R² = {r_squared:.3f})",
    )


# =============================================================================
# TRANSFORMS
# =============================================================================

def first_difference(values: ArrayLike) -> Union[np.ndarray, pd.Series]:
    """
    First differences v[t] - v[t-1].

    A date-keyed Series keeps the later date of each pair; other inputs
    come back as a numpy array one element shorter.
    """
    if isinstance(values, pd.Series):
        if len(values) < 2:
            raise InsufficientData("First difference needs at least 2 values")
        diffed = values.astype(float).diff().iloc[1:]
        return diffed.copy()

    arr = _as_array(values)
    if arr.size < 2:
        raise InsufficientData("First difference needs at least 2 values")
    return np.diff(arr)


def detrend(values: ArrayLike) -> Union[np.ndarray, pd.Series]:
    """Residuals of an OLS fit against the time index 1..n."""
    arr = _as_array(values)
    if arr.size < 2:
        raise InsufficientData("Detrending needs at least 2 values")

    index = np.arange(1, arr.size + 1, dtype=float)
    fit = linear_regression(index, arr)
    residuals = arr - (fit.slope * index + fit.intercept)

    if isinstance(values, pd.Series):
        return pd.Series(residuals, index=values.index.copy(), name=values.name)
    return residuals
