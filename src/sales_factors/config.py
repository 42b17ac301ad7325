"""
Configuration for the Sales Factor Analysis toolkit

HOW TO USE THIS FILE:
--------------------
Every analysis function takes its thresholds as keyword arguments and uses
the constants below as defaults. Change a default here, or pass a different
value per call. A few values can be overridden with environment variables
(noted next to the constant).

You generally don't need to change anything here.
"""

import os as _os


def _env_float(name: str, default: float) -> float:
    raw = _os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = _os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


# =============================================================================
# SIGNIFICANCE
# =============================================================================
# Significance level used for correlation, FDR and Granger decisions.
# Override with SALES_FACTORS_ALPHA.

DEFAULT_ALPHA = _env_float("SALES_FACTORS_ALPHA", 0.05)


# =============================================================================
# CORRELATION & LAG SCANNING
# =============================================================================
# Lags are counted in periods of the series granularity (days for daily data).
# Weather effects are short-lived, so two weeks is the default scan range.

DEFAULT_MAX_LAG = 14

# Pearson r needs at least 3 aligned pairs for a t-test (df = n - 2 >= 1)
MIN_CORRELATION_SAMPLES = 3

# |r| bands for the human-readable interpretation
STRONG_CORRELATION = 0.5
MODERATE_CORRELATION = 0.3

# Sliding window defaults (calendar days)
DEFAULT_WINDOW_DAYS = 30
DEFAULT_STEP_DAYS = 7


# =============================================================================
# FACTOR SWEEP
# =============================================================================
# A factor/lag result is kept when it is FDR-significant OR when |r| is at
# least this large; only the strongest FACTOR_TOP_N results are reported.

FACTOR_MIN_ABS_CORRELATION = 0.3
FACTOR_TOP_N = 3


# =============================================================================
# GRANGER CAUSALITY
# =============================================================================
# Minimum aligned observations for order p is 2p + GRANGER_EXTRA_OBSERVATIONS

DEFAULT_GRANGER_ORDER = 2
GRANGER_EXTRA_OBSERVATIONS = 5

# Normal equations with an equilibrated condition number above this are
# treated as singular
MAX_CONDITION_NUMBER = 1e10


# =============================================================================
# ANOMALY DETECTION
# =============================================================================
# Override the threshold with SALES_FACTORS_ANOMALY_THRESHOLD.

DEFAULT_ANOMALY_THRESHOLD = _env_float("SALES_FACTORS_ANOMALY_THRESHOLD", 3.0)
DEFAULT_ANOMALY_GRANULARITY = "daily"
MIN_ANOMALY_PERIODS = 3

# (lower bound on |z|, severity) checked top-down; anything below is "low"
SEVERITY_BANDS = [
    (3.0, "critical"),
    (2.5, "high"),
    (2.0, "medium"),
]


# Trailing baseline: number of preceding periods per granularity
TRAILING_WINDOWS = {
    "daily": 30,
    "weekly": 4,
    "monthly": 3,
}


# =============================================================================
# PERIOD ANALYSIS
# =============================================================================
# Average period-over-period growth (percent) beyond which a trend is "up" or
# "down"; growth of TREND_FULL_STRENGTH_PCT or more counts as full strength.

TREND_GROWTH_THRESHOLD_PCT = 2.0
TREND_FULL_STRENGTH_PCT = 10.0

# Second half vs first half of the periods (percent) that counts as a
# seasonal shift; needs at least MIN_SEASONALITY_PERIODS periods
SEASONALITY_SHIFT_PCT = 15.0
MIN_SEASONALITY_PERIODS = 4


# =============================================================================
# STATIONARITY
# =============================================================================

MIN_STATIONARITY_OBSERVATIONS = 20
MAX_DIFFERENCES = 2


# =============================================================================
# GRANULARITY & AGGREGATION
# =============================================================================

GRANULARITIES = ("daily", "weekly", "monthly")
AGGREGATION_METHODS = ("sum", "mean", "last")
TRANSFORMS = ("none", "difference", "detrend")


# =============================================================================
# EXECUTION
# =============================================================================
# Worker threads for multi-unit scans (lags, windows, factors, products).
# 1 means serial. Override with SALES_FACTORS_MAX_WORKERS.

DEFAULT_MAX_WORKERS = _env_int("SALES_FACTORS_MAX_WORKERS", 1)
