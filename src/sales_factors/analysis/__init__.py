"""Correlation, causality and anomaly analysis for sales and external factors."""

from .primitives import (
    mean,
    stddev,
    pearson,
    student_t_cdf,
    student_t_pvalue,
    f_survival,
    benjamini_hochberg,
    ols_fit,
    ols_residual_ss,
    linear_regression,
    first_difference,
    detrend,
)
from .series import (
    AlignedPair,
    ensure_series,
    shift_dates,
    align,
    restrict,
    aggregate,
    apply_transform,
    summarize,
)
from .correlation import (
    interpret_correlation,
    correlate,
    scan_lags,
    scan_lags_windowed,
    analyze_factors,
)
from .granger import (
    granger_f_test,
    granger_causality,
    scan_granger_orders,
    get_required_observations,
)
from .anomaly import (
    classify_severity,
    detect_anomalies,
    detect_anomalies_in_periods,
    detect_anomalies_by_group,
)
from .stationarity import check_stationarity, make_stationary
from .periods import (
    summarize_periods,
    overall_period_stats,
    period_trend,
    analyze_periods,
)
