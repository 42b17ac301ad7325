"""
Stationarity Checks

Lag correlation and Granger tests assume stationary inputs. These helpers
test a date-keyed series with ADF and KPSS (statsmodels) and difference it
until both tests agree it is stationary.
"""

import logging
import warnings
from typing import Any

import numpy as np
import pandas as pd
from statsmodels.tsa.stattools import adfuller, kpss

from .. import config
from ..errors import DegenerateInput, InsufficientData
from ..models import StationarityReport
from .primitives import first_difference
from .series import ensure_series

logger = logging.getLogger(__name__)


def check_stationarity(
    series: Any,
    name: str = "series",
    alpha: float = config.DEFAULT_ALPHA,
    min_observations: int = config.MIN_STATIONARITY_OBSERVATIONS,
) -> StationarityReport:
    """
    Test stationarity using ADF and KPSS together.

    - ADF null hypothesis: series has a unit root (non-stationary)
    - KPSS null hypothesis: series IS stationary

    Interpretation matrix:
    - ADF rejects, KPSS fails to reject: stationary
    - ADF fails to reject, KPSS rejects: non_stationary
    - Both reject: trend_stationary
    - Neither rejects: inconclusive

    Raises:
        InsufficientData: If the series is shorter than min_observations
        DegenerateInput: If the series is constant
    """
    s = ensure_series(series)
    if len(s) < min_observations:
        raise InsufficientData(
            f"Series '{name}' has only {len(s)} observations. "
            f"Minimum required: {min_observations}"
        )
    values = s.to_numpy()
    if np.ptp(values) == 0:
        raise DegenerateInput(f"Series '{name}' is constant")

    adf_stat, adf_pvalue = adfuller(values, autolag="AIC")[:2]
    adf_stationary = adf_pvalue < alpha

    # KPSS warns when its p-value is clipped to the table bounds
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        kpss_stat, kpss_pvalue = kpss(values, regression="c", nlags="auto")[:2]
    kpss_stationary = kpss_pvalue >= alpha

    if adf_stationary and kpss_stationary:
        conclusion, differencing_needed = "stationary", False
    elif not adf_stationary and not kpss_stationary:
        conclusion, differencing_needed = "non_stationary", True
    elif adf_stationary:
        conclusion, differencing_needed = "trend_stationary", True
    else:
        conclusion, differencing_needed = "inconclusive", False

    return StationarityReport(
        name=name,
        n_observations=len(s),
        adf_statistic=float(adf_stat),
        adf_pvalue=float(adf_pvalue),
        adf_stationary=bool(adf_stationary),
        kpss_statistic=float(kpss_stat),
        kpss_pvalue=float(kpss_pvalue),
        kpss_stationary=bool(kpss_stationary),
        conclusion=conclusion,
        differencing_needed=differencing_needed,
    )


def make_stationary(
    series: Any,
    max_differences: int = config.MAX_DIFFERENCES,
    alpha: float = config.DEFAULT_ALPHA,
    min_observations: int = config.MIN_STATIONARITY_OBSERVATIONS,
) -> tuple[pd.Series, int]:
    """
    Difference a series until it tests stationary.

    Returns:
        (possibly differenced series, number of differences applied).
        Differencing stops early when the series gets shorter than
        min_observations (best effort is returned) or becomes constant.
    """
    current = ensure_series(series)
    applied = 0

    while True:
        try:
            report = check_stationarity(
                current, f"diff_{applied}", alpha=alpha, min_observations=min_observations
            )
        except (InsufficientData, DegenerateInput) as e:
            logger.debug("Stopping differencing: %s", e)
            break
        if not report.differencing_needed or applied >= max_differences:
            break
        current = first_difference(current)
        applied += 1

    return current, applied
