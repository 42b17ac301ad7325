"""
Result types for the Sales Factor Analysis toolkit.

All results are immutable values: they are built from the inputs of a single
call, handed back to the caller and never mutated afterwards. Series inputs
themselves stay plain pandas objects (see analysis/series.py).
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

import pandas as pd


# =============================================================================
# FAILURES
# =============================================================================

@dataclass(frozen=True)
class UnitFailure:
    """
    A unit of a multi-unit scan that could not be computed.

    unit is the lag (int), the window (start, end) tuple, the factor name
    or the group key, depending on the scan.
    """
    unit: Any
    reason: str
    error_type: str


# =============================================================================
# SERIES
# =============================================================================

@dataclass(frozen=True)
class AggregatedPeriod:
    label: str
    start: pd.Timestamp
    end: pd.Timestamp
    value: float


@dataclass(frozen=True)
class AggregatedSeries:
    """Non-overlapping, chronologically ordered periods of one series."""
    periods: tuple[AggregatedPeriod, ...]
    granularity: str
    method: str

    def __len__(self) -> int:
        return len(self.periods)

    def __iter__(self):
        return iter(self.periods)

    def values(self) -> list[float]:
        return [p.value for p in self.periods]

    def labels(self) -> list[str]:
        return [p.label for p in self.periods]

    def to_series(self, name: Optional[str] = None) -> pd.Series:
        """Period values indexed by period start date."""
        index = pd.DatetimeIndex([p.start for p in self.periods])
        return pd.Series(self.values(), index=index, name=name, dtype=float)


@dataclass(frozen=True)
class SeriesSummary:
    count: int
    mean: float
    median: float
    stddev: float
    minimum: float
    maximum: float
    total: float
    start: pd.Timestamp
    end: pd.Timestamp


# =============================================================================
# PERIOD ANALYSIS
# =============================================================================

@dataclass(frozen=True)
class PeriodStats:
    """
    Statistics of the raw points inside one period.

    start/end are the calendar bounds of the period; first_date/last_date are
    the first and last observed dates inside it. stddev is the population
    standard deviation of the points. growth_pct is the change in total
    against the previous period, None for the first period or when the
    previous total is not positive.
    """
    label: str
    start: pd.Timestamp
    end: pd.Timestamp
    first_date: pd.Timestamp
    last_date: pd.Timestamp
    observations: int
    total: float
    mean: float
    minimum: float
    maximum: float
    stddev: float
    growth_pct: Optional[float] = None


@dataclass(frozen=True)
class PeriodOverallStats:
    """Distribution of period totals."""
    mean: float
    median: float
    stddev: float
    best_period: str
    worst_period: str
    growth_rate: Optional[float] = None
    volatility: Optional[float] = None


@dataclass(frozen=True)
class PeriodTrend:
    direction: str
    strength: float
    average_growth: Optional[float]
    positive_periods: int
    negative_periods: int
    peak_period: str
    low_period: str
    seasonality: Optional[str] = None


@dataclass(frozen=True)
class PeriodAnalysis:
    """Per-period breakdown of one sales series with overall stats and trend."""
    periods: tuple[PeriodStats, ...]
    overall: PeriodOverallStats
    trend: PeriodTrend
    granularity: str
    name: Optional[str] = None

    def to_frame(self) -> pd.DataFrame:
        """One row per period, indexed by label."""
        frame = pd.DataFrame([asdict(p) for p in self.periods])
        return frame.set_index("label")


# =============================================================================
# CORRELATION
# =============================================================================

@dataclass(frozen=True)
class CorrelationResult:
    """
    Pearson correlation between x and y at a single lag.

    Lag convention: lag L pairs x at date d with y at d + L periods.
    Positive lag means x leads y, negative lag means y leads x.
    """
    factor: str
    lag: int
    coefficient: float
    p_value: float
    n: int
    interpretation: str
    adjusted_p_value: Optional[float] = None
    granularity: str = "daily"

    @property
    def lag_description(self) -> str:
        unit = {"daily": "day", "weekly": "week", "monthly": "month"}.get(
            self.granularity, "period"
        )
        if self.lag == 0:
            return "contemporaneous"
        plural = "s" if abs(self.lag) != 1 else ""
        if self.lag > 0:
            return f"x leads y by {self.lag} {unit}{plural}"
        return f"y leads x by {-self.lag} {unit}{plural}"


@dataclass(frozen=True)
class LagScanResult:
    """Lag scan results ranked by |r|, with FDR-adjusted p-values."""
    results: tuple[CorrelationResult, ...]
    max_lag: int
    failures: tuple[UnitFailure, ...] = ()

    @property
    def best(self) -> Optional[CorrelationResult]:
        return self.results[0] if self.results else None

    def by_lag(self) -> dict[int, CorrelationResult]:
        return {r.lag: r for r in self.results}


@dataclass(frozen=True)
class WindowResult:
    window_start: pd.Timestamp
    window_end: pd.Timestamp
    best_lag: int
    coefficient: float
    p_value: float
    adjusted_p_value: float
    n: int
    result: CorrelationResult


@dataclass(frozen=True)
class WindowedScanResult:
    windows: tuple[WindowResult, ...]
    window_days: int
    step_days: int
    max_lag: int
    failures: tuple[UnitFailure, ...] = ()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([
            {
                "window_start": w.window_start,
                "window_end": w.window_end,
                "best_lag": w.best_lag,
                "r": w.coefficient,
                "p": w.p_value,
                "p_adj": w.adjusted_p_value,
                "n": w.n,
            }
            for w in self.windows
        ], columns=["window_start", "window_end", "best_lag", "r", "p", "p_adj", "n"])


@dataclass(frozen=True)
class FactorSweepResult:
    """Strongest factor/lag relationships across several external factors."""
    results: tuple[CorrelationResult, ...]
    scans: dict = field(default_factory=dict)
    failures: tuple[UnitFailure, ...] = ()


# =============================================================================
# REGRESSION
# =============================================================================

@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    r_squared: float
    prediction: float
    x_value: float
    description: str

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


# =============================================================================
# GRANGER CAUSALITY
# =============================================================================

GRANGER_DIRECTIONS = ("none", "A_to_B", "B_to_A", "bidirectional")


@dataclass(frozen=True)
class GrangerResult:
    order: int
    f_stat_a_to_b: float
    p_value_a_to_b: float
    f_stat_b_to_a: float
    p_value_b_to_a: float
    direction: str
    n: int
    a_label: str = "A"
    b_label: str = "B"

    @property
    def description(self) -> str:
        if self.direction == "bidirectional":
            return f"{self.a_label} and {self.b_label} Granger-cause each other"
        if self.direction == "A_to_B":
            return f"{self.a_label} Granger-causes {self.b_label}"
        if self.direction == "B_to_A":
            return f"{self.b_label} Granger-causes {self.a_label}"
        return f"no Granger causality between {self.a_label} and {self.b_label}"


@dataclass(frozen=True)
class GrangerOrderScan:
    results: tuple[GrangerResult, ...]
    failures: tuple[UnitFailure, ...] = ()

    @property
    def best_a_to_b(self) -> Optional[GrangerResult]:
        if not self.results:
            return None
        return min(self.results, key=lambda r: (r.p_value_a_to_b, r.order))

    @property
    def best_b_to_a(self) -> Optional[GrangerResult]:
        if not self.results:
            return None
        return min(self.results, key=lambda r: (r.p_value_b_to_a, r.order))


# =============================================================================
# ANOMALIES
# =============================================================================

@dataclass(frozen=True)
class AnomalyRecord:
    period: str
    actual: float
    expected: float
    z_score: float
    severity: str
    kind: str
    period_start: Optional[pd.Timestamp] = None
    period_end: Optional[pd.Timestamp] = None
    group: Optional[str] = None

    @property
    def deviation(self) -> float:
        return abs(self.actual - self.expected)


@dataclass(frozen=True)
class AnomalySweepResult:
    anomalies: dict = field(default_factory=dict)
    failures: tuple[UnitFailure, ...] = ()

    def all_records(self) -> list[AnomalyRecord]:
        records = [r for group in self.anomalies.values() for r in group]
        return sorted(records, key=lambda r: -abs(r.z_score))


# =============================================================================
# STATIONARITY
# =============================================================================

@dataclass(frozen=True)
class StationarityReport:
    name: str
    n_observations: int
    adf_statistic: float
    adf_pvalue: float
    adf_stationary: bool
    kpss_statistic: float
    kpss_pvalue: float
    kpss_stationary: bool
    conclusion: str
    differencing_needed: bool
