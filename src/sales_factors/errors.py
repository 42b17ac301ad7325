"""Error types raised by the analysis core."""


class AnalysisError(ValueError):
    """Base class for analysis failures."""

    pass


class InsufficientData(AnalysisError):
    """Raised when a sample is below the estimator's minimum size."""

    pass


class DegenerateInput(AnalysisError):
    """Raised for zero variance, non-finite values or singular regressions."""

    pass


class InvalidParameter(AnalysisError):
    """Raised for out-of-range arguments (lags, windows, thresholds, labels)."""

    pass
