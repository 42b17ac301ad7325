"""
Shared pytest fixtures for Sales Factors tests.

This module provides common fixtures used across test files:
- Daily series builders
- Correlated / lagged / independent series pairs
- Sales series with known anomalies
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add src to path for package imports
PROJECT_ROOT = Path(__file__).parent.parent
SRC_ROOT = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_ROOT))


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as running many repeated simulations"
    )


# =============================================================================
# HELPERS
# =============================================================================

def daily_series(values, start: str = "2024-01-01", name: str = None) -> pd.Series:
    """Daily series starting at start with one value per consecutive day."""
    dates = pd.date_range(start, periods=len(values), freq="D")
    return pd.Series(np.asarray(values, dtype=float), index=dates, name=name)


# =============================================================================
# SERIES FIXTURES
# =============================================================================

@pytest.fixture
def make_series():
    """Factory fixture: daily_series(values, start="2024-01-01", name=None)."""
    return daily_series


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture
def noisy_pair(rng):
    """Two correlated daily series (r around 0.9), 60 days."""
    base = rng.normal(100, 10, 60)
    other = 0.8 * base + rng.normal(0, 4, 60)
    return daily_series(base, name="x"), daily_series(other, name="y")


@pytest.fixture
def lag_two_pair():
    """
    A leads B by exactly 2 days.

    B_t = A_{t-2} for t >= 2; the first two days of B repeat A_0.
    """
    a = [10, 12, 11, 13, 12, 14, 13, 15, 14, 16]
    b = [a[0], a[0]] + a[:-2]
    return daily_series(a, name="A"), daily_series(b, name="B")


@pytest.fixture
def spike_series():
    """29 days of 100 followed by one day of 500."""
    return daily_series([100.0] * 29 + [500.0], name="sales")


@pytest.fixture
def constant_series():
    """30 days of 100."""
    return daily_series([100.0] * 30, name="constant")


@pytest.fixture
def granger_pair(rng):
    """x drives y with a one-day delay (y_t = 0.3 y_{t-1} + 0.6 x_{t-1} + e)."""
    n = 150
    x = rng.normal(0, 1, n)
    y = np.zeros(n)
    for t in range(1, n):
        y[t] = 0.3 * y[t - 1] + 0.6 * x[t - 1] + rng.normal(0, 0.5)
    return daily_series(x, name="x"), daily_series(y, name="y")
