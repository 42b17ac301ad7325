"""
Tests for stationarity.py - ADF/KPSS checks and differencing

Tests cover:
1. check_stationarity() - interpretation of ADF and KPSS together
2. make_stationary() - number of differences applied
3. Input validation (too short, constant)
"""

import numpy as np
import pytest

from sales_factors.analysis.stationarity import check_stationarity, make_stationary
from sales_factors.errors import DegenerateInput, InsufficientData


@pytest.fixture
def white_noise(make_series, rng):
    return make_series(rng.normal(0, 1, 200))


@pytest.fixture
def quadratic(make_series, rng):
    """t^2 trend plus unit noise; needs two differences."""
    t = np.arange(100, dtype=float)
    return make_series(t ** 2 + rng.normal(0, 1, 100))


class TestCheckStationarity:
    """Tests for check_stationarity()."""

    def test_white_noise_is_stationary(self, white_noise):
        report = check_stationarity(white_noise, name="noise", alpha=0.01)
        assert report.adf_stationary
        assert report.kpss_stationary
        assert report.conclusion == "stationary"
        assert not report.differencing_needed
        assert report.n_observations == 200
        assert report.name == "noise"

    def test_quadratic_trend_needs_differencing(self, quadratic):
        report = check_stationarity(quadratic)
        assert not report.kpss_stationary
        assert report.conclusion in ("non_stationary", "trend_stationary")
        assert report.differencing_needed

    def test_too_short(self, make_series, rng):
        with pytest.raises(InsufficientData):
            check_stationarity(make_series(rng.normal(size=10)))

    def test_constant(self, constant_series):
        with pytest.raises(DegenerateInput):
            check_stationarity(constant_series)


class TestMakeStationary:
    """Tests for make_stationary()."""

    def test_already_stationary(self, white_noise):
        result, applied = make_stationary(white_noise, alpha=0.01)
        assert applied == 0
        assert len(result) == 200

    def test_quadratic_needs_two_differences(self, quadratic):
        result, applied = make_stationary(quadratic, max_differences=2)
        assert applied == 2
        assert len(result) == 98

    def test_max_differences_caps(self, quadratic):
        _, applied = make_stationary(quadratic, max_differences=1)
        assert applied == 1

    def test_input_not_modified(self, quadratic):
        before = quadratic.copy()
        make_stationary(quadratic)
        assert quadratic.equals(before)

    def test_constant_is_returned_unchanged(self, constant_series):
        result, applied = make_stationary(constant_series)
        assert applied == 0
        assert len(result) == len(constant_series)
