"""
Unit Tests for the ARIMA Engine Module

Covers the AR(p) least-squares fit, the multi-step forecast with
integration back to rates, and the ADF stationarity diagnostic. The fit is
cross-checked against statsmodels OLS on the same design matrix.
"""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from fx_forecaster.arima_engine import (
    ARModel,
    check_stationarity,
    fit_ar,
    fit_autoregressive,
    forecast_autoregressive,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def ar2_process() -> np.ndarray:
    """
    Simulated stationary AR(2): y[t] = 0.01 + 0.5 y[t-1] - 0.3 y[t-2] + e[t].

    Returns:
        np.ndarray: 2000 values
    """
    rng = np.random.default_rng(42)
    noise = rng.normal(0, 0.1, 2000)
    y = np.zeros(2000)
    for t in range(2, 2000):
        y[t] = 0.01 + 0.5 * y[t - 1] - 0.3 * y[t - 2] + noise[t]
    return y


@pytest.fixture
def fx_rates() -> pd.Series:
    """Daily USD/EUR-like random walk with a small drift."""
    rng = np.random.default_rng(11)
    values = 0.92 + np.cumsum(rng.normal(0.0002, 0.003, 120))
    return pd.Series(values, index=pd.date_range("2024-01-01", periods=120, freq="D"))


# ============================================================================
# AR MODEL
# ============================================================================

class TestARModel:

    def test_predict_next_uses_most_recent_lag_first(self):
        model = ARModel(intercept=1.0, coefficients=(0.5, 0.25))

        assert model.predict_next([4.0, 8.0]) == pytest.approx(1.0 + 0.5 * 8.0 + 0.25 * 4.0)

    def test_order(self):
        assert ARModel(intercept=0.0, coefficients=(0.1, 0.2, 0.3)).order == 3

    def test_frozen(self):
        model = ARModel(intercept=0.0, coefficients=(0.1,))

        with pytest.raises(AttributeError):
            model.intercept = 1.0


# ============================================================================
# FIT
# ============================================================================

class TestFitAR:

    def test_recovers_known_coefficients(self, ar2_process):
        model = fit_ar(ar2_process, p=2)

        assert model.coefficients[0] == pytest.approx(0.5, abs=0.1)
        assert model.coefficients[1] == pytest.approx(-0.3, abs=0.1)

    def test_matches_statsmodels_ols(self, ar2_process):
        """Normal-equation solution must agree with a reference OLS fit."""
        p = 2
        y = ar2_process
        lags = np.column_stack([y[p - lag: len(y) - lag] for lag in range(1, p + 1)])
        reference = sm.OLS(y[p:], sm.add_constant(lags)).fit()

        model = fit_ar(y, p=p)

        assert model.intercept == pytest.approx(reference.params[0], abs=1e-8)
        np.testing.assert_allclose(model.coefficients, reference.params[1:], atol=1e-8)

    def test_deterministic(self, ar2_process):
        assert fit_ar(ar2_process, p=3) == fit_ar(ar2_process, p=3)

    def test_too_short_returns_none(self):
        assert fit_ar([0.1, 0.2], p=2) is None

    def test_constant_lags_aliased_with_intercept(self):
        model = fit_ar([0.01] * 10, p=2)

        assert model.intercept == pytest.approx(0.01)
        assert model.coefficients == (0.0, 0.0)

    @pytest.mark.parametrize("bad_p", [0, -1, 1.5, True])
    def test_invalid_order_raises(self, bad_p):
        with pytest.raises(ValueError):
            fit_ar([1.0, 2.0, 3.0], p=bad_p)

    def test_fit_autoregressive_differences_first(self, ar2_process):
        levels = np.cumsum(ar2_process)

        direct = fit_ar(ar2_process[1:], p=2)
        via_levels = fit_autoregressive(levels, p=2, d=1)

        assert via_levels.intercept == pytest.approx(direct.intercept, abs=1e-9)
        np.testing.assert_allclose(via_levels.coefficients, direct.coefficients, atol=1e-9)


# ============================================================================
# FORECAST
# ============================================================================

class TestForecastAutoregressive:

    def test_constant_series_flat(self):
        forecast = forecast_autoregressive([1.10] * 30, horizon=7, p=2, d=1)

        assert len(forecast) == 7
        np.testing.assert_allclose(forecast, 1.10, atol=1e-6)

    def test_linear_trend_continues(self):
        series = [float(v) for v in range(1, 22)]

        forecast = forecast_autoregressive(series, horizon=3)

        np.testing.assert_allclose(forecast, [22.0, 23.0, 24.0], atol=0.5)

    def test_minimum_length_boundary(self):
        series = [1.0, 1.2, 1.1, 1.3]
        p, d = 2, 1

        assert forecast_autoregressive(series[:p + d], horizon=2, p=p, d=d).size == 0
        assert len(forecast_autoregressive(series[:p + d + 1], horizon=2, p=p, d=d)) == 2

    def test_minimum_margin_respected(self):
        series = np.linspace(1.0, 2.0, 7)

        assert forecast_autoregressive(series, horizon=1, minimum_margin=5).size == 0
        assert forecast_autoregressive(series, horizon=1, minimum_margin=4).size == 1

    @pytest.mark.parametrize("horizon", [1, 5, 30])
    def test_horizon_length(self, fx_rates, horizon):
        assert len(forecast_autoregressive(fx_rates, horizon=horizon)) == horizon

    def test_forecast_stays_near_last_rate(self, fx_rates):
        forecast = forecast_autoregressive(fx_rates, horizon=5)

        assert np.all(np.abs(forecast - fx_rates.iloc[-1]) < 0.05), \
            "A short-horizon FX forecast should stay close to the last rate"

    def test_no_differencing(self, ar2_process):
        forecast = forecast_autoregressive(ar2_process, horizon=4, d=0)

        model = fit_ar(ar2_process, p=2)
        assert forecast[0] == pytest.approx(model.predict_next(ar2_process))

    def test_second_order_integration(self):
        quadratic = np.array([float(t * t) for t in range(1, 16)])

        forecast = forecast_autoregressive(quadratic, horizon=3, p=1, d=2)

        np.testing.assert_allclose(forecast, [256.0, 289.0, 324.0], atol=1e-6)

    def test_deterministic(self, fx_rates):
        np.testing.assert_array_equal(
            forecast_autoregressive(fx_rates, horizon=5),
            forecast_autoregressive(fx_rates, horizon=5)
        )

    def test_singular_fit_is_flat_not_empty(self):
        # Differences alternate 1, 0: lag-1 + lag-2 equals the intercept column,
        # so the normal equations are singular.
        series = np.cumsum([0.0] + [1.0, 0.0] * 6)

        forecast = forecast_autoregressive(series, horizon=3, p=2, d=1)

        np.testing.assert_allclose(forecast, series[-1], atol=1e-9)


# ============================================================================
# STATIONARITY
# ============================================================================

class TestCheckStationarity:

    def test_white_noise_is_stationary(self):
        np.random.seed(42)
        is_stationary, p_value = check_stationarity(np.random.randn(200))

        assert is_stationary, f"White noise should be stationary (p={p_value:.4f})"

    def test_random_walk_is_not_stationary(self):
        np.random.seed(42)
        is_stationary, p_value = check_stationarity(np.cumsum(np.random.randn(200)))

        assert not is_stationary, f"Random walk should not be stationary (p={p_value:.4f})"

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            check_stationarity([])

    def test_nan_raises(self):
        with pytest.raises(ValueError, match="NaN"):
            check_stationarity([1.0, np.nan, 2.0])
