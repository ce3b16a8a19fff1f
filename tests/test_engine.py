"""
Unit Tests for the Forecast Engine

Covers request validation, strategy dispatch, the ForecastResult contract
and the end-to-end forecasting scenarios for both strategies.
"""

import numpy as np
import pandas as pd
import pytest

from fx_forecaster import engine as engine_module
from fx_forecaster.engine import ForecastEngine, ForecastResult, Strategy, predict
from fx_forecaster.exceptions import ConfigurationError, InvalidRequestError


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def fast_engine() -> ForecastEngine:
    """Engine with a short sequence training run."""
    return ForecastEngine({'sequence': {'epochs': 2}})


@pytest.fixture
def dated_rates() -> pd.Series:
    rng = np.random.default_rng(5)
    values = 0.91 + np.cumsum(rng.normal(0, 0.002, 40))
    return pd.Series(values, index=pd.date_range("2024-03-01", periods=40, freq="D"))


# ============================================================================
# REQUEST VALIDATION
# ============================================================================

class TestRequestValidation:

    def test_none_series_rejected(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            predict(None, "autoregressive", 3)

        assert exc_info.value.parameter_name == "series"

    @pytest.mark.parametrize("empty", [[], {}, pd.Series([], dtype=float)])
    def test_empty_series_rejected(self, empty):
        with pytest.raises(InvalidRequestError, match="empty"):
            predict(empty, "autoregressive", 3)

    @pytest.mark.parametrize("horizon", [0, -1, 1.5, True, "3", None])
    def test_invalid_horizon_rejected(self, horizon):
        with pytest.raises(InvalidRequestError) as exc_info:
            predict([1.0] * 30, "autoregressive", horizon)

        assert exc_info.value.parameter_name == "horizon"

    def test_unknown_strategy_rejected(self):
        with pytest.raises(InvalidRequestError, match="Unknown strategy"):
            predict([1.0] * 30, "prophet", 3)

    def test_unreadable_series_rejected(self):
        with pytest.raises(InvalidRequestError, match="could not be read"):
            predict({"not-a-date": 1.0, "also-not": 2.0}, "autoregressive", 1)

    def test_invalid_request_is_value_error(self):
        with pytest.raises(ValueError):
            predict([1.0] * 30, "autoregressive", 0)

    def test_numpy_integer_horizon_accepted(self):
        assert len(predict([1.0] * 30, "autoregressive", np.int64(2))) == 2

    def test_all_non_finite_series_gives_empty_result(self):
        result = predict([float("nan")] * 10, "autoregressive", 3)

        assert result.is_empty, "Nothing usable is a 'not possible' outcome, not a request error"


# ============================================================================
# STRATEGY
# ============================================================================

class TestStrategy:

    @pytest.mark.parametrize("name, expected", [
        ("autoregressive", Strategy.AUTOREGRESSIVE),
        ("arima", Strategy.AUTOREGRESSIVE),
        ("ARIMA", Strategy.AUTOREGRESSIVE),
        ("sequence", Strategy.SEQUENCE),
        (" lstm ", Strategy.SEQUENCE),
        (Strategy.SEQUENCE, Strategy.SEQUENCE),
    ])
    def test_parse(self, name, expected):
        assert Strategy.parse(name) is expected

    def test_parse_rejects_non_string(self):
        with pytest.raises(InvalidRequestError):
            Strategy.parse(3)


# ============================================================================
# FORECAST RESULT
# ============================================================================

class TestForecastResult:

    def test_sequence_behaviour(self):
        result = ForecastResult(values=[1.0, 2.0, 3.0], strategy=Strategy.AUTOREGRESSIVE)

        assert len(result) == 3
        assert result[0] == 1.0 and result[-1] == 3.0
        assert result[1:] == [2.0, 3.0]
        assert list(result) == [1.0, 2.0, 3.0]
        assert result
        assert 2.0 in result

    def test_empty_result_is_falsy(self):
        result = ForecastResult(values=[], strategy=Strategy.SEQUENCE)

        assert result.is_empty
        assert not result
        assert result.tolist() == []

    def test_values_read_only(self):
        result = ForecastResult(values=np.array([1.0]), strategy=Strategy.AUTOREGRESSIVE)

        with pytest.raises(ValueError):
            result.values[0] = 5.0

    def test_values_copied_from_input(self):
        source = np.array([1.0, 2.0])
        result = ForecastResult(values=source, strategy=Strategy.AUTOREGRESSIVE)
        source[0] = 9.0

        assert result[0] == 1.0

    def test_to_series_dates_follow_last_observation(self):
        result = ForecastResult(
            values=[1.1, 1.2],
            strategy=Strategy.AUTOREGRESSIVE,
            last_observed_date=pd.Timestamp("2024-01-31")
        )

        series = result.to_series()

        assert list(series.index) == [pd.Timestamp("2024-02-01"), pd.Timestamp("2024-02-02")]
        assert series.tolist() == [1.1, 1.2]

    def test_to_series_without_dates_uses_steps(self):
        series = ForecastResult(values=[1.1, 1.2], strategy=Strategy.SEQUENCE).to_series()

        assert list(series.index) == [1, 2]


# ============================================================================
# AUTOREGRESSIVE SCENARIOS
# ============================================================================

class TestAutoregressiveScenarios:

    def test_constant_series_flat_forecast(self):
        series = {str(d.date()): 1.10 for d in pd.date_range("2024-01-01", periods=30, freq="D")}

        result = predict(series, "autoregressive", 7)

        assert len(result) == 7
        np.testing.assert_allclose(result.values, 1.10, atol=1e-6)

    def test_linear_trend(self):
        result = predict(list(range(1, 22)), "autoregressive", 3)

        np.testing.assert_allclose(result.values, [22, 23, 24], atol=0.5)

    def test_minimum_length_boundary(self):
        engine = ForecastEngine()
        p = engine.config['autoregressive']['p']
        d = engine.config['autoregressive']['d']
        series = [1.10, 1.12, 1.11, 1.13, 1.12]

        assert engine.predict(series[:p + d], "autoregressive", 2).is_empty
        assert len(engine.predict(series[:p + d + 1], "autoregressive", 2)) == 2

    @pytest.mark.parametrize("horizon", [1, 7, 30])
    def test_horizon_correctness(self, dated_rates, horizon):
        assert len(predict(dated_rates, "arima", horizon)) == horizon

    def test_result_carries_last_date(self, dated_rates):
        result = predict(dated_rates, "autoregressive", 3)

        assert result.last_observed_date == dated_rates.index[-1]
        assert result.to_series().index[0] == dated_rates.index[-1] + pd.Timedelta(days=1)

    def test_unsorted_input_sorted_before_fit(self, dated_rates):
        shuffled = dated_rates.sample(frac=1.0, random_state=0)

        np.testing.assert_allclose(
            predict(shuffled, "autoregressive", 3).values,
            predict(dated_rates, "autoregressive", 3).values
        )

    def test_non_finite_points_dropped(self):
        series = [1.0, 2.0, float("nan"), 3.0, 4.0, float("inf"), 5.0, 6.0]

        result = predict(series, "autoregressive", 2)

        np.testing.assert_allclose(result.values, [7.0, 8.0], atol=1e-6)

    def test_config_override_changes_order(self):
        engine = ForecastEngine({'autoregressive': {'p': 5}})

        assert engine.predict([1.0, 1.1, 1.2, 1.3, 1.4, 1.5], "autoregressive", 1).is_empty

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigurationError):
            ForecastEngine({'autoregressive': {'d': 5}})

    def test_global_random_state_untouched(self, dated_rates):
        np.random.seed(7)
        expected = np.random.rand()
        np.random.seed(7)

        predict(dated_rates, "autoregressive", 3)

        assert np.random.rand() == expected, "Autoregressive requests must not reseed shared RNGs"

    def test_unknown_sequence_parameter_rejected_at_construction(self):
        with pytest.raises(ConfigurationError, match="epoch"):
            ForecastEngine({'sequence': {'epoch': 2}})

    def test_generator_input(self):
        result = predict((float(v) for v in range(1, 22)), "autoregressive", 1)

        assert len(result) == 1


# ============================================================================
# SEQUENCE SCENARIOS
# ============================================================================

class TestSequenceScenarios:

    def test_short_series_empty_without_exception(self, fast_engine):
        result = fast_engine.predict([1.1, 1.2, 1.15, 1.18, 1.2], "sequence", 3)

        assert result.is_empty
        assert result.strategy is Strategy.SEQUENCE

    def test_minimum_length_boundary(self, fast_engine, dated_rates):
        w = fast_engine.config['sequence']['window_size']

        assert fast_engine.predict(dated_rates.iloc[:w], "sequence", 2).is_empty
        assert len(fast_engine.predict(dated_rates.iloc[:w + 1], "sequence", 2)) == 2

    def test_horizon_correctness(self, fast_engine, dated_rates):
        result = fast_engine.predict(dated_rates, "lstm", 4)

        assert len(result) == 4
        assert np.all(np.isfinite(result.values))

    def test_sequence_parameters_passed_from_config(self, monkeypatch):
        captured = {}

        def fake_forecast(series, horizon, **kwargs):
            captured.update(kwargs)
            return np.full(horizon, series[-1])

        monkeypatch.setattr(engine_module, "forecast_sequence", fake_forecast)
        engine = ForecastEngine({'sequence': {'epochs': 3, 'seed': None}})

        result = engine.predict([1.0] * 30, "sequence", 2)

        assert result.tolist() == [1.0, 1.0]
        assert captured == {
            'window_size': 20, 'units': 16, 'epochs': 3,
            'batch_size': 8, 'learning_rate': 0.01, 'seed': None,
        }
