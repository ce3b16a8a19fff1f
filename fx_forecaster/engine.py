"""
Forecast Engine Module - Public Entry Point of the FX Rate Forecasting Engine

Validates a forecast request, normalises the historical series and dispatches
to the autoregressive or the sequence forecaster.

Only request-level problems (missing or empty series, bad horizon, unknown
strategy) raise InvalidRequestError. Every other condition ends in a
ForecastResult, which is empty when no forecast is possible.

Usage Examples:
    result = predict(rates, "autoregressive", horizon=7)
    if result.is_empty:
        print("Prediction not possible")
    else:
        print(result.to_series())

    engine = ForecastEngine({'sequence': {'epochs': 10}})
    result = engine.predict(rates, "lstm", horizon=3)
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from fx_forecaster.arima_engine import forecast_autoregressive
from fx_forecaster.config_loader import get_default_config, merge_config
from fx_forecaster.exceptions import DataValidationError, InvalidRequestError
from fx_forecaster.logger_config import get_logger
from fx_forecaster.lstm_engine import forecast_sequence
from fx_forecaster.preprocessing import to_series


logger = get_logger(__name__)


class Strategy(str, Enum):
    """Forecasting strategy selected per request."""

    AUTOREGRESSIVE = "autoregressive"
    SEQUENCE = "sequence"

    @classmethod
    def parse(cls, value: Union[str, "Strategy"]) -> "Strategy":
        """
        Resolve a strategy name, accepting 'arima' and 'lstm' as aliases.

        Raises:
            InvalidRequestError: If the name is not a known strategy

        Examples:
            >>> Strategy.parse("LSTM")
            <Strategy.SEQUENCE: 'sequence'>
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            name = _STRATEGY_ALIASES.get(name, name)
            for strategy in cls:
                if strategy.value == name:
                    return strategy

        known = ", ".join([s.value for s in cls] + list(_STRATEGY_ALIASES))
        raise InvalidRequestError(
            f"Unknown strategy {value!r}; expected one of: {known}",
            parameter_name="strategy",
            invalid_value=value
        )


_STRATEGY_ALIASES = {
    "arima": Strategy.AUTOREGRESSIVE.value,
    "lstm": Strategy.SEQUENCE.value,
}


@dataclass(frozen=True, eq=False)
class ForecastResult(Sequence):
    """
    Ordered future rates for one request.

    Behaves as a read-only sequence of floats. An empty result means the
    forecast was not possible (too little data or a failed training run).

    Attributes:
        values (np.ndarray): Forecast rates, one per future step
        strategy (Strategy): Strategy that produced the values
        last_observed_date (pd.Timestamp, optional): Date of the last input
            point, used to date the forecast steps
    """

    values: np.ndarray
    strategy: Strategy
    last_observed_date: Optional[pd.Timestamp] = None

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float64).reshape(-1)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @property
    def is_empty(self) -> bool:
        return self.values.size == 0

    def __len__(self) -> int:
        return int(self.values.size)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [float(v) for v in self.values[index]]
        return float(self.values[index])

    def __repr__(self) -> str:
        return f"ForecastResult(strategy={self.strategy.value}, values={self.tolist()})"

    def tolist(self) -> list:
        return [float(v) for v in self.values]

    def to_series(self) -> pd.Series:
        """
        Attach future dates to the forecast.

        Step i (1-based) is dated last_observed_date + i days. Without a
        known last date the index is the step number.
        """
        if self.last_observed_date is not None:
            index = pd.date_range(
                self.last_observed_date + pd.Timedelta(days=1),
                periods=len(self),
                freq="D",
                name="date"
            )
        else:
            index = pd.RangeIndex(1, len(self) + 1, name="step")
        return pd.Series(self.values.copy(), index=index, name="forecast")


def _is_empty_input(series: Any) -> bool:
    if isinstance(series, (pd.Series, pd.DataFrame)):
        return series.empty
    if hasattr(series, "__len__"):
        return len(series) == 0
    return False


class ForecastEngine:
    """
    Stateless forecasting façade.

    Holds a validated configuration and nothing else; every predict() call
    builds and discards its own models. Autoregressive requests touch no
    shared state and may run from concurrent threads. Sequence requests
    reseed the process-wide Python, NumPy and TensorFlow generators and
    clear the global Keras session when they finish, so hosts must
    serialise them (one at a time per process).

    Args:
        config (dict, optional): Overrides merged over the default configuration

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = merge_config(get_default_config(), config or {})

    def predict(self, series, strategy: Union[str, Strategy], horizon: int) -> ForecastResult:
        """
        Forecast `horizon` future rates from a historical series.

        Args:
            series: pd.Series, mapping date -> rate, iterable of (date, rate)
                pairs, plain sequence of numbers, or a rate payload
            strategy (str or Strategy): 'autoregressive' ('arima') or 'sequence' ('lstm')
            horizon (int): Number of future steps, > 0

        Returns:
            ForecastResult: Exactly `horizon` values, or empty when no forecast
            is possible

        Raises:
            InvalidRequestError: If the series is missing or empty, the horizon
                is not a positive integer, or the strategy is unknown

        Examples:
            >>> engine = ForecastEngine()
            >>> engine.predict([1.10] * 30, "autoregressive", 7).tolist()
            [1.1, 1.1, 1.1, 1.1, 1.1, 1.1, 1.1]
        """
        if series is None:
            raise InvalidRequestError("series is required", parameter_name="series")

        if (
            not isinstance(horizon, (int, np.integer))
            or isinstance(horizon, bool)
            or horizon <= 0
        ):
            raise InvalidRequestError(
                f"horizon must be a positive integer, got {horizon!r}",
                parameter_name="horizon",
                invalid_value=horizon
            )
        horizon = int(horizon)

        strategy = Strategy.parse(strategy)

        if not isinstance(series, (pd.Series, pd.DataFrame)) and not hasattr(series, "__len__") \
                and hasattr(series, "__iter__"):
            series = list(series)

        if _is_empty_input(series):
            raise InvalidRequestError("series is empty", parameter_name="series")

        try:
            rates = to_series(series)
        except (TypeError, ValueError, DataValidationError) as e:
            raise InvalidRequestError(
                f"series could not be read: {str(e)}",
                parameter_name="series"
            ) from e

        last_date = rates.index[-1] if isinstance(rates.index, pd.DatetimeIndex) and len(rates) else None

        logger.info(
            f"Forecast request: strategy={strategy.value}, horizon={horizon}, "
            f"points={len(rates)}"
        )

        if strategy is Strategy.AUTOREGRESSIVE:
            params = self.config['autoregressive']
            values = forecast_autoregressive(
                rates.to_numpy(),
                horizon,
                p=params['p'],
                d=params['d'],
                minimum_margin=params['minimum_margin'],
                singular_threshold=params['singular_threshold']
            )
        else:
            params = self.config['sequence']
            values = forecast_sequence(
                rates.to_numpy(),
                horizon,
                window_size=params['window_size'],
                units=params['units'],
                epochs=params['epochs'],
                batch_size=params['batch_size'],
                learning_rate=params['learning_rate'],
                seed=params['seed']
            )

        result = ForecastResult(values=values, strategy=strategy, last_observed_date=last_date)

        if result.is_empty:
            logger.warning(f"Prediction not possible with strategy {strategy.value}")
        else:
            logger.info(f"Forecast complete: {len(result)} value(s)")

        return result


def predict(series, strategy: Union[str, Strategy], horizon: int,
            config: Optional[Dict[str, Any]] = None) -> ForecastResult:
    """Forecast with a ForecastEngine built from `config` (defaults when omitted)."""
    return ForecastEngine(config).predict(series, strategy, horizon)
