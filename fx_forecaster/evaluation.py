"""
Evaluation Module for the FX Rate Forecasting Engine

Accuracy metrics and a hold-out backtest: the last `horizon` observations
are hidden, forecast from the remaining history and compared with what
actually happened.

Functions:
    - calculate_rmse: Root Mean Squared Error
    - calculate_mae: Mean Absolute Error
    - evaluate_holdout: Backtest one strategy on the tail of a series
"""

from typing import Any, Dict, Optional, Tuple

import numpy as np

from fx_forecaster.engine import ForecastEngine
from fx_forecaster.exceptions import DataValidationError, InvalidRequestError
from fx_forecaster.logger_config import get_logger
from fx_forecaster.preprocessing import to_series


logger = get_logger(__name__)


def _validated_pair(actual, predicted) -> Tuple[np.ndarray, np.ndarray]:
    """Convert both inputs to float arrays of equal shape without NaN."""
    try:
        actual = np.asarray(actual, dtype=np.float64)
        predicted = np.asarray(predicted, dtype=np.float64)
    except TypeError as e:
        error_msg = f"Metric inputs must be numeric: {str(e)}"
        logger.error(error_msg)
        raise ValueError(error_msg) from e

    if actual.size == 0 or predicted.size == 0:
        error_msg = "Input arrays cannot be empty"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if actual.shape != predicted.shape:
        error_msg = (
            f"Mismatched array lengths: actual ({actual.shape}) vs predicted ({predicted.shape})"
        )
        logger.error(error_msg)
        raise ValueError(error_msg)

    if np.isnan(actual).any() or np.isnan(predicted).any():
        error_msg = "Input arrays contain NaN values"
        logger.error(error_msg)
        raise ValueError(error_msg)

    return actual, predicted


def calculate_rmse(actual, predicted) -> float:
    """
    Calculate Root Mean Squared Error (RMSE): √(mean of squared errors).

    Args:
        actual (array-like): Observed rates
        predicted (array-like): Forecast rates

    Returns:
        float: RMSE value

    Raises:
        ValueError: If arrays are empty, have mismatched lengths, or contain NaN

    Examples:
        >>> round(calculate_rmse([1, 2, 3, 4, 5], [1.1, 2.1, 2.9, 4.2, 4.8]), 5)
        0.14832
    """
    actual, predicted = _validated_pair(actual, predicted)
    rmse = float(np.sqrt(np.mean((actual - predicted) ** 2)))
    logger.info(f"RMSE calculated: {rmse:.6f}")
    return rmse


def calculate_mae(actual, predicted) -> float:
    """
    Calculate Mean Absolute Error (MAE): mean of absolute errors.

    Examples:
        >>> round(calculate_mae([1, 2, 3, 4, 5], [1.1, 2.1, 2.9, 4.2, 4.8]), 5)
        0.14
    """
    actual, predicted = _validated_pair(actual, predicted)
    mae = float(np.mean(np.abs(actual - predicted)))
    logger.info(f"MAE calculated: {mae:.6f}")
    return mae


def evaluate_holdout(
    series,
    strategy,
    horizon: int,
    engine: Optional[ForecastEngine] = None
) -> Dict[str, Any]:
    """
    Backtest a strategy on the last `horizon` observations of a series.

    The series is split into history (all but the last `horizon` points)
    and hold-out. A forecast made from the history is scored against the
    hold-out. When that forecast is empty the metrics are None.

    Args:
        series: Rate data in any form accepted by ForecastEngine.predict
        strategy (str or Strategy): Strategy to evaluate
        horizon (int): Number of points to hold out and forecast
        engine (ForecastEngine, optional): Engine to use; default configuration otherwise

    Returns:
        dict: {
            'strategy': str,
            'horizon': int,
            'rmse': float or None,
            'mae': float or None,
            'actual': list of float,
            'predicted': list of float (empty when no forecast was possible)
        }

    Raises:
        InvalidRequestError: If the request is invalid or the series does not
            hold more than `horizon` points

    Examples:
        >>> report = evaluate_holdout([float(v) for v in range(1, 31)], "autoregressive", 5)
        >>> report['rmse'] < 1e-9
        True
    """
    engine = engine or ForecastEngine()

    if series is None:
        raise InvalidRequestError("series is required", parameter_name="series")

    try:
        rates = to_series(series)
    except (TypeError, ValueError, DataValidationError) as e:
        raise InvalidRequestError(
            f"series could not be read: {str(e)}",
            parameter_name="series"
        ) from e

    if (
        not isinstance(horizon, (int, np.integer))
        or isinstance(horizon, bool)
        or horizon <= 0
        or len(rates) <= horizon
    ):
        raise InvalidRequestError(
            f"Hold-out of {horizon!r} point(s) needs a positive integer below the "
            f"series length ({len(rates)})",
            parameter_name="horizon",
            invalid_value=horizon
        )

    history = rates.iloc[:-horizon]
    actual = rates.iloc[-horizon:].to_numpy()

    logger.info(
        f"Hold-out evaluation: {len(history)} history point(s), {horizon} held out"
    )

    result = engine.predict(history, strategy, horizon)

    report = {
        'strategy': result.strategy.value,
        'horizon': int(horizon),
        'rmse': None,
        'mae': None,
        'actual': [float(v) for v in actual],
        'predicted': result.tolist(),
    }

    if result.is_empty:
        logger.warning("Hold-out forecast not possible; metrics unavailable")
        return report

    report['rmse'] = calculate_rmse(actual, result.values)
    report['mae'] = calculate_mae(actual, result.values)

    logger.info(
        f"Hold-out metrics for {report['strategy']}: "
        f"RMSE={report['rmse']:.6f}, MAE={report['mae']:.6f}"
    )
    return report
