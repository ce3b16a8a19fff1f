"""
FX Rate Forecaster - Core Modules

Forecasts future exchange rates from a historical daily series with either a
fixed-order autoregressive model on differenced rates or a windowed LSTM
rolled forward step by step.

Modules:
    - preprocessing: Rate loading, series cleaning, differencing/integration
    - linear_algebra: Transpose, multiply and the Gauss-Jordan solver
    - arima_engine: AR(p) least-squares fit and forecast on d-th differences
    - lstm_engine: Normalisation, sliding windows, LSTM training and rollout
    - engine: Request validation and strategy dispatch (public entry point)
    - evaluation: Metrics and hold-out backtest
    - output_manager: Chart data and CSV/JSON export
"""

from fx_forecaster.preprocessing import load_data, extract_rate_series, to_series, difference, integrate
from fx_forecaster.linear_algebra import transpose, multiply, solve_linear_system
from fx_forecaster.arima_engine import ARModel, fit_autoregressive, forecast_autoregressive, check_stationarity
from fx_forecaster.lstm_engine import forecast_sequence
from fx_forecaster.engine import ForecastEngine, ForecastResult, Strategy, predict
from fx_forecaster.evaluation import calculate_rmse, calculate_mae, evaluate_holdout
from fx_forecaster.exceptions import InvalidRequestError

__version__ = "1.0.0"
__all__ = [
    "load_data",
    "extract_rate_series",
    "to_series",
    "difference",
    "integrate",
    "transpose",
    "multiply",
    "solve_linear_system",
    "ARModel",
    "fit_autoregressive",
    "forecast_autoregressive",
    "check_stationarity",
    "forecast_sequence",
    "ForecastEngine",
    "ForecastResult",
    "Strategy",
    "predict",
    "calculate_rmse",
    "calculate_mae",
    "evaluate_holdout",
    "InvalidRequestError",
]
