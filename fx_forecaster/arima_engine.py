"""
ARIMA Engine Module for the FX Rate Forecasting Engine

Fixed-order ARIMA-style forecasting: the rate series is differenced d times,
an AR(p) model with intercept is fitted to the differences by ordinary least
squares, rolled forward for the requested horizon and integrated back to
absolute rates.

Functions:
    - fit_ar: Fit AR(p) with intercept on an already differenced series
    - fit_autoregressive: Difference a series and fit AR(p) to it
    - forecast_autoregressive: Multi-step forecast in the original rate space
    - check_stationarity: Augmented Dickey-Fuller (ADF) diagnostic
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from statsmodels.tsa.stattools import adfuller

from fx_forecaster.linear_algebra import (
    SINGULAR_THRESHOLD,
    multiply,
    solve_linear_system,
    transpose,
)
from fx_forecaster.logger_config import get_logger
from fx_forecaster.preprocessing import difference, has_minimum_length, integrate


logger = get_logger(__name__)

DEFAULT_P = 2
DEFAULT_D = 1
DEFAULT_MINIMUM_MARGIN = 1

# Relative spread below which a lag column counts as constant.
CONSTANT_COLUMN_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ARModel:
    """Fitted AR(p) model: intercept plus lag coefficients, lag-1 first."""

    intercept: float
    coefficients: Tuple[float, ...]

    @property
    def order(self) -> int:
        return len(self.coefficients)

    def predict_next(self, history: Sequence[float]) -> float:
        """One-step prediction: intercept + Σ coefficients[j] * history[-1-j]."""
        value = self.intercept
        for j, coefficient in enumerate(self.coefficients):
            value += coefficient * history[-1 - j]
        return float(value)


def _is_constant(column: np.ndarray) -> bool:
    scale = float(np.max(np.abs(column))) if column.size else 0.0
    return float(np.ptp(column)) <= CONSTANT_COLUMN_TOLERANCE * scale


def fit_ar(
    series,
    p: int = DEFAULT_P,
    singular_threshold: float = SINGULAR_THRESHOLD
) -> Optional[ARModel]:
    """
    Fit an AR(p) model with intercept by least squares.

    Builds one design row [1, y[i-1], ..., y[i-p]] with target y[i] for every
    i >= p and solves the normal equations (XᵀX)β = Xᵀy. β[0] is the
    intercept and β[1:] the lag coefficients, lag-1 first.

    A lag column that is constant over all rows is indistinguishable from the
    intercept column. Such columns are left out of the solve and get a
    coefficient of 0, so the intercept carries the whole level. Any other
    singularity is handled by the solver's zero-vector fallback.

    Args:
        series (array-like): Stationary (already differenced) values
        p (int): Autoregressive order, >= 1
        singular_threshold (float): Pivot threshold passed to the solver

    Returns:
        ARModel or None: Fitted model, or None if len(series) <= p

    Raises:
        ValueError: If p is not a positive integer

    Examples:
        >>> model = fit_ar([1.0, 1.0, 1.0, 1.0, 1.0], p=2)
        >>> model.intercept, model.coefficients
        (1.0, (0.0, 0.0))
    """
    if not isinstance(p, (int, np.integer)) or isinstance(p, bool) or p < 1:
        error_msg = f"AR order p must be a positive integer, got {p!r}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    y = np.asarray(series, dtype=np.float64)
    n = len(y)

    if n <= p:
        logger.warning(f"Cannot fit AR({p}) on {n} value(s): need more than {p}")
        return None

    lags = np.column_stack([y[p - lag: n - lag] for lag in range(1, p + 1)])
    target = y[p:]

    active = [j for j in range(p) if not _is_constant(lags[:, j])]
    if len(active) < p:
        aliased = [j + 1 for j in range(p) if j not in active]
        logger.info(f"Lag column(s) {aliased} constant over the sample; aliased with the intercept")

    design = np.column_stack([np.ones(len(target))] + [lags[:, j] for j in active])

    design_t = transpose(design)
    xtx = multiply(design_t, design)
    xty = multiply(design_t, target[:, np.newaxis])[:, 0]
    beta = solve_linear_system(xtx, xty, singular_threshold=singular_threshold)

    coefficients = np.zeros(p, dtype=np.float64)
    coefficients[active] = beta[1:]

    model = ARModel(
        intercept=float(beta[0]),
        coefficients=tuple(float(c) for c in coefficients),
    )

    logger.info(
        f"AR({p}) fitted on {len(target)} rows: intercept={model.intercept:.6g}, "
        f"coefficients={[round(c, 6) for c in model.coefficients]}"
    )
    return model


def fit_autoregressive(
    series,
    p: int = DEFAULT_P,
    d: int = DEFAULT_D,
    singular_threshold: float = SINGULAR_THRESHOLD
) -> Optional[ARModel]:
    """
    Difference a rate series d times and fit AR(p) to the result.

    Args:
        series (array-like or pd.Series): Rate values in chronological order
        p (int): Autoregressive order
        d (int): Integration order
        singular_threshold (float): Pivot threshold passed to the solver

    Returns:
        ARModel or None: Fitted model, or None if the differenced series has <= p values
    """
    differenced = difference(np.asarray(series, dtype=np.float64), d)
    return fit_ar(differenced, p=p, singular_threshold=singular_threshold)


def forecast_autoregressive(
    series,
    horizon: int,
    p: int = DEFAULT_P,
    d: int = DEFAULT_D,
    minimum_margin: int = DEFAULT_MINIMUM_MARGIN,
    singular_threshold: float = SINGULAR_THRESHOLD
) -> np.ndarray:
    """
    Forecast `horizon` future rates with a fixed-order AR(p) on d-th differences.

    Workflow:
    1. Require at least p + d + minimum_margin points
    2. Difference d times and fit AR(p)
    3. Roll forward: each predicted difference is appended to the history
       and feeds the next step
    4. Integrate the predicted differences back level by level, starting from
       the last observed value of each level

    Args:
        series (array-like or pd.Series): Rate values in chronological order
        horizon (int): Number of future steps
        p (int): Autoregressive order
        d (int): Integration order
        minimum_margin (int): Extra points required beyond p + d
        singular_threshold (float): Pivot threshold passed to the solver

    Returns:
        np.ndarray: `horizon` forecast rates, or an empty array when no
        forecast is possible (too little data, no model, non-finite output)

    Examples:
        >>> forecast_autoregressive([float(v) for v in range(1, 22)], horizon=3).tolist()
        [22.0, 23.0, 24.0]
    """
    values = np.asarray(series, dtype=np.float64)
    empty = np.array([], dtype=np.float64)

    if not has_minimum_length(values, p + d + minimum_margin):
        return empty

    levels = [values]
    for _ in range(d):
        levels.append(difference(levels[-1], 1))
    differenced = levels[-1]

    logger.info(
        f"Forecasting {horizon} step(s) with AR({p}) on {len(differenced)} "
        f"difference(s) of order {d}"
    )

    model = fit_ar(differenced, p=p, singular_threshold=singular_threshold)
    if model is None:
        return empty

    history = differenced.tolist()
    deltas = []
    for _ in range(horizon):
        next_value = model.predict_next(history)
        history.append(next_value)
        deltas.append(next_value)

    forecast = np.asarray(deltas, dtype=np.float64)
    for level in reversed(levels[:-1]):
        forecast = integrate(forecast, level[-1])

    if not np.all(np.isfinite(forecast)):
        logger.warning("AR forecast diverged to non-finite values; discarding it")
        return empty

    logger.info(
        f"AR forecast generated: {len(forecast)} value(s) in "
        f"[{forecast.min():.6f}, {forecast.max():.6f}]"
    )
    return forecast


def check_stationarity(series) -> Tuple[bool, float]:
    """
    Perform the Augmented Dickey-Fuller (ADF) test on a series.

    The null hypothesis is a unit root (non-stationary). p-value < 0.05
    rejects it and the series is reported stationary. Used as a diagnostic
    on the differenced series the AR model is fitted to.

    Args:
        series (array-like): Values to test

    Returns:
        Tuple[bool, float]: (is_stationary, p_value)

    Raises:
        ValueError: If the series is empty, contains NaN, or is rejected by statsmodels
            (e.g. constant input or too few observations)

    Examples:
        >>> rng = np.random.default_rng(0)
        >>> is_stat, p_val = check_stationarity(rng.standard_normal(200))
        >>> bool(is_stat)
        True
    """
    values = np.asarray(series, dtype=np.float64)

    if values.size == 0:
        error_msg = "Series is empty"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if np.isnan(values).any():
        error_msg = "Series contains NaN values"
        logger.error(error_msg)
        raise ValueError(error_msg)

    logger.info(f"Performing ADF test on series of length {len(values)}")

    adf_result = adfuller(values, autolag="AIC")
    p_value = float(adf_result[1])
    is_stationary = p_value < 0.05

    logger.info(
        f"ADF Test Results - Test Statistic: {adf_result[0]:.6f}, "
        f"p-value: {p_value:.6f}, Stationary: {is_stationary}"
    )
    return is_stationary, p_value
