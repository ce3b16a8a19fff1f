"""
LSTM Engine Module for the FX Rate Forecasting Engine

Windowed sequence forecasting: the rate series is min-max normalised, a
compact LSTM is trained on sliding windows to predict the next normalised
value, and the forecast is rolled forward autoregressively, each prediction
feeding the next window.

Functions:
    - normalize_series: Min-max scaling to [0, 1] with its scaling parameters
    - create_training_windows: Sliding (window -> next value) training pairs
    - build_sequence_model: Construct and compile the LSTM regressor
    - train_sequence_model: Fit the model on the training windows
    - roll_forward: Autoregressive multi-step rollout with denormalisation
    - forecast_sequence: Fit + forecast in one call; never raises

A model lives for one forecast call only. Keras session state is cleared
when the call returns.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from tensorflow import keras
from tensorflow.keras.layers import LSTM, Dense, Input
from tensorflow.keras.optimizers import Adam

from fx_forecaster.exceptions import TrainingFailureError
from fx_forecaster.logger_config import get_logger, log_exception
from fx_forecaster.preprocessing import has_minimum_length


logger = get_logger(__name__)

DEFAULT_WINDOW_SIZE = 20
DEFAULT_UNITS = 16
DEFAULT_EPOCHS = 20
DEFAULT_BATCH_SIZE = 8
DEFAULT_LEARNING_RATE = 0.01
DEFAULT_SEED = 42


@dataclass(frozen=True)
class ScalingParams:
    """Min-max scaling parameters: normalised = (value - minimum) / scale."""

    minimum: float
    scale: float

    def normalize(self, values) -> np.ndarray:
        return (np.asarray(values, dtype=np.float64) - self.minimum) / self.scale

    def denormalize(self, values) -> np.ndarray:
        return np.asarray(values, dtype=np.float64) * self.scale + self.minimum


def normalize_series(values) -> Tuple[np.ndarray, ScalingParams]:
    """
    Scale values to [0, 1] using the series minimum and range.

    A constant series has range 0; scale then defaults to 1 so every value
    normalises to 0 instead of dividing by zero.

    Args:
        values (array-like): Rate values

    Returns:
        Tuple[np.ndarray, ScalingParams]: Normalised values and the parameters
        needed to map predictions back

    Raises:
        ValueError: If values is empty

    Examples:
        >>> normalized, scaling = normalize_series([1.0, 2.0, 3.0])
        >>> normalized.tolist(), scaling.scale
        ([0.0, 0.5, 1.0], 2.0)
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        error_msg = "Cannot normalise an empty series"
        logger.error(error_msg)
        raise ValueError(error_msg)

    minimum = float(values.min())
    scale = float(values.max()) - minimum
    if scale == 0:
        logger.debug("Constant series: using scale 1.0")
        scale = 1.0

    scaling = ScalingParams(minimum=minimum, scale=scale)
    return scaling.normalize(values), scaling


def create_training_windows(data: np.ndarray, window_size: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate training pairs with a sliding window of stride 1.

    For every start index i where a full window and its target fit,
    X[i] = data[i:i+window_size] and y[i] = data[i+window_size].

    Args:
        data (np.ndarray): 1D array of normalised values
        window_size (int): Number of time steps per input window

    Returns:
        Tuple[np.ndarray, np.ndarray]:
            - X: float32 array of shape [samples, window_size, 1]
            - y: float32 array of shape [samples, 1]

    Raises:
        TypeError: If data is not a numpy array
        ValueError: If data is not 1D, window_size is not positive, or data
            holds fewer than window_size + 1 values

    Examples:
        >>> X, y = create_training_windows(np.arange(6, dtype=float), window_size=3)
        >>> X.shape, y.ravel().tolist()
        ((3, 3, 1), [3.0, 4.0, 5.0])
    """
    if not isinstance(data, np.ndarray):
        error_msg = "Data must be a numpy array"
        logger.error(error_msg)
        raise TypeError(error_msg)

    if data.ndim != 1:
        error_msg = f"Data must be 1D array, got shape {data.shape}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if not isinstance(window_size, int) or isinstance(window_size, bool) or window_size <= 0:
        error_msg = f"window_size must be a positive integer, got {window_size!r}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if len(data) < window_size + 1:
        error_msg = (
            f"Data length ({len(data)}) must be at least window_size ({window_size}) + 1 "
            "to form a training window"
        )
        logger.error(error_msg)
        raise ValueError(error_msg)

    num_samples = len(data) - window_size
    X = np.stack([data[i:i + window_size] for i in range(num_samples)]).astype(np.float32)
    X = X[..., np.newaxis]
    y = data[window_size:].astype(np.float32).reshape(-1, 1)

    logger.info(
        f"Training windows created: X shape={X.shape}, y shape={y.shape}, window_size={window_size}"
    )
    return X, y


def build_sequence_model(
    window_size: int,
    units: int = DEFAULT_UNITS,
    learning_rate: float = DEFAULT_LEARNING_RATE
) -> keras.Model:
    """
    Construct the LSTM regressor used for next-value prediction.

    Architecture:
    - Input: (window_size, 1)
    - LSTM layer with `units` cells, returning the final state only
    - Dense(1) linear output

    Compiled with Adam at a fixed learning rate and MSE loss.

    Args:
        window_size (int): Time steps per input window
        units (int): LSTM cell count
        learning_rate (float): Adam learning rate

    Returns:
        keras.Model: Compiled Keras Sequential model ready for training

    Examples:
        >>> model = build_sequence_model(window_size=20)
        >>> model.output_shape
        (None, 1)
    """
    logger.info(
        f"Building sequence model: window_size={window_size}, units={units}, "
        f"learning_rate={learning_rate}"
    )

    model = keras.Sequential([
        Input(shape=(window_size, 1)),
        LSTM(units=units, activation='tanh'),
        Dense(units=1),
    ])

    model.compile(optimizer=Adam(learning_rate=learning_rate), loss='mse')
    logger.debug("Model compiled with Adam optimizer and MSE loss")

    return model


def train_sequence_model(
    model: keras.Model,
    X: np.ndarray,
    y: np.ndarray,
    epochs: int = DEFAULT_EPOCHS,
    batch_size: int = DEFAULT_BATCH_SIZE
) -> keras.Model:
    """
    Train the sequence model for a fixed number of epochs.

    No validation split and no early stopping: every window is used for
    training. A batch size larger than the sample count is reduced to it.

    Args:
        model (keras.Model): Compiled model from build_sequence_model
        X (np.ndarray): Inputs of shape [samples, window_size, 1]
        y (np.ndarray): Targets of shape [samples, 1]
        epochs (int): Training epochs
        batch_size (int): Training batch size

    Returns:
        keras.Model: The trained model (trained in place)

    Raises:
        ValueError: If X and y shapes are inconsistent
        TrainingFailureError: If the training loss is not finite
    """
    if X.ndim != 3 or y.ndim != 2 or X.shape[0] != y.shape[0]:
        error_msg = f"Incompatible training shapes: X {X.shape}, y {y.shape}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if batch_size > X.shape[0]:
        logger.warning(
            f"batch_size ({batch_size}) exceeds data size ({X.shape[0]}). "
            f"Adjusting batch_size to data size."
        )
        batch_size = X.shape[0]

    logger.info(
        f"Starting sequence model training: batch_size={batch_size}, epochs={epochs}, "
        f"training_samples={X.shape[0]}"
    )

    history = model.fit(X, y, batch_size=batch_size, epochs=epochs, shuffle=True, verbose=0)

    final_loss = float(history.history['loss'][-1])
    if not math.isfinite(final_loss):
        raise TrainingFailureError(
            f"Training loss diverged to {final_loss}",
            model_type="LSTM",
            parameters={'epochs': epochs, 'batch_size': batch_size}
        )

    logger.info(f"Sequence model training completed. Final loss={final_loss:.6f}")
    return model


def roll_forward(
    model: keras.Model,
    window: np.ndarray,
    horizon: int,
    scaling: ScalingParams
) -> np.ndarray:
    """
    Forecast `horizon` steps by feeding predictions back into the window.

    Each step predicts the next normalised value from the current window,
    records its denormalised value (prediction * scale + minimum), then drops
    the oldest window element and appends the normalised prediction.

    Args:
        model (keras.Model): Trained sequence model
        window (np.ndarray): Last window_size normalised values
        horizon (int): Number of steps to forecast
        scaling (ScalingParams): Parameters used to normalise the series

    Returns:
        np.ndarray: `horizon` forecast values in rate space

    Raises:
        TrainingFailureError: If the model produces a non-finite prediction
    """
    window = np.asarray(window, dtype=np.float32).copy()
    predictions = []

    for step in range(horizon):
        normalized = float(model.predict(window.reshape(1, -1, 1), verbose=0)[0, 0])
        if not math.isfinite(normalized):
            raise TrainingFailureError(
                f"Sequence model produced a non-finite prediction at step {step + 1}",
                model_type="LSTM"
            )
        predictions.append(normalized)
        window = np.append(window[1:], np.float32(normalized))

    forecast = scaling.denormalize(predictions)
    logger.debug(f"Rolled forward {horizon} step(s): {np.round(forecast, 6).tolist()}")
    return forecast


def forecast_sequence(
    series,
    horizon: int,
    window_size: int = DEFAULT_WINDOW_SIZE,
    units: int = DEFAULT_UNITS,
    epochs: int = DEFAULT_EPOCHS,
    batch_size: int = DEFAULT_BATCH_SIZE,
    learning_rate: float = DEFAULT_LEARNING_RATE,
    seed: Optional[int] = DEFAULT_SEED
) -> np.ndarray:
    """
    Fit a sequence model on the series and forecast `horizon` future rates.

    Workflow:
    1. Require at least window_size + 1 points
    2. Min-max normalise the series
    3. Build sliding training windows and train a fresh LSTM
    4. Roll forward from the last window_size normalised values
    5. Release the Keras session

    Any failure while building, training or predicting is logged and turns
    into an empty forecast.

    Args:
        series (array-like or pd.Series): Rate values in chronological order
        horizon (int): Number of future steps
        window_size (int): Input window length
        units (int): LSTM cell count
        epochs (int): Training epochs
        batch_size (int): Training batch size
        learning_rate (float): Adam learning rate
        seed (int, optional): Seed for Python, NumPy and TensorFlow RNGs

    Returns:
        np.ndarray: `horizon` forecast rates, or an empty array when no
        forecast is possible

    Examples:
        >>> forecast_sequence([1.1] * 5, horizon=3).size
        0
    """
    values = np.asarray(series, dtype=np.float64)
    empty = np.array([], dtype=np.float64)

    if not has_minimum_length(values, window_size + 1):
        return empty

    try:
        if seed is not None:
            keras.utils.set_random_seed(seed)

        normalized, scaling = normalize_series(values)
        X, y = create_training_windows(normalized, window_size)

        model = build_sequence_model(window_size, units=units, learning_rate=learning_rate)
        train_sequence_model(model, X, y, epochs=epochs, batch_size=batch_size)

        forecast = roll_forward(model, normalized[-window_size:], horizon, scaling)

    except Exception as e:
        logger.error(f"Sequence forecast failed, returning empty result: {str(e)}")
        log_exception(logger, e)
        return empty

    finally:
        keras.backend.clear_session()

    logger.info(
        f"Sequence forecast generated: {len(forecast)} value(s) in "
        f"[{forecast.min():.6f}, {forecast.max():.6f}]"
    )
    return forecast
