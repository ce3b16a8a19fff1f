"""
Series Preprocessing Module for the FX Rate Forecasting Engine

This module turns historical-rate data into the ordered, finite rate series
the forecasters consume, and provides the differencing transform used by the
autoregressive path together with its inverse.

Functions:
    - load_data: Load a CSV/JSON rate file into a DataFrame
    - extract_rate_series: Resolve a rate payload or DataFrame into a Series
    - to_series: Normalise pairs/mappings/Series into a sorted finite Series
    - difference: Apply first-differencing d times
    - integrate: Cumulatively sum deltas onto the last observed value
    - has_minimum_length: Check a series against a strategy's length requirement
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from fx_forecaster.exceptions import DataValidationError
from fx_forecaster.logger_config import get_logger


logger = get_logger(__name__)

DATE_COLUMNS = ('date', 'Date', 'timestamp', 'Timestamp')
RATE_COLUMNS = ('rate', 'Rate', 'close', 'Close', 'value', 'Value')


def load_data(file_path: str) -> pd.DataFrame:
    """
    Load historical exchange-rate data from a CSV or JSON file.

    CSV files are read as-is. JSON files may hold either a list of records,
    a plain {date: rate} mapping, or the rate-service payload
    {"rates": {"2024-01-02": {"EUR": 0.91}, ...}}; the latter two are
    flattened into a frame with a 'date' column.

    Args:
        file_path (str): Path to the input file (CSV or JSON)

    Returns:
        pd.DataFrame: Loaded rate data

    Raises:
        FileNotFoundError: If the file does not exist
        DataValidationError: If the format is unsupported or the content malformed

    Examples:
        >>> data = load_data('data/usd_eur.csv')
        >>> data = load_data('data/usd_eur.json')
    """
    file_path = Path(file_path)

    if not file_path.exists():
        error_msg = f"File not found: {file_path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    file_ext = file_path.suffix.lower()

    try:
        if file_ext == ".csv":
            logger.info(f"Loading CSV data from {file_path}")
            data = pd.read_csv(file_path)
        elif file_ext == ".json":
            logger.info(f"Loading JSON data from {file_path}")
            with open(file_path, "r", encoding="utf-8") as f:
                json_data = json.load(f)
            data = _frame_from_json(json_data)
        else:
            error_msg = f"Unsupported file format: {file_ext}. Only CSV and JSON are supported."
            logger.error(error_msg)
            raise DataValidationError(error_msg, file_path=str(file_path))

    except json.JSONDecodeError as e:
        error_msg = f"JSON parsing error in {file_path}: {str(e)}"
        logger.error(error_msg)
        raise DataValidationError(error_msg, file_path=str(file_path)) from e
    except pd.errors.ParserError as e:
        error_msg = f"CSV parsing error in {file_path}: {str(e)}"
        logger.error(error_msg)
        raise DataValidationError(error_msg, file_path=str(file_path)) from e

    logger.info(f"Data shape: {data.shape}")
    return data


def _frame_from_json(json_data: Any) -> pd.DataFrame:
    """Flatten the supported JSON shapes into a DataFrame."""
    if isinstance(json_data, Mapping) and isinstance(json_data.get("rates"), Mapping):
        return _frame_from_payload(json_data)
    if isinstance(json_data, Mapping):
        return pd.DataFrame({"date": list(json_data.keys()), "rate": list(json_data.values())})
    if isinstance(json_data, list):
        return pd.DataFrame(json_data)

    raise DataValidationError(
        f"Unsupported JSON structure: {type(json_data).__name__}"
    )


def _frame_from_payload(payload: Mapping) -> pd.DataFrame:
    """One row per date, one column per quote currency."""
    rates = dict(payload["rates"])
    if rates and not any(isinstance(value, Mapping) for value in rates.values()):
        return pd.DataFrame({"date": list(rates.keys()), "rate": list(rates.values())})

    frame = pd.DataFrame.from_dict(rates, orient="index")
    frame.index.name = "date"
    return frame.reset_index()


def _find_column(frame: pd.DataFrame, candidates) -> Optional[str]:
    for candidate in candidates:
        if candidate in frame.columns:
            return candidate
    return None


def extract_rate_series(
    data: Union[pd.DataFrame, Mapping],
    quote_currency: Optional[str] = None
) -> pd.Series:
    """
    Resolve historical-rate data into a date-indexed rate series.

    Accepts the rate-service payload (a mapping with a "rates" key) or a
    DataFrame. The value column is chosen in this order: the quote currency
    column, a conventional rate column (rate/close/value), or the only
    numeric column left besides the date.

    Args:
        data (pd.DataFrame or Mapping): Loaded rate data
        quote_currency (str, optional): Currency code to extract, e.g. "EUR"

    Returns:
        pd.Series: Finite rates sorted ascending by date

    Raises:
        DataValidationError: If no date or rate column can be identified

    Examples:
        >>> payload = {"rates": {"2024-01-02": {"EUR": 0.91}, "2024-01-01": {"EUR": 0.90}}}
        >>> extract_rate_series(payload, "EUR").tolist()
        [0.9, 0.91]
    """
    if isinstance(data, Mapping):
        if not isinstance(data.get("rates"), Mapping):
            error_msg = "Rate payload must contain a 'rates' mapping"
            logger.error(error_msg)
            raise DataValidationError(error_msg)
        frame = _frame_from_payload(data)
    elif isinstance(data, pd.DataFrame):
        frame = data
    else:
        error_msg = f"Unsupported rate data type: {type(data).__name__}"
        logger.error(error_msg)
        raise DataValidationError(error_msg)

    if frame.empty:
        error_msg = "Rate data contains no rows"
        logger.error(error_msg)
        raise DataValidationError(error_msg, data_shape=frame.shape)

    date_column = _find_column(frame, DATE_COLUMNS)
    dates = frame[date_column] if date_column else frame.index

    if quote_currency is not None:
        if quote_currency not in frame.columns:
            error_msg = f"No rate column found for quote currency {quote_currency}"
            logger.error(error_msg)
            raise DataValidationError(error_msg, data_shape=frame.shape)
        rate_column = quote_currency
    else:
        rate_column = _find_column(frame, RATE_COLUMNS)
        if rate_column is None:
            numeric = [
                column for column in frame.columns
                if column != date_column and pd.api.types.is_numeric_dtype(frame[column])
            ]
            if not numeric:
                error_msg = f"No numeric rate column found in columns {list(frame.columns)}"
                logger.error(error_msg)
                raise DataValidationError(error_msg, data_shape=frame.shape)
            if len(numeric) > 1:
                logger.warning(
                    f"Several numeric columns {numeric} and no quote currency given; using '{numeric[0]}'"
                )
            rate_column = numeric[0]

    logger.info(f"Extracting rate series from column '{rate_column}' ({len(frame)} rows)")

    series = to_series(pd.Series(frame[rate_column].to_numpy(), index=pd.Index(dates)))
    series.name = str(rate_column)
    return series


def to_series(data: Any, name: str = "rate") -> pd.Series:
    """
    Normalise rate data into a sorted series of finite floats.

    Accepted inputs:
    - pd.Series (date index, or numeric/positional index)
    - Mapping of date -> rate (a mapping with a "rates" key is treated as a payload)
    - Iterable of (date, rate) pairs
    - Iterable of plain numbers (positional index)

    Non-finite or non-numeric values are dropped, duplicate dates keep the
    last value given, and the result is sorted ascending. Gaps between dates
    are kept as they are.

    Args:
        data: Rate data in one of the accepted forms
        name (str): Name given to the resulting series

    Returns:
        pd.Series: Cleaned float series

    Raises:
        DataValidationError: If the index cannot be parsed as dates
        TypeError: If data is not one of the accepted forms

    Examples:
        >>> to_series([("2024-01-02", 1.1), ("2024-01-01", float("nan"))]).tolist()
        [1.1]
    """
    if isinstance(data, pd.DataFrame):
        return extract_rate_series(data)
    if isinstance(data, Mapping) and "rates" in data:
        return extract_rate_series(data)

    if isinstance(data, pd.Series):
        series = data.copy()
    elif isinstance(data, Mapping):
        series = pd.Series(list(data.values()), index=list(data.keys()), dtype=object)
    elif isinstance(data, (str, bytes)) or not hasattr(data, "__iter__"):
        raise TypeError(f"Cannot build a rate series from {type(data).__name__}")
    else:
        items = list(data)
        if items and all(
            isinstance(item, (tuple, list)) and len(item) == 2 for item in items
        ):
            dates, values = zip(*items)
            series = pd.Series(list(values), index=list(dates), dtype=object)
        else:
            series = pd.Series(items, dtype=object)

    n_input = len(series)
    series = pd.to_numeric(series, errors="coerce").astype(float)

    index = series.index
    if len(index) > 0 and not isinstance(index, pd.DatetimeIndex) \
            and not pd.api.types.is_numeric_dtype(index):
        try:
            series.index = pd.to_datetime(index)
        except (ValueError, TypeError) as e:
            error_msg = f"Series index could not be parsed as dates: {str(e)}"
            logger.error(error_msg)
            raise DataValidationError(error_msg) from e

    series = series[np.isfinite(series.to_numpy())]
    series = series[~series.index.duplicated(keep="last")]
    series = series.sort_index(kind="stable")
    series.name = name

    dropped = n_input - len(series)
    if dropped:
        logger.warning(f"Dropped {dropped} non-finite or duplicate point(s) from series")
    logger.debug(f"Series prepared: {len(series)} points")

    return series


def difference(series, d: int = 1) -> np.ndarray:
    """
    Apply first-differencing d times.

    Each pass maps [x0, x1, ..., xn] to [x1 - x0, x2 - x1, ...], so the
    result is d values shorter than the input (empty once d >= length).

    Args:
        series (array-like or pd.Series): Input values
        d (int): Integration order. 0 returns the values unchanged.

    Returns:
        np.ndarray: Differenced values

    Raises:
        ValueError: If d is negative or not an integer

    Examples:
        >>> difference([1.0, 4.0, 9.0, 16.0], d=1).tolist()
        [3.0, 5.0, 7.0]
        >>> difference([1.0, 4.0, 9.0, 16.0], d=2).tolist()
        [2.0, 2.0]
    """
    if not isinstance(d, (int, np.integer)) or isinstance(d, bool) or d < 0:
        error_msg = f"Differencing order must be a non-negative integer, got {d!r}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    values = np.asarray(series, dtype=np.float64)
    if d == 0:
        return values.copy()

    return np.diff(values, n=int(d))


def integrate(deltas, last_observed_value: float) -> np.ndarray:
    """
    Invert one differencing pass.

    Cumulatively adds the deltas onto the last observed value, producing
    absolute values: out[i] = last_observed_value + deltas[0] + ... + deltas[i].

    Args:
        deltas (array-like): Forecasted first differences
        last_observed_value (float): Anchor value the deltas start from

    Returns:
        np.ndarray: Absolute values, same length as deltas

    Examples:
        >>> integrate([1.0, 1.0, -0.5], 10.0).tolist()
        [11.0, 12.0, 11.5]
    """
    deltas = np.asarray(deltas, dtype=np.float64)
    if deltas.size == 0:
        return np.array([], dtype=np.float64)

    anchored = np.concatenate(([float(last_observed_value)], deltas))
    return np.cumsum(anchored)[1:]


def has_minimum_length(series, required: int) -> bool:
    """
    Check whether a series holds at least `required` points.

    Args:
        series (sized): Series or array to check
        required (int): Minimum number of points

    Returns:
        bool: True if the series is long enough to forecast from
    """
    length = len(series)
    if length < required:
        logger.warning(f"Insufficient data: {length} point(s), at least {required} required")
        return False
    return True
