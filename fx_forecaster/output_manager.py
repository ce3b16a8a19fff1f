"""
Output Manager Module for the FX Rate Forecasting Engine

Exports forecasts and builds the data behind the prediction chart.

Functions:
    - validate_output_path: Create and check the output directory
    - build_chart_data: Recent history plus dated forecast, one row per date
    - export_to_csv: Write date,predicted_rate rows with metric comments
    - export_to_json: Write the forecast with metadata
    - format_results_summary: Human-readable summary text

Write failures raise FileIOError.
"""

import csv
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from fx_forecaster.engine import ForecastResult
from fx_forecaster.exceptions import FileIOError
from fx_forecaster.logger_config import get_logger, log_exception
from fx_forecaster.preprocessing import to_series


logger = get_logger(__name__)

DEFAULT_HISTORY_POINTS = 90


def validate_output_path(output_path: str) -> bool:
    """
    Validate and prepare the output directory for file writing.

    Creates parent directories when needed and checks write permission with
    a temporary file.

    Args:
        output_path (str): File path the output will be written to

    Returns:
        bool: True if the directory exists and is writable, False otherwise

    Examples:
        >>> validate_output_path("output/forecast.csv")
        True
    """
    parent_dir = Path(output_path).parent

    try:
        parent_dir.mkdir(parents=True, exist_ok=True)
        probe = parent_dir / ".write_test_tmp"
        probe.touch()
        probe.unlink()
    except OSError as e:
        logger.error(f"No write permission for directory {parent_dir}: {str(e)}")
        return False

    logger.info(f"Output path validated: {parent_dir}")
    return True


def _forecast_dates(result: ForecastResult) -> list:
    return [str(label.date()) if isinstance(label, pd.Timestamp) else f"t{label}"
            for label in result.to_series().index]


def build_chart_data(
    series,
    result: ForecastResult,
    history_points: int = DEFAULT_HISTORY_POINTS
) -> pd.DataFrame:
    """
    Build the rows of the history-plus-forecast chart.

    The last `history_points` observations become rows with an `actual`
    value; each forecast step follows as a row with a `predicted` value,
    dated one day after the previous one starting from the last observation.

    Args:
        series: Historical rates in any form accepted by to_series
        result (ForecastResult): Forecast for the same series
        history_points (int): Number of recent observations to include

    Returns:
        pd.DataFrame: Columns date, actual, predicted (NaN where absent)
    """
    rates = to_series(series)
    recent = rates.iloc[-history_points:] if history_points > 0 else rates.iloc[0:0]

    def label(value):
        return str(value.date()) if isinstance(value, pd.Timestamp) else value

    history = pd.DataFrame({
        'date': [label(d) for d in recent.index],
        'actual': recent.to_numpy(dtype=np.float64),
        'predicted': np.nan,
    })

    if result.is_empty:
        logger.info(f"Chart data built: {len(history)} historical point(s), no forecast")
        return history

    forecast = pd.DataFrame({
        'date': _forecast_dates(result),
        'actual': np.nan,
        'predicted': result.values,
    })

    chart = pd.concat([history, forecast], ignore_index=True)
    logger.info(
        f"Chart data built: {len(history)} historical point(s), {len(forecast)} forecast point(s)"
    )
    return chart


def export_to_csv(
    output_path: str,
    result: ForecastResult,
    metrics: Optional[Dict[str, Any]] = None
) -> None:
    """
    Export a forecast to CSV.

    CSV Format:
        date,predicted_rate
        2024-03-02,0.912345
        2024-03-03,0.912871

        # Metrics Summary
        # rmse: 0.0021

    Args:
        output_path (str): File path where the CSV will be written
        result (ForecastResult): Forecast to export
        metrics (dict, optional): Metric name -> value, written as comment rows

    Raises:
        FileIOError: If the directory cannot be prepared or the write fails
    """
    try:
        if not validate_output_path(output_path):
            raise OSError(f"Failed to validate output path: {output_path}")

        dates = _forecast_dates(result)
        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(['date', 'predicted_rate'])
            for date, value in zip(dates, result.values):
                writer.writerow([date, float(value)])

            if metrics:
                f.write("\n# Metrics Summary\n")
                for metric_name, metric_value in metrics.items():
                    f.write(f"# {metric_name}: {metric_value}\n")

        logger.info(f"CSV export successful: {output_path} ({len(result)} predictions)")

    except OSError as e:
        log_exception(logger, e)
        raise FileIOError(
            error_message=f"CSV export failed: {str(e)}",
            file_path=str(output_path),
            operation="write"
        ) from e


def export_to_json(
    output_path: str,
    pair: str,
    result: ForecastResult,
    metrics: Optional[Dict[str, Any]] = None,
    model_params: Optional[Dict[str, Any]] = None
) -> None:
    """
    Export a forecast with metadata to JSON.

    JSON Format:
    {
      "timestamp": "2026-01-15T08:00:00Z",
      "pair": "USD/EUR",
      "strategy": "autoregressive",
      "horizon": 2,
      "forecast": [{"date": "2024-03-02", "rate": 0.9123}, ...],
      "metrics": {"rmse": 0.0021, "mae": 0.0017},
      "model_params": {"autoregressive.p": "2"}
    }

    An empty result is written with an empty forecast list.

    Args:
        output_path (str): File path where the JSON will be written
        pair (str): Currency pair label, e.g. 'USD/EUR'
        result (ForecastResult): Forecast to export
        metrics (dict, optional): Metric name -> value
        model_params (dict, optional): Parameters the forecast was made with

    Raises:
        FileIOError: If the pair is empty, the directory cannot be prepared,
            or the write fails
    """
    try:
        if not isinstance(pair, str) or not pair:
            raise ValueError(f"pair must be non-empty string, got {pair!r}")

        if not validate_output_path(output_path):
            raise OSError(f"Failed to validate output path: {output_path}")

        json_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec='seconds').replace('+00:00', 'Z'),
            "pair": pair,
            "strategy": result.strategy.value,
            "horizon": len(result),
            "forecast": [
                {"date": date, "rate": float(value)}
                for date, value in zip(_forecast_dates(result), result.values)
            ],
        }
        if metrics:
            json_data["metrics"] = metrics
        if model_params:
            json_data["model_params"] = model_params

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(json_data, f, indent=2)

        logger.info(f"JSON export successful: {output_path} ({len(result)} predictions)")

    except (OSError, ValueError, TypeError) as e:
        log_exception(logger, e)
        raise FileIOError(
            error_message=f"JSON export failed: {str(e)}",
            file_path=str(output_path),
            operation="write"
        ) from e


def format_results_summary(results: dict) -> str:
    """
    Create a human-readable summary of a forecast run.

    Args:
        results (dict): Forecast results with keys:
            - result (required): ForecastResult
            - pair (optional): Currency pair label
            - metrics (optional): dict of metric name -> value (None values shown as n/a)
            - model_params (optional): dict of parameter name -> value
            - timestamp (optional): Generation timestamp

    Returns:
        str: Multi-line summary

    Raises:
        TypeError: If results is not a dictionary
        ValueError: If results has no 'result' entry
    """
    if not isinstance(results, dict):
        error_msg = f"results must be a dictionary, got {type(results)}"
        logger.error(error_msg)
        raise TypeError(error_msg)

    if 'result' not in results:
        error_msg = "results missing required key 'result'"
        logger.error(error_msg)
        raise ValueError(error_msg)

    result = results['result']
    timestamp = results.get('timestamp', datetime.now(timezone.utc).isoformat(timespec='seconds'))

    lines = ["=" * 70, "FX RATE FORECAST SUMMARY", "=" * 70]
    lines.append(f"\nGenerated: {timestamp}")
    if results.get('pair'):
        lines.append(f"Pair: {results['pair']}")
    lines.append(f"Strategy: {result.strategy.value}")

    lines.append("\n" + "-" * 70)
    lines.append("FORECAST")
    lines.append("-" * 70)
    if result.is_empty:
        lines.append("Prediction not possible with the available data")
    else:
        for date, value in zip(_forecast_dates(result), result.values):
            lines.append(f"{date:<12} {value:.6f}")
        lines.append(f"\nRange: [{result.values.min():.6f}, {result.values.max():.6f}]")

    metrics = results.get('metrics')
    if metrics:
        lines.append("\n" + "-" * 70)
        lines.append("PERFORMANCE METRICS")
        lines.append("-" * 70)
        for metric_name, metric_value in metrics.items():
            if isinstance(metric_value, (int, float)):
                lines.append(f"{metric_name.upper():20s}: {metric_value:.6f}")
            else:
                lines.append(f"{metric_name.upper():20s}: {metric_value if metric_value is not None else 'n/a'}")

    model_params = results.get('model_params')
    if model_params:
        lines.append("\n" + "-" * 70)
        lines.append("MODEL CONFIGURATION")
        lines.append("-" * 70)
        for param_name, param_value in model_params.items():
            lines.append(f"{param_name:25s}: {param_value}")

    lines.append("\n" + "=" * 70)

    logger.debug("Results summary formatted")
    return "\n".join(lines)
