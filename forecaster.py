"""
CLI Entry Point for the FX Rate Forecaster

Parses CLI arguments, loads a historical-rate file, runs the selected
forecasting strategy and exports the forecast.

Usage:
    python forecaster.py --input data/usd_rates.json --quote EUR --horizon 7
    python forecaster.py --input data/usd_eur.csv --strategy lstm --horizon 3 --output out/forecast.json
    python forecaster.py --input data/usd_rates.json --quote GBP --horizon 7 --evaluate --config config/forecast_params.yml

Exit codes: 0 on success, including a forecast that was not possible with
the available data (reported on stderr); 1 on invalid requests, data,
configuration or file errors.
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from fx_forecaster.arima_engine import check_stationarity
from fx_forecaster.config_loader import config_to_dict, load_config
from fx_forecaster.engine import ForecastEngine, ForecastResult, Strategy
from fx_forecaster.evaluation import evaluate_holdout
from fx_forecaster.exceptions import (
    ConfigurationError,
    DataValidationError,
    FileIOError,
    InvalidRequestError,
)
from fx_forecaster.logger_config import VALID_LEVELS, configure_logging, get_logger, log_exception
from fx_forecaster.output_manager import export_to_csv, export_to_json, format_results_summary
from fx_forecaster.preprocessing import difference, extract_rate_series, load_data


logger = get_logger(__name__)


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure CLI argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description='FX Rate Forecaster',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Seven-day autoregressive forecast of USD/EUR from a rate payload
  python forecaster.py --input data/usd_rates.json --base USD --quote EUR --horizon 7

  # LSTM forecast written to JSON
  python forecaster.py --input data/usd_eur.csv --strategy lstm --horizon 3 --output out/forecast.json

  # With hold-out evaluation and custom configuration
  python forecaster.py --input data/usd_rates.json --quote GBP --evaluate --config config/custom_params.yml
        """
    )

    parser.add_argument(
        '--input',
        type=str,
        required=True,
        help='Path to input file (CSV or JSON) containing historical rates'
    )

    parser.add_argument(
        '--quote',
        type=str,
        default=None,
        help='Quote currency column to forecast (e.g., EUR). Required when the file holds several currencies'
    )

    parser.add_argument(
        '--base',
        type=str,
        default=None,
        help='Base currency, used only to label the pair in exports (e.g., USD)'
    )

    parser.add_argument(
        '--strategy',
        type=str,
        default=None,
        help='autoregressive (arima) or sequence (lstm). Default: engine.default_strategy from config'
    )

    parser.add_argument(
        '--horizon',
        type=int,
        default=None,
        help='Number of future days to forecast. Default: engine.default_horizon from config'
    )

    parser.add_argument(
        '--output',
        type=str,
        default='stdout',
        help='Output file path (.csv or .json), or "stdout" to print a summary (default)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to model configuration file (YAML format). Uses defaults if not specified'
    )

    parser.add_argument(
        '--evaluate',
        action='store_true',
        help='Backtest the strategy on the last HORIZON observations and report RMSE/MAE'
    )

    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=VALID_LEVELS,
        default='INFO',
        help='Logging level (default: INFO)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Optional log file path'
    )

    return parser


def validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate CLI arguments.

    Args:
        args (argparse.Namespace): Parsed arguments

    Raises:
        FileNotFoundError: If the input or configuration file does not exist
        ValueError: If the input format or output target is invalid
        InvalidRequestError: If the horizon or strategy is invalid
    """
    input_path = Path(args.input)
    if not input_path.exists():
        error_msg = f"Input file not found: {args.input}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    if input_path.suffix.lower() not in ['.csv', '.json']:
        error_msg = f"Input file must be CSV or JSON, got: {input_path.suffix}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if args.horizon is not None and args.horizon <= 0:
        raise InvalidRequestError(
            f"horizon must be a positive integer, got {args.horizon}",
            parameter_name="horizon",
            invalid_value=args.horizon
        )

    if args.strategy is not None:
        Strategy.parse(args.strategy)

    if args.output != 'stdout' and Path(args.output).suffix.lower() not in ['.csv', '.json']:
        error_msg = f"Output must be a .csv or .json path or 'stdout', got: {args.output}"
        logger.error(error_msg)
        raise ValueError(error_msg)

    if args.config is not None and not Path(args.config).exists():
        error_msg = f"Configuration file not found: {args.config}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    logger.info("All CLI arguments validated successfully")


def _stationarity_note(rates, d: int) -> Optional[float]:
    """ADF p-value of the series the AR model is fitted to, None if the test cannot run."""
    try:
        _, p_value = check_stationarity(difference(rates.to_numpy(), d))
        return round(p_value, 6)
    except (ValueError, np.linalg.LinAlgError) as e:
        logger.warning(f"Stationarity diagnostic skipped: {str(e)}")
        return None


def run_forecast(args: argparse.Namespace, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute the forecasting workflow for parsed CLI arguments.

    Workflow:
        Load rates -> Extract series -> Predict -> (Evaluate) -> Collect metadata

    Args:
        args (argparse.Namespace): Validated CLI arguments
        config (dict): Validated configuration

    Returns:
        dict: Results with keys result, pair, metrics, model_params

    Raises:
        InvalidRequestError: If the request is rejected by the engine
        DataValidationError: If the input cannot be resolved into a rate series
    """
    logger.info("=" * 80)
    logger.info("STARTING FX RATE FORECAST")
    logger.info("=" * 80)

    strategy = Strategy.parse(args.strategy or config['engine']['default_strategy'])
    horizon = args.horizon if args.horizon is not None else config['engine']['default_horizon']

    data = load_data(args.input)
    rates = extract_rate_series(data, args.quote)
    logger.info(
        f"Rate series loaded: {len(rates)} point(s) "
        f"from {rates.index[0] if len(rates) else 'n/a'} to {rates.index[-1] if len(rates) else 'n/a'}"
    )

    engine = ForecastEngine(config)
    if rates.empty:
        # rows were read but none held a finite rate
        logger.warning(f"No finite rates in {args.input}; prediction not possible")
        result = ForecastResult(values=[], strategy=strategy)
    else:
        result = engine.predict(rates, strategy, horizon)

    model_params = {
        key: value for key, value in config_to_dict(config).items()
        if key.startswith(strategy.value)
    }
    if strategy is Strategy.AUTOREGRESSIVE and not result.is_empty:
        model_params['adf_p_value'] = _stationarity_note(rates, config['autoregressive']['d'])

    metrics = None
    if args.evaluate:
        try:
            report = evaluate_holdout(rates, strategy, horizon, engine=engine)
            metrics = {'rmse': report['rmse'], 'mae': report['mae']}
        except InvalidRequestError as e:
            logger.warning(f"Hold-out evaluation skipped: {e.error_message}")

    pair = "/".join(part for part in (args.base, args.quote or rates.name) if part)

    return {
        'result': result,
        'pair': pair,
        'metrics': metrics,
        'model_params': model_params,
    }


def main(argv=None) -> int:
    """
    Main entry point for CLI execution.

    Args:
        argv (list, optional): Argument list; sys.argv[1:] when omitted

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    configure_logging(log_level=args.log_level, log_file=args.log_file)

    try:
        validate_arguments(args)
        config = load_config(args.config)

        results = run_forecast(args, config)
        result = results['result']

        if result.is_empty:
            print(
                "Prediction not possible: not enough usable history for the "
                f"{result.strategy.value} strategy",
                file=sys.stderr
            )
            return 0

        if args.output == 'stdout':
            print(format_results_summary(results))
        elif Path(args.output).suffix.lower() == '.json':
            export_to_json(
                args.output,
                pair=results['pair'] or 'unknown',
                result=result,
                metrics=results['metrics'],
                model_params=results['model_params']
            )
            print(f"Results saved to: {args.output}")
        else:
            export_to_csv(args.output, result, metrics=results['metrics'])
            print(f"Results saved to: {args.output}")

        logger.info("FORECAST COMPLETED SUCCESSFULLY")
        return 0

    except (FileNotFoundError, FileIOError) as e:
        error_msg = f"File Error: {str(e)}"
        logger.error(error_msg)
        print(f"ERROR: {error_msg}", file=sys.stderr)
        return 1

    except (InvalidRequestError, DataValidationError, ConfigurationError, ValueError) as e:
        error_msg = f"Validation Error: {str(e)}"
        logger.error(error_msg)
        print(f"ERROR: {error_msg}", file=sys.stderr)
        return 1

    except Exception as e:
        error_msg = f"Unexpected Error: {str(e)}"
        log_exception(logger, e)
        print(f"ERROR: {error_msg}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
