"""
Logging Configuration for the FX Rate Forecasting Engine

Provides centralized logging setup with module-specific loggers.
Console output is colour-coded by level; the optional log file gets the
same fields without colour codes.

Format: [TIMESTAMP] [LEVEL] [MODULE] - MESSAGE
"""

import logging
import traceback
from datetime import datetime, timezone
from pathlib import Path


VALID_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

_logger_instances = {}


class UTCFormatter(logging.Formatter):
    """Formatter with UTC ISO 8601 timestamps and optional level colours."""

    _COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    _RESET = '\033[0m'

    def __init__(self, use_color=False):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        """
        Format a record as [TIMESTAMP] [LEVEL] [MODULE] - MESSAGE.

        Example: [2026-01-15T18:48:45.262Z] [INFO] [arima_engine] - AR(2) fitted on 364 deltas
        """
        timestamp = datetime.fromtimestamp(
            record.created,
            tz=timezone.utc
        ).isoformat(timespec='milliseconds').replace('+00:00', 'Z')

        # "fx_forecaster.arima_engine" -> "arima_engine"
        module_name = record.name.rsplit('.', 1)[-1] or "root"

        level = f"[{record.levelname}]"
        if self.use_color:
            level = f"{self._COLORS.get(record.levelname, '')}{level}{self._RESET}"

        message = f"[{timestamp}] {level} [{module_name}] - {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def configure_logging(log_level='INFO', log_file=None):
    """
    Setup centralized logging configuration.

    Configures the root logger with a coloured console handler and, when
    log_file is given, a plain file handler. Existing root handlers are
    replaced so repeated calls do not duplicate output.

    Args:
        log_level (str): DEBUG, INFO, WARNING, ERROR or CRITICAL. Default: 'INFO'
        log_file (str, optional): Path to log file. Parent directories are created.

    Returns:
        logging.Logger: Configured root logger instance

    Raises:
        ValueError: If log_level is invalid

    Example:
        >>> logger = configure_logging(log_level='DEBUG', log_file='output/run.log')
        >>> logger.info("Forecast run started")
    """
    if not isinstance(log_level, str) or log_level.upper() not in VALID_LEVELS:
        raise ValueError(
            f"Invalid log_level '{log_level}'. Must be one of: {', '.join(VALID_LEVELS)}"
        )
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(UTCFormatter(use_color=True))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(UTCFormatter(use_color=False))
        root_logger.addHandler(file_handler)

        root_logger.info(f"Logging configured: level={log_level}, file={log_file}")
    else:
        root_logger.info(f"Logging configured: level={log_level}, console only")

    return root_logger


def get_logger(module_name):
    """
    Get a module-specific logger.

    Each module calls this at import time:
        logger = get_logger(__name__)

    Loggers propagate to the root logger, so they pick up whatever
    configure_logging installed.

    Args:
        module_name (str): Name of the module (typically __name__)

    Returns:
        logging.Logger: Logger instance for the module
    """
    if module_name in _logger_instances:
        return _logger_instances[module_name]

    logger = logging.getLogger(module_name)
    logger.propagate = True

    _logger_instances[module_name] = logger
    return logger


def log_exception(logger, exception):
    """
    Log exception type, message and the active traceback at ERROR level.

    Args:
        logger (logging.Logger): Logger instance to use
        exception (Exception): Exception object to log

    Example:
        >>> try:
        ...     model.fit(X, y)
        ... except Exception as e:
        ...     log_exception(logger, e)
        ...     raise
    """
    tb_str = traceback.format_exc()

    logger.error(
        f"Exception occurred: {type(exception).__name__}\n"
        f"Message: {str(exception)}\n"
        f"Traceback:\n{tb_str}"
    )
