"""
Configuration System Module - Centralized Model Parameter Management

Loads, validates and merges the forecasting engine's parameters from YAML
files and programmatic overrides.

Sections:
- autoregressive: AR order p, integration order d, minimum margin, singular threshold
- sequence: window size, recurrent units, epochs, batch size, learning rate, seed
- engine: default strategy and horizon used by the CLI
- history: number of historical points shown next to a forecast

Usage Examples:
    # Load defaults (or config/forecast_params.yml when present)
    config = load_config()

    # Load from specific file
    config = load_config('config/custom_params.yml')

    # Override a single value
    merged = merge_config(config, {'sequence': {'epochs': 5}})
"""

import copy
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from fx_forecaster.exceptions import ConfigurationError
from fx_forecaster.logger_config import get_logger


logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = 'config/forecast_params.yml'

STRATEGY_NAMES = ('autoregressive', 'sequence', 'arima', 'lstm')


def get_default_config() -> Dict[str, Any]:
    """
    Return hardcoded default configuration.

    Used when no configuration file is present or the file cannot be parsed,
    and as the base that partial files are merged into.

    Returns:
        dict: Complete default configuration with sections
              autoregressive, sequence, engine and history.

    Examples:
        >>> config = get_default_config()
        >>> config['autoregressive']['p']
        2
        >>> config['sequence']['window_size']
        20
    """
    default_config = {
        'autoregressive': {
            'p': 2,
            'd': 1,
            'minimum_margin': 1,
            'singular_threshold': 1e-8
        },
        'sequence': {
            'window_size': 20,
            'units': 16,
            'epochs': 20,
            'batch_size': 8,
            'learning_rate': 0.01,
            'seed': 42
        },
        'engine': {
            'default_strategy': 'autoregressive',
            'default_horizon': 7
        },
        'history': {
            'chart_points': 90
        }
    }

    logger.debug("Default configuration created")
    return default_config


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file or use defaults.

    Values found in the file are merged over the defaults, so a file only
    needs the parameters it changes. A missing or unparsable file falls back
    to the defaults with a warning; an out-of-range value raises.

    Args:
        config_path (str, optional): Path to YAML configuration file.
                                    Default: 'config/forecast_params.yml'

    Returns:
        dict: Complete validated configuration dictionary.

    Raises:
        ConfigurationError: If configuration validation fails after loading.

    Examples:
        >>> config = load_config('config/missing_file.yml')
        >>> config['autoregressive']['d']
        1
    """
    explicit_path = config_path is not None
    config_path = Path(config_path) if explicit_path else Path(DEFAULT_CONFIG_PATH)
    loaded = None

    if config_path.exists():
        try:
            logger.info(f"Loading configuration from {config_path}")
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
            if loaded is not None and not isinstance(loaded, dict):
                logger.warning(
                    f"Configuration in {config_path} is not a mapping "
                    f"(got {type(loaded).__name__}). Falling back to default configuration."
                )
                loaded = None
        except yaml.YAMLError as e:
            logger.warning(
                f"YAML parsing error in {config_path}: {str(e)}. "
                "Falling back to default configuration."
            )
            loaded = None
        except OSError as e:
            logger.warning(
                f"Error reading configuration from {config_path}: {str(e)}. "
                "Falling back to default configuration."
            )
            loaded = None
    elif explicit_path:
        logger.warning(
            f"Configuration file not found: {config_path}. Using default configuration."
        )
    else:
        logger.debug(f"Default config file not found at {DEFAULT_CONFIG_PATH}. Using hardcoded defaults.")

    if loaded:
        config = merge_config(get_default_config(), loaded)
    else:
        config = get_default_config()
        logger.info("Using default configuration")
        validate_config(config)

    logger.info("Configuration loaded and validated successfully")
    return config


def _require_int(value: Any, name: str, minimum: int, maximum: Optional[int] = None) -> None:
    """Raise ConfigurationError unless value is an int within [minimum, maximum]."""
    allowed = f"[{minimum}, {maximum}]" if maximum is not None else f"[{minimum}, ∞)"
    if (
        not isinstance(value, int)
        or isinstance(value, bool)
        or value < minimum
        or (maximum is not None and value > maximum)
    ):
        raise ConfigurationError(
            f"{name} must be an integer in {allowed}, got {value!r}",
            parameter_name=name,
            invalid_value=value,
            allowed_range=allowed
        )


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration schema and parameter ranges.

    Validation Rules:
    - autoregressive.p: integer >= 1
    - autoregressive.d: integer in [0, 2]
    - autoregressive.minimum_margin: integer >= 1
    - autoregressive.singular_threshold: number > 0
    - sequence.window_size, units, epochs, batch_size: integers >= 1 (units <= 256)
    - sequence.learning_rate: number in (0, 1]
    - sequence.seed: integer or null
    - engine.default_strategy: autoregressive, sequence, arima or lstm
    - engine.default_horizon, history.chart_points: integers >= 1
    - autoregressive, sequence: no keys beyond the default parameters

    Args:
        config (dict): Configuration dictionary to validate.

    Returns:
        bool: True if configuration is valid.

    Raises:
        ConfigurationError: If validation fails with details about the error.

    Examples:
        >>> bad_config = get_default_config()
        >>> bad_config['autoregressive']['d'] = 3
        >>> validate_config(bad_config)
        Traceback (most recent call last):
        ...
        ConfigurationError: autoregressive.d must be an integer in [0, 2], got 3
    """
    logger.debug("Validating configuration...")

    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(config).__name__}"
        )

    for section in ('autoregressive', 'sequence', 'engine', 'history'):
        if not isinstance(config.get(section), dict):
            raise ConfigurationError(
                f"Missing required section: {section}", parameter_name=section
            )

    # these sections map one to one onto forecast function parameters
    defaults = get_default_config()
    for section in ('autoregressive', 'sequence'):
        unknown = sorted(str(key) for key in set(config[section]) - set(defaults[section]))
        if unknown:
            raise ConfigurationError(
                f"Unknown {section} parameter(s): {', '.join(unknown)}",
                parameter_name=f"{section}.{unknown[0]}",
                allowed_range=tuple(defaults[section])
            )

    # ===== Autoregressive =====
    ar = config['autoregressive']
    _require_int(ar.get('p'), 'autoregressive.p', 1)
    _require_int(ar.get('d'), 'autoregressive.d', 0, 2)
    _require_int(ar.get('minimum_margin'), 'autoregressive.minimum_margin', 1)

    threshold = ar.get('singular_threshold')
    if not isinstance(threshold, (int, float)) or isinstance(threshold, bool) or threshold <= 0:
        raise ConfigurationError(
            f"autoregressive.singular_threshold must be a positive number, got {threshold!r}",
            parameter_name='autoregressive.singular_threshold',
            invalid_value=threshold,
            allowed_range="(0, ∞)"
        )

    # ===== Sequence =====
    seq = config['sequence']
    _require_int(seq.get('window_size'), 'sequence.window_size', 1)
    _require_int(seq.get('units'), 'sequence.units', 1, 256)
    _require_int(seq.get('epochs'), 'sequence.epochs', 1)
    _require_int(seq.get('batch_size'), 'sequence.batch_size', 1)

    learning_rate = seq.get('learning_rate')
    if (
        not isinstance(learning_rate, (int, float))
        or isinstance(learning_rate, bool)
        or not 0 < learning_rate <= 1
    ):
        raise ConfigurationError(
            f"sequence.learning_rate must be in (0, 1], got {learning_rate!r}",
            parameter_name='sequence.learning_rate',
            invalid_value=learning_rate,
            allowed_range="(0, 1]"
        )

    seed = seq.get('seed')
    if seed is not None:
        _require_int(seed, 'sequence.seed', 0)

    # ===== Engine =====
    engine = config['engine']
    if engine.get('default_strategy') not in STRATEGY_NAMES:
        raise ConfigurationError(
            f"engine.default_strategy must be one of {', '.join(STRATEGY_NAMES)}, "
            f"got {engine.get('default_strategy')!r}",
            parameter_name='engine.default_strategy',
            invalid_value=engine.get('default_strategy'),
            allowed_range=STRATEGY_NAMES
        )
    _require_int(engine.get('default_horizon'), 'engine.default_horizon', 1)

    # ===== History =====
    _require_int(config['history'].get('chart_points'), 'history.chart_points', 1)

    logger.debug(
        f"Config summary: AR(p={ar['p']}, d={ar['d']}), margin={ar['minimum_margin']}; "
        f"sequence window={seq['window_size']}, units={seq['units']}, "
        f"epochs={seq['epochs']}, batch_size={seq['batch_size']}"
    )
    return True


def merge_config(
    base_config: Dict[str, Any],
    overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Merge configuration overrides into base configuration.

    Deep merge: nested dictionaries are merged key by key, any other value
    replaces the base value. The base is not modified. The merged result is
    validated before it is returned.

    Args:
        base_config (dict): Base configuration dictionary.
        overrides (dict): Nested override parameters, e.g. {'sequence': {'epochs': 5}}

    Returns:
        dict: Merged configuration with overrides applied.

    Raises:
        ConfigurationError: If merged configuration fails validation.

    Examples:
        >>> merged = merge_config(get_default_config(), {'autoregressive': {'p': 3}})
        >>> merged['autoregressive']['p'], merged['autoregressive']['d']
        (3, 1)
    """
    logger.debug("Merging configuration overrides...")

    merged = copy.deepcopy(base_config)

    def deep_merge(target: Dict, source: Dict, path: str = "") -> None:
        """Recursively merge source into target, logging changes."""
        for key, value in source.items():
            current_path = f"{path}.{key}" if path else key

            if key not in target:
                logger.warning(f"Override key not in base config: {current_path}")
                target[key] = copy.deepcopy(value)
            elif isinstance(value, dict) and isinstance(target.get(key), dict):
                deep_merge(target[key], value, current_path)
            else:
                old_value = target[key]
                target[key] = copy.deepcopy(value)
                logger.info(f"Override config: {current_path} = {value} (was {old_value})")

    if overrides:
        deep_merge(merged, overrides)

    try:
        validate_config(merged)
    except ConfigurationError as e:
        logger.error(f"Merged configuration validation failed: {str(e)}")
        raise

    return merged


def config_to_dict(config: Dict[str, Any]) -> Dict[str, str]:
    """
    Convert nested configuration to a flat dictionary for display.

    Nested keys become dot-separated ('sequence.epochs'); values become
    strings, with booleans lower-cased.

    Args:
        config (dict): Configuration dictionary (nested).

    Returns:
        dict: Flat dictionary with dot-separated keys and string values.

    Examples:
        >>> flat = config_to_dict(get_default_config())
        >>> flat['sequence.window_size']
        '20'
    """
    flat = {}

    def flatten(d: Dict, parent_key: str = "") -> None:
        for key, value in d.items():
            new_key = f"{parent_key}.{key}" if parent_key else key

            if isinstance(value, dict):
                flatten(value, new_key)
            elif isinstance(value, bool):
                flat[new_key] = str(value).lower()
            else:
                flat[new_key] = str(value)

    flatten(config)
    logger.debug(f"Configuration flattened to {len(flat)} keys")

    return flat
