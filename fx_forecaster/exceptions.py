"""
Custom Exception Classes for the FX Rate Forecasting Engine

Implements the exception hierarchy used across the forecasting engine. Each
exception carries descriptive attributes for logging and for deciding whether
a condition is surfaced to the caller or degraded to an empty forecast.

Only InvalidRequestError crosses the public predict() boundary. Insufficient
data, degenerate fits and training failures all resolve to an empty or flat
ForecastResult inside the engine.
"""


class InvalidRequestError(ValueError):
    """
    Raised when a forecast request is rejected before any computation.

    Triggered by:
    - Missing or empty series
    - Horizon that is not a positive integer
    - Unknown forecasting strategy

    Example: "horizon must be a positive integer, got 0"
    """

    def __init__(self, error_message, parameter_name=None, invalid_value=None):
        """
        Initialize InvalidRequestError.

        Args:
            error_message (str): Description of the rejected request
            parameter_name (str, optional): Name of the offending argument
            invalid_value (any, optional): Value that failed validation
        """
        super().__init__(error_message)
        self.error_message = error_message
        self.parameter_name = parameter_name
        self.invalid_value = invalid_value

    def __str__(self):
        msg = f"Invalid Request: {self.error_message}"
        if self.parameter_name:
            msg += f"\n  Parameter: {self.parameter_name}"
        if self.invalid_value is not None:
            msg += f"\n  Invalid value: {self.invalid_value!r}"
        return msg


class DataValidationError(Exception):
    """
    Raised when a historical-rate payload cannot be resolved into a series.

    Triggered by:
    - Missing files
    - Wrong data format
    - Payload without usable date/rate columns

    Example: "No rate column found for quote currency EUR"
    """

    def __init__(self, error_message, file_path=None, data_shape=None):
        """
        Initialize DataValidationError.

        Args:
            error_message (str): Description of the validation error
            file_path (str, optional): Path to the problematic file
            data_shape (tuple, optional): Shape of the rejected data
        """
        super().__init__(error_message)
        self.error_message = error_message
        self.file_path = file_path
        self.data_shape = data_shape

    def __str__(self):
        msg = f"Data Validation Error: {self.error_message}"
        if self.file_path:
            msg += f"\n  File: {self.file_path}"
        if self.data_shape:
            msg += f"\n  Data shape: {self.data_shape}"
        return msg


class ShapeError(ValueError):
    """
    Raised when matrix dimensions are incompatible.

    Example: "Cannot multiply (3, 2) by (3, 1): inner dimensions 2 != 3"
    """

    def __init__(self, error_message, left_shape=None, right_shape=None):
        super().__init__(error_message)
        self.error_message = error_message
        self.left_shape = left_shape
        self.right_shape = right_shape

    def __str__(self):
        msg = f"Shape Error: {self.error_message}"
        if self.left_shape is not None and self.right_shape is not None:
            msg += f"\n  Shapes: {self.left_shape} x {self.right_shape}"
        return msg


class TrainingFailureError(Exception):
    """
    Raised when the sequence model cannot be built, trained or evaluated.

    Never leaves the sequence forecaster: it is logged and converted into an
    empty forecast there.

    Example: "Sequence model produced non-finite predictions"
    """

    def __init__(self, error_message, model_type=None, parameters=None):
        """
        Initialize TrainingFailureError.

        Args:
            error_message (str): Description of the failure
            model_type (str, optional): Type of model (e.g., "LSTM")
            parameters (dict, optional): Hyperparameters in use
        """
        super().__init__(error_message)
        self.error_message = error_message
        self.model_type = model_type
        self.parameters = parameters

    def __str__(self):
        msg = f"Training Failure ({self.model_type}): {self.error_message}"
        if self.parameters:
            msg += f"\n  Parameters: {self.parameters}"
        return msg


class ConfigurationError(Exception):
    """
    Raised when invalid configuration parameters are provided.

    Triggered by:
    - Parameter values out of allowed range
    - Missing required configuration sections

    Example: "sequence window_size must be a positive integer, got 0"
    """

    def __init__(self, error_message, parameter_name=None, invalid_value=None, allowed_range=None):
        """
        Initialize ConfigurationError.

        Args:
            error_message (str): Description of configuration error
            parameter_name (str, optional): Name of invalid parameter
            invalid_value (any, optional): Value that failed validation
            allowed_range (str/tuple, optional): Valid range or allowed values
        """
        super().__init__(error_message)
        self.error_message = error_message
        self.parameter_name = parameter_name
        self.invalid_value = invalid_value
        self.allowed_range = allowed_range

    def __str__(self):
        msg = f"Configuration Error: {self.error_message}"
        if self.parameter_name:
            msg += f"\n  Parameter: {self.parameter_name}"
        if self.invalid_value is not None:
            msg += f"\n  Invalid value: {self.invalid_value}"
        if self.allowed_range:
            msg += f"\n  Allowed range: {self.allowed_range}"
        return msg


class FileIOError(Exception):
    """
    Raised when forecast exports cannot be written.

    Triggered by:
    - Permission denied
    - Unwritable output directory
    - Serialization errors

    Example: "Cannot write to output/forecast.csv - permission denied"
    """

    def __init__(self, error_message, file_path=None, operation=None):
        """
        Initialize FileIOError.

        Args:
            error_message (str): Description of I/O error
            file_path (str, optional): Path to the file causing issues
            operation (str, optional): Operation type ("read" or "write")
        """
        super().__init__(error_message)
        self.error_message = error_message
        self.file_path = file_path
        self.operation = operation

    def __str__(self):
        msg = f"File I/O Error ({self.operation}): {self.error_message}"
        if self.file_path:
            msg += f"\n  File: {self.file_path}"
        return msg
