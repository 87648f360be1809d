"""
Exception classes for the monetary policy SVAR pipeline.

This module defines the exception hierarchy and error handling helpers
shared by data acquisition, data preparation and estimation.
"""

from typing import Optional, Dict, Any, List


class MonetarySVARError(Exception):
    """
    Base exception class for the monetary policy SVAR pipeline.

    All custom exceptions in the package inherit from this base class.
    """

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        """String representation of the exception."""
        base_msg = self.message
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"

        return base_msg


class DataRetrievalError(MonetarySVARError):
    """
    Raised when raw data cannot be obtained.

    Base class for both live-source and snapshot failures.
    """

    def __init__(self, message: str, series_code: Optional[str] = None,
                 error_code: str = "DATA_RETRIEVAL", **kwargs):
        """
        Initialize data retrieval error.

        Args:
            message: Error message
            series_code: FRED series code that failed
            error_code: Error code, overridden by subclasses
        """
        context = kwargs.get('context', {})
        if series_code:
            context['series_code'] = series_code

        super().__init__(message, error_code=error_code, context=context)


class SourceUnavailable(DataRetrievalError):
    """
    Raised when the remote data service cannot deliver a series.

    Covers network failures, HTTP errors, malformed payloads and a
    missing API credential. Acquisition treats it as a total failure.
    """

    def __init__(self, message: str, series_code: Optional[str] = None,
                 status_code: Optional[int] = None, **kwargs):
        """
        Initialize source unavailable error.

        Args:
            message: Error message
            series_code: FRED series code being fetched
            status_code: HTTP response code from FRED API
        """
        context = kwargs.get('context', {})
        if status_code:
            context['status_code'] = status_code

        super().__init__(message, series_code=series_code,
                         error_code="SOURCE_UNAVAILABLE", context=context)


class SnapshotMissing(DataRetrievalError):
    """Raised when no usable snapshot exists at the configured path."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if path:
            context['path'] = path

        super().__init__(message, error_code="SNAPSHOT_MISSING", context=context)


class DataValidationError(MonetarySVARError):
    """
    Raised when data validation fails.

    This exception is raised for misaligned calendars, missing base dates,
    missing values and series that violate ordering requirements.
    """

    def __init__(self, message: str, validation_failures: Optional[List[str]] = None,
                 error_code: str = "DATA_VALIDATION", **kwargs):
        """
        Initialize data validation error.

        Args:
            message: Error message
            validation_failures: List of specific validation failures
        """
        context = kwargs.get('context', {})
        if validation_failures:
            context['validation_failures'] = validation_failures

        super().__init__(message, error_code=error_code, context=context)


class InsufficientDataError(DataValidationError):
    """
    Raised when there is insufficient data for estimation.

    The VAR needs more usable observations than coefficients per equation.
    """

    def __init__(self, message: str, required_periods: Optional[int] = None,
                 available_periods: Optional[int] = None, **kwargs):
        """
        Initialize insufficient data error.

        Args:
            message: Error message
            required_periods: Minimum required time periods
            available_periods: Actually available time periods
        """
        context = kwargs.get('context', {})
        if required_periods:
            context['required_periods'] = required_periods
        if available_periods is not None:
            context['available_periods'] = available_periods

        super().__init__(message, error_code="INSUFFICIENT_DATA", context=context)


class EstimationError(MonetarySVARError):
    """
    Raised when VAR estimation or inference fails.
    """

    def __init__(self, message: str, estimation_stage: Optional[str] = None,
                 error_code: str = "ESTIMATION_FAILURE", **kwargs):
        """
        Initialize estimation error.

        Args:
            message: Error message
            estimation_stage: Which stage failed (estimate, bootstrap, ...)
        """
        context = kwargs.get('context', {})
        if estimation_stage:
            context['estimation_stage'] = estimation_stage

        super().__init__(message, error_code=error_code, context=context)


class IdentificationError(EstimationError):
    """
    Raised when structural shocks cannot be identified.

    Unknown identification schemes and residual covariance matrices that
    admit no Cholesky factor both end up here.
    """

    def __init__(self, message: str, scheme: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if scheme:
            context['scheme'] = scheme

        super().__init__(message, error_code="IDENTIFICATION_FAILURE", context=context)


class NumericalError(EstimationError):
    """
    Raised when numerical computations fail.

    This exception is raised for matrix singularity and similar linear
    algebra problems surfaced by the numerical backend.
    """

    def __init__(self, message: str, numerical_details: Optional[Dict[str, Any]] = None, **kwargs):
        context = kwargs.get('context', {})
        if numerical_details:
            context.update(numerical_details)

        super().__init__(message, error_code="NUMERICAL", context=context)


class ConfigurationError(MonetarySVARError):
    """
    Raised when configuration is invalid or incomplete.

    This exception is raised for configuration validation failures,
    unknown option values, or incompatible parameter combinations.
    """

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None, **kwargs):
        """
        Initialize configuration error.

        Args:
            message: Error message
            validation_errors: List of configuration validation errors
        """
        context = kwargs.get('context', {})
        if validation_errors:
            context['validation_errors'] = validation_errors

        super().__init__(message, error_code="CONFIGURATION", context=context)


# Error handling utilities

class ErrorHandler:
    """
    Utility class for consistent error handling and logging.
    """

    def __init__(self, logger=None):
        """
        Initialize error handler.

        Args:
            logger: Logger instance for error reporting
        """
        self.logger = logger

    def wrap_estimation(self, func, *args, stage: Optional[str] = None, **kwargs):
        """
        Wrap a numerical routine so that its failures use this hierarchy.

        Args:
            func: Estimation function to call
            *args: Positional arguments
            stage: Name of the estimation stage, recorded in the error context
            **kwargs: Keyword arguments

        Returns:
            Function result

        Raises:
            EstimationError: For estimation failures
        """
        try:
            return func(*args, **kwargs)
        except MonetarySVARError:
            raise
        except Exception as e:
            if self.logger:
                self.logger.error(f"{stage or 'estimation'} failed: {type(e).__name__}: {e}")
            message = str(e).lower()
            if "singular" in message or "positive definite" in message:
                raise NumericalError(
                    f"Numerical failure during {stage or 'estimation'}: {e}",
                    numerical_details={'stage': stage} if stage else None
                ) from e
            raise EstimationError(
                f"Estimation procedure failed: {e}", estimation_stage=stage
            ) from e


def create_error_context(**kwargs) -> Dict[str, Any]:
    """
    Create error context dictionary with non-None values.

    Args:
        **kwargs: Context key-value pairs

    Returns:
        Dictionary with non-None values
    """
    return {k: v for k, v in kwargs.items() if v is not None}
