"""
Tests for the exception hierarchy, error handler and logging helpers.
"""

import logging

import numpy as np
import pytest

from monetary_svar.exceptions import (
    MonetarySVARError, DataRetrievalError, SourceUnavailable, SnapshotMissing,
    DataValidationError, InsufficientDataError, EstimationError,
    IdentificationError, NumericalError, ConfigurationError,
    ErrorHandler, create_error_context
)
from monetary_svar.logging_config import (
    ErrorLogger, JSONFormatter, PerformanceLogger
)


class TestExceptionHierarchy:

    @pytest.mark.parametrize("error,parent", [
        (SourceUnavailable("x"), DataRetrievalError),
        (SnapshotMissing("x"), DataRetrievalError),
        (InsufficientDataError("x"), DataValidationError),
        (IdentificationError("x"), EstimationError),
        (NumericalError("x"), EstimationError),
        (ConfigurationError("x"), MonetarySVARError),
    ])
    def test_inheritance(self, error, parent):
        assert isinstance(error, parent)
        assert isinstance(error, MonetarySVARError)

    def test_string_includes_code_and_context(self):
        error = SourceUnavailable("FRED API returned HTTP 503", series_code="GDP", status_code=503)

        text = str(error)

        assert text.startswith("[SOURCE_UNAVAILABLE]")
        assert "series_code=GDP" in text
        assert "status_code=503" in text

    def test_insufficient_data_context(self):
        error = InsufficientDataError("too short", required_periods=20, available_periods=0)

        assert error.context == {'required_periods': 20, 'available_periods': 0}
        assert error.error_code == "INSUFFICIENT_DATA"

    def test_create_error_context_drops_none(self):
        assert create_error_context(a=1, b=None) == {'a': 1}


class TestErrorHandler:

    @pytest.fixture
    def handler(self):
        return ErrorHandler(logging.getLogger("test"))

    def test_returns_result(self, handler):
        assert handler.wrap_estimation(lambda x: x + 1, 1) == 2

    def test_package_errors_pass_through(self, handler):
        def fail():
            raise IdentificationError("bad scheme")

        with pytest.raises(IdentificationError):
            handler.wrap_estimation(fail)

    def test_singular_matrix_becomes_numerical_error(self, handler):
        with pytest.raises(NumericalError) as exc_info:
            handler.wrap_estimation(np.linalg.inv, np.zeros((2, 2)), stage="estimate")

        assert isinstance(exc_info.value.__cause__, np.linalg.LinAlgError)

    def test_other_failures_become_estimation_error(self, handler):
        def fail():
            raise ValueError("x must be 2d")

        with pytest.raises(EstimationError) as exc_info:
            handler.wrap_estimation(fail, stage="bootstrap")

        assert exc_info.value.context['estimation_stage'] == "bootstrap"

    def test_failure_is_logged(self, handler, caplog):
        with pytest.raises(NumericalError):
            handler.wrap_estimation(np.linalg.inv, np.zeros((2, 2)), stage="estimate")

        assert "estimate failed: LinAlgError" in caplog.text


class TestLoggingHelpers:

    def test_performance_timer_logs_completion(self, caplog):
        caplog.set_level(logging.INFO)
        perf = PerformanceLogger(logging.getLogger("monetary_svar.test"))

        with perf.timer("estimation", lags=4):
            pass

        assert "Completed estimation" in caplog.text

    def test_performance_timer_reraises(self, caplog):
        perf = PerformanceLogger(logging.getLogger("monetary_svar.test"))

        with pytest.raises(RuntimeError):
            with perf.timer("bootstrap"):
                raise RuntimeError("diverged")

        assert "Failed bootstrap" in caplog.text

    def test_error_logger_with_recovery_warns(self, caplog):
        ErrorLogger(logging.getLogger("monetary_svar.test")).log_error(
            SourceUnavailable("down"), recovery_action="loading snapshot"
        )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "loading snapshot" in record.getMessage()

    def test_error_logger_without_recovery_errors(self, caplog):
        ErrorLogger(logging.getLogger("monetary_svar.test")).log_error(ValueError("bad"))

        assert caplog.records[-1].levelno == logging.ERROR

    def test_json_formatter_includes_extra_fields(self):
        record = logging.LogRecord("monetary_svar", logging.INFO, __file__, 1,
                                   "done", None, None)
        record.extra_fields = {'operation': 'fetch'}

        formatted = JSONFormatter().format(record)

        assert '"operation": "fetch"' in formatted
        assert '"message": "done"' in formatted
