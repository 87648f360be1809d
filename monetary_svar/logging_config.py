"""
Logging configuration for the monetary policy SVAR pipeline.

This module provides centralized logging configuration with console and
rotating file handlers, an optional JSON formatter, stage timing and
structured error logging.
"""

import logging
import logging.handlers
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union
import json
import traceback
from contextlib import contextmanager

from .exceptions import MonetarySVARError


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


class PerformanceLogger:
    """
    Logger for timing pipeline stages.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def timer(self, operation_name: str, **context):
        """
        Context manager for timing operations.

        Args:
            operation_name: Name of the operation being timed
            **context: Additional context information
        """
        start_time = time.time()
        self.logger.info(f"Starting {operation_name}", extra={'extra_fields': {
            'operation': operation_name,
            'event': 'start',
            **context
        }})

        try:
            yield
            duration = time.time() - start_time
            self.logger.info(f"Completed {operation_name} in {duration:.3f}s",
                             extra={'extra_fields': {
                                 'operation': operation_name,
                                 'event': 'complete',
                                 'duration_seconds': duration,
                                 **context
                             }})
        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(f"Failed {operation_name} after {duration:.3f}s: {e}",
                              extra={'extra_fields': {
                                  'operation': operation_name,
                                  'event': 'error',
                                  'duration_seconds': duration,
                                  'error': str(e),
                                  **context
                              }})
            raise


class LoggingConfig:
    """
    Centralized logging configuration manager.
    """

    def __init__(self,
                 log_level: str = "INFO",
                 log_dir: Optional[Union[str, Path]] = None,
                 enable_console: bool = True,
                 enable_file: bool = True,
                 enable_json: bool = False,
                 max_file_size: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 5):
        """
        Initialize logging configuration.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (defaults to logs/)
            enable_console: Whether to enable console logging
            enable_file: Whether to enable file logging
            enable_json: Whether to use JSON formatting
            max_file_size: Maximum size of log files before rotation
            backup_count: Number of backup log files to keep
        """
        self.log_level = getattr(logging, log_level.upper())
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.enable_console = enable_console
        self.enable_file = enable_file
        self.enable_json = enable_json
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        if self.enable_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._configure_root_logger()

    def _configure_root_logger(self):
        """Configure the root logger with appropriate handlers."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)

        root_logger.handlers.clear()

        if self.enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self.log_level)

            if self.enable_json:
                console_handler.setFormatter(JSONFormatter())
            else:
                console_handler.setFormatter(logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                ))

            root_logger.addHandler(console_handler)

        if self.enable_file:
            log_file = self.log_dir / "monetary_svar.log"
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=self.max_file_size,
                backupCount=self.backup_count
            )
            file_handler.setLevel(self.log_level)

            if self.enable_json:
                file_handler.setFormatter(JSONFormatter())
            else:
                file_handler.setFormatter(logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
                ))

            root_logger.addHandler(file_handler)

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def configure_component_loggers(self):
        """Configure loggers for the package layers."""
        self.get_logger('monetary_svar.data').setLevel(self.log_level)

        # HTTP traffic is chatty; keep it one notch more verbose than the rest
        api_logger = self.get_logger('monetary_svar.data.fred_client')
        api_logger.setLevel(logging.DEBUG if self.log_level <= logging.INFO else self.log_level)

        self.get_logger('monetary_svar.econometric').setLevel(self.log_level)
        self.get_logger('monetary_svar.presentation').setLevel(self.log_level)
        self.get_logger('monetary_svar.integration').setLevel(self.log_level)


# Global logging configuration instance
_logging_config: Optional[LoggingConfig] = None


def setup_logging(log_level: str = "INFO",
                  log_dir: Optional[Union[str, Path]] = None,
                  enable_console: bool = True,
                  enable_file: bool = True,
                  enable_json: bool = False,
                  **kwargs) -> LoggingConfig:
    """
    Setup global logging configuration.

    Args:
        log_level: Logging level
        log_dir: Directory for log files
        enable_console: Whether to enable console logging
        enable_file: Whether to enable file logging
        enable_json: Whether to use JSON formatting
        **kwargs: Additional configuration options

    Returns:
        Configured LoggingConfig instance
    """
    global _logging_config

    _logging_config = LoggingConfig(
        log_level=log_level,
        log_dir=log_dir,
        enable_console=enable_console,
        enable_file=enable_file,
        enable_json=enable_json,
        **kwargs
    )

    _logging_config.configure_component_loggers()
    return _logging_config


class ErrorLogger:
    """
    Specialized logger for errors and the recovery taken after them.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  recovery_action: Optional[str] = None):
        """
        Log an error with detailed information.

        A recovered error is logged at WARNING without a traceback; an
        unrecovered one at ERROR with the traceback attached.

        Args:
            error: Exception that occurred
            context: Additional context information
            recovery_action: Description of recovery action taken
        """
        error_info = {
            'error_type': type(error).__name__,
            'error_message': str(error),
        }

        if isinstance(error, MonetarySVARError):
            error_info['error_code'] = error.error_code
            if error.context:
                error_info['error_context'] = error.context

        if context:
            error_info['additional_context'] = context

        if recovery_action:
            error_info['recovery_action'] = recovery_action
            self.logger.warning(f"{error}; {recovery_action}",
                                extra={'extra_fields': error_info})
        else:
            self.logger.error(f"Error occurred: {error}",
                              extra={'extra_fields': error_info},
                              exc_info=True)
