"""
Shared logging configuration for the signup email services.
Provides structured JSON console logging with correlation IDs and service context.
"""

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def __init__(self, service_name: str, service_version: str = "1.0.0"):
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version
        self.hostname = os.getenv('HOSTNAME', 'localhost')
        self.environment = os.getenv('ENVIRONMENT', 'development')

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'service': {
                'name': self.service_name,
                'version': self.service_version,
                'hostname': self.hostname,
                'environment': self.environment
            },
            'location': {
                'file': record.filename,
                'line': record.lineno,
                'function': record.funcName
            }
        }

        correlation_id = getattr(record, 'correlation_id', None)
        if correlation_id:
            log_entry['correlation_id'] = correlation_id

        extra_fields = getattr(record, 'extra_fields', None)
        if extra_fields:
            log_entry['extra'] = extra_fields

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(
    service_name: str,
    service_version: str = "1.0.0",
    log_level: Optional[str] = None,
    log_format: str = "json"
) -> None:
    """
    Set up console logging for a service.

    Args:
        service_name: Name of the service
        service_version: Version of the service
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            read from LOG_LEVEL when omitted
        log_format: Format type ('json' or 'text')

    Raises:
        ValueError: If the log level is not a known level name
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')
    log_level = log_level.upper()

    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    if log_format.lower() == 'json':
        formatter = JSONFormatter(service_name, service_version)
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=numeric_level,
        handlers=[console_handler],
        force=True
    )

    # kafka-python is chatty at INFO
    logging.getLogger('kafka').setLevel(logging.WARNING)

    logging.getLogger(service_name).info(
        f"Logging configured for {service_name} v{service_version}",
        extra={'extra_fields': {'log_level': log_level, 'log_format': log_format}}
    )


def log_with_correlation(
    logger: logging.Logger,
    level: int,
    message: str,
    correlation_id: Optional[str] = None,
    extra_fields: Optional[Dict[str, Any]] = None,
    exc_info: bool = False
) -> None:
    """
    Log a message with correlation and context information.

    Args:
        logger: Logger instance
        level: Log level (logging.DEBUG, INFO, etc.)
        message: Log message
        correlation_id: Identifies the consumed message, e.g. ``topic:partition:offset``
        extra_fields: Additional fields to include
        exc_info: Include exception information
    """
    extra = {}

    if correlation_id:
        extra['correlation_id'] = correlation_id

    if extra_fields:
        extra['extra_fields'] = extra_fields

    logger.log(level, message, extra=extra, exc_info=exc_info)
