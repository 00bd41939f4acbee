"""
Structured JSON logging for the Horoscope API.

Provides consistent, structured logging with request correlation,
performance metrics, and business context for observability.
"""

import json
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Dict, Any, Optional
from datetime import datetime, timezone


# Context variable for request correlation
request_id_context: ContextVar[Optional[str]] = ContextVar('request_id', default=None)

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName'
}


class JsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in a consistent JSON format with:
    - Standard fields: timestamp, level, logger, message
    - Request correlation: request_id
    - Performance: duration_ms (for timed operations)
    - Business context: location, julian_day, body, etc.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_context.get()
        if request_id:
            log_entry["request_id"] = request_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Add extra fields from the log record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, separators=(',', ':'), default=str)


class StructuredLogger:
    """
    Structured logger with business context support.

    Provides methods for logging common business operations with
    consistent structure and correlation.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def horoscope_computed(
        self,
        location: str,
        julian_day: float,
        body_count: int,
        skipped: list,
        duration_ms: float
    ):
        """Log a successfully computed horoscope."""
        self.logger.info(
            "Horoscope computed successfully",
            extra={
                "operation": "horoscope_computed",
                "location": location,
                "julian_day": julian_day,
                "body_count": body_count,
                "skipped_bodies": skipped,
                "duration_ms": round(duration_ms, 2),
                "performance_category": self._categorize_performance(duration_ms)
            }
        )

    def horoscope_error(
        self,
        error_code: str,
        error_message: str,
        location: Optional[str],
        duration_ms: float
    ):
        """Log a rejected horoscope request."""
        self.logger.warning(
            f"Horoscope request rejected: {error_message}",
            extra={
                "operation": "horoscope_error",
                "error_code": error_code,
                "error_message": error_message,
                "location": location,
                "duration_ms": round(duration_ms, 2)
            }
        )

    def body_skipped(self, body: str, julian_day: float, swisseph_error: str):
        """Log a body dropped after an ephemeris error."""
        self.logger.warning(
            f"Ephemeris calculation failed for {body}, omitting",
            extra={
                "operation": "body_skipped",
                "body": body,
                "julian_day": julian_day,
                "swisseph_error": swisseph_error
            }
        )

    def startup_event(
        self,
        component: str,
        status: str,  # "starting", "ready", "disabled", "error"
        duration_ms: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Log application startup events."""
        level = logging.ERROR if status == "error" else logging.INFO
        self.logger.log(
            level,
            f"Startup: {component} {status}",
            extra={
                "operation": "startup",
                "component": component,
                "status": status,
                "duration_ms": round(duration_ms, 2) if duration_ms else None,
                **(details or {})
            }
        )

    @staticmethod
    def _categorize_performance(duration_ms: float) -> str:
        """Categorize performance for easy filtering."""
        if duration_ms < 10:
            return "fast"
        elif duration_ms < 50:
            return "normal"
        elif duration_ms < 250:
            return "slow"
        else:
            return "very_slow"


def setup_logging(level: str = "INFO", enable_json: bool = True) -> None:
    """
    Setup structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        enable_json: Whether to use JSON formatting
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=[],
        force=True
    )

    console_handler = logging.StreamHandler()

    if enable_json:
        console_handler.setFormatter(JsonFormatter())
    else:
        # Simple formatter for development
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def set_request_context(request_id: Optional[str] = None) -> str:
    """
    Set request context for correlation.

    Args:
        request_id: Optional request ID (generated if not provided)

    Returns:
        The request ID (generated or provided)
    """
    if request_id is None:
        request_id = str(uuid.uuid4())

    request_id_context.set(request_id)
    return request_id


def clear_request_context():
    """Clear request context."""
    request_id_context.set(None)


def get_request_id() -> Optional[str]:
    """Get current request ID from context."""
    return request_id_context.get()


class TimedOperation:
    """Context manager for timing operations with automatic logging."""

    def __init__(self, logger: StructuredLogger, operation_name: str, **context):
        self.logger = logger
        self.operation_name = operation_name
        self.context = context
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is None:
            self.logger.logger.info(
                f"Operation completed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_ms": round(self.duration_ms, 2),
                    "performance_category": StructuredLogger._categorize_performance(self.duration_ms),
                    **self.context
                }
            )
        else:
            self.logger.logger.error(
                f"Operation failed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_ms": round(self.duration_ms, 2),
                    "error_type": exc_type.__name__ if exc_type else None,
                    "error_message": str(exc_val) if exc_val else None,
                    **self.context
                }
            )
