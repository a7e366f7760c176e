"""Structured logging configuration.

Provides JSON-formatted logs with request and account context for production,
and a human-readable format for local development.
"""
import logging
import json
import sys
from datetime import datetime
from typing import Any, Dict, Optional
import traceback


CONTEXT_FIELDS = (
    "request_id", "account_id", "role", "class_id", "pass_id", "endpoint",
    "method", "status_code", "duration_ms", "error_type",
)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging.

    Outputs timestamp, level, message, module, function, and any studio
    context fields passed through ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        for attr in CONTEXT_FIELDS:
            if hasattr(record, attr):
                log_obj[attr] = getattr(record, attr)

        return json.dumps(log_obj, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that includes persistent context in all log messages.

    Example:
        >>> logger = ContextLogger(base_logger, {"account_id": "U00001"})
        >>> logger.info("Pass purchased")
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """Configure application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Whether to use JSON formatter (True for production)

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        formatter = JSONFormatter()
    else:
        fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    return root_logger


def get_logger(name: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Get a logger with optional context.

    Args:
        name: Logger name (typically __name__ of module)
        context: Optional context dict to include in all logs

    Returns:
        Logger or ContextLogger if context provided
    """
    logger = logging.getLogger(name)

    if context:
        return ContextLogger(logger, context)

    return logger


class LogTimer:
    """Context manager for timing operations and logging duration.

    Example:
        >>> with LogTimer(logger, "performance_report"):
        ...     report = build_report(...)
        # Logs: "performance_report completed in 12.5ms"
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.start_time: Optional[datetime] = None

    def __enter__(self):
        self.start_time = datetime.utcnow()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            duration = (datetime.utcnow() - self.start_time).total_seconds() * 1000

            if exc_type:
                self.logger.warning(
                    f"{self.operation} failed after {duration:.1f}ms",
                    extra={"duration_ms": duration, "error_type": exc_type.__name__},
                )
            else:
                self.logger.info(
                    f"{self.operation} completed in {duration:.1f}ms",
                    extra={"duration_ms": duration}
                )


# Initialize logging on module import (can be reconfigured later)
setup_logging(
    level="INFO",
    json_format=False
)
