"""
Logging Configuration for the Profile Widget API.

Centralized logging setup. Development runs get colour-coded console output;
every other environment gets one JSON object per line, suitable for log
shippers. A per-request correlation id is carried in a context variable and
attached to every record emitted while that request is being handled.

Key Components:
- `CorrelationFilter`: injects the current correlation id into log records.
- `StructuredFormatter`: JSON formatter for non-development environments.
- `ColoredConsoleFormatter`: human-readable formatter for development.
- `get_logging_config` / `setup_logging`: build and apply the dictConfig.
- `log_function_call`: decorator logging entry, exit and duration of a call.
"""

import asyncio
import functools
import json
import logging
import logging.config
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar

from core.config import get_settings

# Context variable for request correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED_ATTRS = set(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName", "correlation_id"}


class CorrelationFilter(logging.Filter):
    """Filter that adds correlation ID to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        corr_id = correlation_id.get()
        if corr_id:
            record.correlation_id = corr_id
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        corr_id = getattr(record, "correlation_id", None) or correlation_id.get()
        if corr_id:
            log_entry["correlation_id"] = corr_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored console formatter for development"""

    # ANSI foreground codes: cyan, green, yellow, red, magenta
    COLORS = {
        level: f"\033[{code}m"
        for level, code in zip(
            ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"), (36, 32, 33, 31, 35)
        )
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        corr_id = getattr(record, "correlation_id", None)
        corr_part = f" [{corr_id}]" if corr_id else ""

        formatted = (
            f"{color}[{timestamp}] {record.levelname:8} {record.name}{corr_part}: "
            f"{record.getMessage()}{self.RESET}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration based on environment"""
    settings = get_settings()
    environment = settings.environment.lower()
    log_level = settings.log_level.upper()

    def app_logger() -> Dict[str, Any]:
        return {"level": log_level, "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation": {"()": CorrelationFilter},
        },
        "formatters": {
            "structured": {"()": StructuredFormatter},
            "colored_console": {"()": ColoredConsoleFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "colored_console"
                if environment == "development"
                else "structured",
                "filters": ["correlation"],
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "api": app_logger(),
            "services": app_logger(),
            "providers": app_logger(),
            "core": app_logger(),
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {"level": log_level, "handlers": ["console"]},
    }


def setup_logging():
    """Initialize logging configuration"""
    logging.config.dictConfig(get_logging_config())

    logger = logging.getLogger("core.logging")
    logger.info(f"Logging initialized for {get_settings().environment} environment")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name"""
    return logging.getLogger(name)


def set_correlation_id(corr_id: Optional[str]):
    """Set correlation ID for the current context"""
    correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    """Get correlation ID from the current context"""
    return correlation_id.get()


def log_function_call(logger: logging.Logger):
    """Decorator to log function calls with execution time"""

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            logger.debug(f"Calling {func.__name__}")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    f"Failed {func.__name__}: {e}",
                    extra={
                        "execution_time_ms": _elapsed_ms(start_time),
                        "error_type": type(e).__name__,
                    },
                )
                raise
            logger.debug(
                f"Completed {func.__name__}",
                extra={"execution_time_ms": _elapsed_ms(start_time)},
            )
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            logger.debug(f"Calling {func.__name__}")
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    f"Failed {func.__name__}: {e}",
                    extra={
                        "execution_time_ms": _elapsed_ms(start_time),
                        "error_type": type(e).__name__,
                    },
                )
                raise
            logger.debug(
                f"Completed {func.__name__}",
                extra={"execution_time_ms": _elapsed_ms(start_time)},
            )
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)
