"""
Structured Logging Module

Structured logging with keyword context for the setup run.
Diagnostics always go to stderr so the console narration on stdout
stays exactly as the user expects to read it.
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Any, Callable, TypeVar

F = TypeVar('F', bound=Callable[..., Any])

LOG_LEVEL_ENV = "CLAUDE_SETUP_LOG_LEVEL"

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created', 'msecs',
    'relativeCreated', 'thread', 'threadName', 'processName',
    'process', 'getMessage', 'exc_info', 'exc_text', 'stack_info',
    'taskName',
})


class LogLevel(Enum):
    """Log levels aligned with standard logging."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: str | None, default: 'LogLevel') -> 'LogLevel':
        """Parse a level name ("debug", "INFO", ...), falling back to default."""
        if not value:
            return default
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return default


@dataclass(frozen=True)
class LogContext:
    """Immutable context for log entries."""
    extra: dict[str, Any] = field(default_factory=dict)

    def merged(self, **kwargs: Any) -> 'LogContext':
        return LogContext(extra={**self.extra, **kwargs})


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured log output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter()
    return logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


class StructuredLogger:
    """
    Structured logger with keyword context.

    One instance per logger name. Extra keyword arguments passed to the
    level methods become fields on the record (and keys in JSON output).
    """

    _instances: dict[str, 'StructuredLogger'] = {}

    def __new__(cls, name: str) -> 'StructuredLogger':
        if name not in cls._instances:
            instance = super().__new__(cls)
            cls._instances[name] = instance
        return cls._instances[name]

    def __init__(self, name: str):
        if hasattr(self, '_initialized'):
            return

        self.name = name
        self._logger = logging.getLogger(name)
        self._context = LogContext()
        self._initialized = True

    @contextmanager
    def context(self, **kwargs: Any) -> Any:
        """
        Temporarily attach fields to every entry logged in the block.

        Usage:
            with logger.context(plugin="feature-dev", position=3):
                logger.debug("Invoking external tool")
        """
        previous = self._context
        self._context = previous.merged(**kwargs)
        try:
            yield
        finally:
            self._context = previous

    def _log(self, level: LogLevel, message: str, **extra: Any) -> None:
        all_extra = {**self._context.extra, **extra}
        # stacklevel=3 attributes the record to the caller of debug()/info()
        self._logger.log(level.value, message, extra=all_extra, stacklevel=3)

    def debug(self, message: str, **extra: Any) -> None:
        self._log(LogLevel.DEBUG, message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self._log(LogLevel.INFO, message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._log(LogLevel.WARNING, message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self._log(LogLevel.ERROR, message, **extra)

    def critical(self, message: str, **extra: Any) -> None:
        self._log(LogLevel.CRITICAL, message, **extra)

    def exception(self, message: str, **extra: Any) -> None:
        """Log exception with traceback."""
        self._logger.exception(message, extra={**self._context.extra, **extra})


def get_logger(name: str) -> StructuredLogger:
    """
    Get or create a structured logger.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)


def log_execution(
    logger: StructuredLogger | None = None,
    level: LogLevel = LogLevel.DEBUG,
    log_result: bool = False,
    log_errors: bool = True
) -> Callable[[F], F]:
    """
    Decorator to log entry and exit of a function.

    Args:
        logger: Logger instance (uses module logger if None)
        level: Log level for entry/exit records
        log_result: Include return value in the exit record
        log_errors: Log exceptions before re-raising

    Usage:
        @log_execution(level=LogLevel.INFO)
        def run(self) -> SetupResult:
            ...
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            nonlocal logger
            if logger is None:
                logger = get_logger(func.__module__)

            func_name = f"{func.__module__}.{func.__qualname__}"
            logger._log(level, f"→ Entering {func_name}")

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if log_errors:
                    logger.error(
                        f"✗ Error in {func_name}: {e}",
                        error_type=type(e).__name__
                    )
                raise

            exit_data = {'result': str(result)} if log_result else {}
            logger._log(level, f"← Exiting {func_name}", **exit_data)
            return result

        return wrapper  # type: ignore
    return decorator


def configure_global_logging(
    level: LogLevel | int | None = None,
    json_format: bool = False,
    log_file: Path | None = None
) -> None:
    """
    Configure the root logger for a setup run.

    Args:
        level: Minimum log level. When None, read from CLAUDE_SETUP_LOG_LEVEL
            (default WARNING).
        json_format: Use JSON format for output
        log_file: Optional file path for log output
    """
    if level is None:
        level = LogLevel.parse(os.environ.get(LOG_LEVEL_ENV), LogLevel.WARNING)
    numeric_level = level.value if isinstance(level, LogLevel) else level

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = _build_formatter(json_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
