"""
Structured logging for the FAQ Chat Widget API.

Provides consistent, parseable logging throughout the application
with support for different log levels and structured output.
"""

import os
import sys
import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with colors."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m"
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S")

        msg = f"{color}[{timestamp}] {record.levelname:8}{reset} | {record.name}: {record.getMessage()}"

        if getattr(record, "extra_data", None):
            data_str = ", ".join(f"{k}={v}" for k, v in record.extra_data.items())
            msg += f" | {data_str}"

        if record.exc_info:
            msg += f"\n{self.formatException(record.exc_info)}"

        return msg


class AppLogger:
    """Application logger with keyword-argument structured fields."""

    _instances: Dict[str, 'AppLogger'] = {}

    def __init__(self, name: str, level: Optional[str] = None):
        """
        Initialize logger.

        Args:
            name: Logger name (usually module name)
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        self.name = name
        self.level = level or os.getenv("LOG_LEVEL", "INFO")
        self.logger = logging.getLogger(name)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Setup logging handlers."""
        if self.logger.handlers:
            return  # Already configured

        self.logger.setLevel(getattr(logging, self.level.upper(), logging.INFO))

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ConsoleFormatter())
        self.logger.addHandler(console_handler)

        # File handler (structured JSON) - optional
        log_file = os.getenv("LOG_FILE")
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(file_handler)

        self.logger.propagate = False

    def _log(self, level: int, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Internal logging method with extra data support."""
        if not self.logger.isEnabledFor(level):
            return
        record = self.logger.makeRecord(
            self.name, level, "", 0, message, (), None
        )
        if extra:
            record.extra_data = extra
        self.logger.handle(record)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, kwargs or None)

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        self._log(logging.INFO, message, kwargs or None)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, kwargs or None)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """Log error message, optionally with the active traceback."""
        if exc_info:
            kwargs["traceback"] = traceback.format_exc()
        self._log(logging.ERROR, message, kwargs or None)

    def critical(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """Log critical message."""
        if exc_info:
            kwargs["traceback"] = traceback.format_exc()
        self._log(logging.CRITICAL, message, kwargs or None)

    def request(self, method: str, path: str, status: int, duration_ms: float, **kwargs) -> None:
        """Log HTTP request."""
        self.info(
            f"{method} {path} -> {status}",
            method=method,
            path=path,
            status=status,
            duration_ms=round(duration_ms, 2),
            **kwargs
        )

    def vector_query(self, collection: str, results_count: int, duration_ms: float, **kwargs) -> None:
        """Log a similarity query against the FAQ index."""
        self.info(
            f"Vector query on '{collection}': {results_count} matches",
            collection=collection,
            results=results_count,
            duration_ms=round(duration_ms, 2),
            **kwargs
        )

    def generation_call(self, provider: str, model: str, prompt_messages: int, **kwargs) -> None:
        """Log the start of a streaming generation call."""
        self.info(
            f"Generation stream opened via {provider} ({model})",
            provider=provider,
            model=model,
            prompt_messages=prompt_messages,
            **kwargs
        )

    def session_write(self, session_id: str, success: bool, **kwargs) -> None:
        """Log a session persistence attempt."""
        level = logging.INFO if success else logging.ERROR
        status = "stored" if success else "FAILED"
        self._log(
            level,
            f"Session write {status}",
            {"session_id": session_id, "success": success, **kwargs}
        )


def get_logger(name: str) -> AppLogger:
    """
    Get or create a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        AppLogger instance
    """
    if name not in AppLogger._instances:
        AppLogger._instances[name] = AppLogger(name)
    return AppLogger._instances[name]
