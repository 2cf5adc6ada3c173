"""
Centralized logging and error classification utilities for chatstream.

Features:
- Structured logging with contextual information
- Error type detection and classification
- Operation timing for streaming calls
- Context-aware loggers that never carry secrets
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog

from .chat.exceptions import (
    FrameDecodeError,
    RequestValidationError,
    StreamCancelledError,
    StreamTimeoutError,
    TransportError,
    UpstreamError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

SENSITIVE_KEYS = frozenset({"api_key", "authorization", "token"})


def configure_logging(level: str | int = "INFO") -> None:
    """Set the stdlib log level that structlog filters against."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level '{level}'")
        level = resolved

    logging.basicConfig(
        level=level, format="%(asctime)s - %(levelname)s - %(message)s"
    )
    logging.getLogger().setLevel(level)


class ErrorClassifier:
    """Maps exceptions to stable categories for structured logs."""

    @staticmethod
    def classify_error(error: BaseException) -> str:
        """
        Classify an error into a logging category.

        Args:
            error: The exception to classify

        Returns:
            Error category name
        """
        if isinstance(error, RequestValidationError):
            return "validation_error"
        if isinstance(error, StreamCancelledError | asyncio.CancelledError):
            return "cancelled"
        if isinstance(error, StreamTimeoutError | TimeoutError | httpx.TimeoutException):
            return "timeout_error"
        if isinstance(error, TransportError):
            return "transport_error"
        if isinstance(error, UpstreamError):
            return "upstream_error"
        if isinstance(error, FrameDecodeError):
            return "decode_error"
        if isinstance(error, ConnectionError | OSError | httpx.TransportError):
            return "connection_error"
        if isinstance(error, ValueError | TypeError):
            return "parameter_error"
        return "unknown_error"


def redact(context: dict[str, Any]) -> dict[str, Any]:
    """Drop secret-bearing keys from a logging context."""
    return {k: v for k, v in context.items() if k.lower() not in SENSITIVE_KEYS}


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **redact(context or {}),
    )

    operation_logger.info("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger

        log_data: dict[str, Any] = {}
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            log_data["duration_ms"] = duration

        operation_logger.info("Operation completed successfully", **log_data)

    except BaseException as e:
        error_log_data: dict[str, Any] = {
            "error_type": type(e).__name__,
            "error_category": ErrorClassifier.classify_error(e),
            "error_message": str(e),
        }
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            error_log_data["duration_ms"] = duration

        operation_logger.error("Operation failed", **error_log_data)
        raise


class ContextualLogger:
    """Logger that maintains context across related operations."""

    def __init__(self, base_context: dict[str, Any] | None = None):
        self.base_context = redact(base_context or {})
        self._logger = logger.bind(**self.base_context)

    def bind(self, **context: Any) -> ContextualLogger:
        """Create a new logger with additional context."""
        merged_context = {**self.base_context, **context}
        return ContextualLogger(merged_context)

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, **context)
