"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger.json import JsonFormatter

from bingsu.config import get_settings


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    # Configure standard library logging
    log_level = getattr(logging, settings.log_level)

    if settings.log_format == "json":
        # JSON logging for production
        handler = logging.StreamHandler(sys.stdout)
        formatter = JsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
        handler.setFormatter(formatter)
    else:
        # Human-readable logging for development
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class ServiceLogger:
    """Logger bound to one shop service."""

    def __init__(self, service_id: str):
        self.service_id = service_id
        self.logger = get_logger(service_id)

    def log_operation(
        self,
        action: str,
        duration_ms: float | None = None,
        **kwargs: Any,
    ) -> None:
        """Log a completed state-changing operation."""
        log_data: dict[str, Any] = {
            "service": self.service_id,
            "action": action,
        }

        if duration_ms is not None:
            log_data["duration_ms"] = duration_ms

        log_data.update(kwargs)
        self.logger.info("service_operation", **log_data)

    def log_rejection(
        self,
        action: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        """Log a request refused by a business rule."""
        self.logger.warning(
            "service_rejection",
            service=self.service_id,
            action=action,
            reason=reason,
            **kwargs,
        )

    def log_compensation(
        self,
        step: str,
        success: bool,
        **kwargs: Any,
    ) -> None:
        """Log the undo of a side effect after a failed commit."""
        log = self.logger.info if success else self.logger.error
        log(
            "compensation",
            service=self.service_id,
            step=step,
            success=success,
            **kwargs,
        )

    def log_error(self, error: str, **kwargs: Any) -> None:
        """Log an error."""
        self.logger.error(
            "service_error",
            service=self.service_id,
            error=error,
            **kwargs,
        )
