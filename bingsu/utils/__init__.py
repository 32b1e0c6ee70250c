"""Utility modules."""

from bingsu.utils.logging import ServiceLogger, get_logger, setup_logging
from bingsu.utils.tracing import CommitTracer

__all__ = ["setup_logging", "get_logger", "ServiceLogger", "CommitTracer"]
