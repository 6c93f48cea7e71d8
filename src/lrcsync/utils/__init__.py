"""Utility modules."""

from .logging import setup_logging, get_logger
from .retry import retry_with_backoff

__all__ = [
    "setup_logging",
    "get_logger",
    "retry_with_backoff",
]
