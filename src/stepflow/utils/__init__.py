"""
Utility helpers: logging setup and retry.
"""

from stepflow.utils.logging import setup_logging, get_logger
from stepflow.utils.retry import RetryConfig, retry_async

__all__ = [
    "setup_logging",
    "get_logger",
    "RetryConfig",
    "retry_async",
]
