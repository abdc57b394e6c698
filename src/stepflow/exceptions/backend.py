"""
Backend-related exceptions.
"""

from stepflow.exceptions.base import StepflowError


class BackendError(StepflowError):
    """Base exception for browser backend errors."""
    pass


class BackendLaunchError(BackendError):
    """
    Error launching the browser backend.

    Raised when the browser fails to start, which could be due to:
    - Missing browser binaries (run ``playwright install chromium``)
    - Invalid launch options
    - Resource constraints
    """
    pass


class BackendNotReadyError(BackendError):
    """
    Backend used before launch() or after close().
    """
    pass
