"""
Exception hierarchy for stepflow.
"""

from stepflow.exceptions.base import StepflowError, ConfigurationError
from stepflow.exceptions.step import (
    StepError,
    ValidationFailure,
    TimeoutFailure,
    TransportFailure,
    UnsupportedOperation,
)
from stepflow.exceptions.graph import (
    GraphError,
    GraphValidationError,
    EdgeRejectedError,
    IterationLimitError,
)
from stepflow.exceptions.backend import (
    BackendError,
    BackendLaunchError,
    BackendNotReadyError,
)
from stepflow.exceptions.llm import (
    LLMError,
    LLMAuthenticationError,
    RateLimitError,
    InvalidResponseError,
    BoundedIterationFailure,
)

__all__ = [
    "StepflowError",
    "ConfigurationError",
    "StepError",
    "ValidationFailure",
    "TimeoutFailure",
    "TransportFailure",
    "UnsupportedOperation",
    "GraphError",
    "GraphValidationError",
    "EdgeRejectedError",
    "IterationLimitError",
    "BackendError",
    "BackendLaunchError",
    "BackendNotReadyError",
    "LLMError",
    "LLMAuthenticationError",
    "RateLimitError",
    "InvalidResponseError",
    "BoundedIterationFailure",
]
