"""
Step execution exceptions.

Every failure raised while executing a single step derives from StepError,
which carries the id and type of the failing step. The executor fills in
``duration_ms`` before the error leaves it.
"""

from typing import Any, Dict, Optional

from stepflow.exceptions.base import StepflowError


class StepError(StepflowError):
    """
    Base exception for step execution failures.

    Attributes:
        step_id: Id of the step that failed (if known)
        step_type: Type tag of the step that failed (if known)
        duration_ms: Time spent in the step before it failed
    """

    def __init__(
        self,
        message: str,
        step_id: Optional[str] = None,
        step_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.step_id = step_id
        self.step_type = step_type
        self.duration_ms: Optional[float] = None

    def tag(self, step_id: str, step_type: str, duration_ms: float) -> "StepError":
        """Attach step identity and timing, keeping values already set."""
        self.step_id = self.step_id or step_id
        self.step_type = self.step_type or step_type
        self.duration_ms = duration_ms
        return self


class ValidationFailure(StepError):
    """
    Malformed step parameters.

    Raised for unknown step types, missing required fields and values
    that cannot be interpreted (bad JSON, unknown operations, ...).
    """
    pass


class TimeoutFailure(StepError):
    """
    Element not found within the bounded wait.

    Attributes:
        selector: The selector that could not be resolved
        timeout_ms: How long the backend waited
    """

    def __init__(
        self,
        message: str,
        selector: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, details={"selector": selector, "timeout_ms": timeout_ms}, **kwargs)
        self.selector = selector
        self.timeout_ms = timeout_ms


class TransportFailure(StepError):
    """
    Network or remote service error.

    Attributes:
        status_code: HTTP status returned by the remote side (None for
            connection level errors)
        body: First 500 characters of the response body
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        **kwargs: Any,
    ):
        excerpt = body[:500] if body else None
        super().__init__(message, details={"status_code": status_code, "body": excerpt}, **kwargs)
        self.status_code = status_code
        self.body = excerpt


class UnsupportedOperation(StepError):
    """
    Step kind that the active backend or this build cannot perform.
    """
    pass
