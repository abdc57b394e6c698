"""
LLM-related exceptions.
"""

from typing import Any, List, Optional

from stepflow.exceptions.base import StepflowError


class LLMError(StepflowError):
    """Base exception for LLM-related errors."""
    pass


class LLMAuthenticationError(LLMError):
    """
    Authentication error with LLM provider.

    Raised when API key is invalid or missing.
    """
    pass


class RateLimitError(LLMError):
    """
    Rate limit exceeded.

    Attributes:
        retry_after: Suggested wait time in seconds before retrying
    """

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message, {"retry_after": retry_after})
        self.retry_after = retry_after


class InvalidResponseError(LLMError):
    """
    Invalid response from LLM.

    Raised when the LLM response cannot be parsed or is malformed.
    """

    def __init__(self, message: str, raw_response: str | None = None):
        super().__init__(message, {"raw_response": raw_response[:500] if raw_response else None})
        self.raw_response = raw_response


class BoundedIterationFailure(LLMError):
    """
    The agent exhausted its iteration cap without a final answer.

    Attributes:
        iterations: Number of provider calls made (equals the cap)
        transcript: Conversation at the time the cap was hit
    """

    def __init__(self, message: str, iterations: int, transcript: Optional[List[Any]] = None):
        super().__init__(message, {"iterations": iterations})
        self.iterations = iterations
        self.transcript = transcript or []
