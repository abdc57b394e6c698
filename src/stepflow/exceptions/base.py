"""
Base exceptions for stepflow.
"""


class StepflowError(Exception):
    """
    Base exception for all stepflow errors.

    All custom exceptions inherit from this class, so callers can catch
    anything raised by the engine with a single except clause.

    Attributes:
        message: Human-readable error message
        details: Optional additional error details
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(StepflowError):
    """
    Error in configuration.

    Raised when there's an issue with settings, environment variables,
    credentials or configuration files.
    """
    pass
