"""
Step handlers - one coroutine per step type.

Handlers register themselves with ``@handles(...)`` and are looked up by
the executor through ``get_handler``. A handler receives the executor,
a step whose strings are already substituted, and the execution context;
it returns the step's result value or raises a StepError.
"""

from typing import Any, Awaitable, Callable, Dict

from stepflow.exceptions import UnsupportedOperation

Handler = Callable[..., Awaitable[Any]]

HANDLERS: Dict[str, Handler] = {}


def handles(*step_types: str) -> Callable[[Handler], Handler]:
    """
    Decorator to register a handler for one or more step types.

    Example:
        >>> @handles("click")
        ... async def click(executor, step, ctx):
        ...     await (await executor.browser(ctx)).click(step.selector)
    """
    def decorator(func: Handler) -> Handler:
        for step_type in step_types:
            HANDLERS[step_type] = func
        return func
    return decorator


def get_handler(step_type: str) -> Handler:
    """
    Look up the handler for a step type.

    Raises:
        UnsupportedOperation: If no handler is registered
    """
    handler = HANDLERS.get(step_type)
    if handler is None:
        raise UnsupportedOperation(f"Unsupported step type: {step_type}", step_type=step_type)
    return handler


# Import handler modules so they register themselves
from stepflow.engine.handlers import (  # noqa: E402,F401
    ai,
    browser,
    discord,
    http,
    slack,
    system,
    twitter,
    variables,
)

__all__ = ["HANDLERS", "Handler", "handles", "get_handler"]
