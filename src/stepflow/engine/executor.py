"""
Step Executor - run one step against the active backend or service.

Every step goes through the same pipeline:
1. substitute ``{{ path }}`` templates in all of its string parameters
2. dispatch on ``step.type`` to the registered handler
3. persist the handler's value under ``step.store_key`` (if set)
4. record a StepResult, or raise a typed StepError tagged with the step
   id and the time spent
"""

from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Union
import logging
import time

import httpx
from pydantic import BaseModel

from stepflow.config import Settings, get_settings
from stepflow.engine.context import ExecutionContext, StepResult
from stepflow.engine.handlers import get_handler
from stepflow.engine.steps import Step, parse_step
from stepflow.engine.variables import VariableStore
from stepflow.exceptions import (
    BackendError,
    BoundedIterationFailure,
    ConfigurationError,
    LLMError,
    StepError,
    StepflowError,
    TransportFailure,
    UnsupportedOperation,
    ValidationFailure,
)
from stepflow.interfaces.backend import IBackend
from stepflow.interfaces.llm import ILLMProvider
from stepflow.security import CredentialVault

logger = logging.getLogger(__name__)


ProviderFactory = Callable[..., ILLMProvider]

# Most recent step results kept on an executor
HISTORY_LIMIT = 500


def _resolve_value(value: Any, store: VariableStore) -> Any:
    if isinstance(value, str):
        return store.substitute(value)
    if isinstance(value, list):
        return [_resolve_value(v, store) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_value(v, store) for k, v in value.items()}
    if isinstance(value, BaseModel):
        return resolve_parameters(value, store)
    return value


def resolve_parameters(model: BaseModel, store: VariableStore) -> Any:
    """
    Copy of ``model`` with templates substituted in every string field.

    The ``id`` and ``type`` fields are left alone.
    """
    updates: Dict[str, Any] = {}
    for name in type(model).model_fields:
        if name in ("id", "type"):
            continue
        value = getattr(model, name)
        resolved = _resolve_value(value, store)
        if resolved != value:
            updates[name] = resolved
    return model.model_copy(update=updates) if updates else model


def _as_step_error(error: Exception) -> StepError:
    """Translate a non-step exception into the matching StepError."""
    if isinstance(error, StepError):
        return error
    if isinstance(error, ConfigurationError):
        return ValidationFailure(error.message, details=error.details)
    if isinstance(error, LLMError):
        return TransportFailure(
            error.message,
            status_code=error.details.get("status_code"),
            body=error.details.get("body"),
        )
    if isinstance(error, httpx.TimeoutException):
        return TransportFailure(f"Request timed out: {error}")
    if isinstance(error, httpx.HTTPError):
        return TransportFailure(f"Request failed: {error}")
    if isinstance(error, BackendError):
        return UnsupportedOperation(error.message, details=error.details)
    if isinstance(error, StepflowError):
        return StepError(error.message, details=error.details)
    if isinstance(error, ValueError):
        return ValidationFailure(str(error))
    return StepError(f"{type(error).__name__}: {error}")


class StepExecutor:
    """
    Dispatches steps to their handlers.

    The executor owns the shared collaborators handlers need (HTTP client,
    credential vault, LLM provider factory, settings) and a default
    ExecutionContext. Callers running several graphs at once pass their
    own context to ``execute_step``.

    Example:
        >>> executor = StepExecutor(backend=HeadlessBackend())
        >>> result = await executor.execute_step(parse_step({"type": "navigate", "value": "https://example.com"}))
        >>> result.success
        True
    """

    def __init__(
        self,
        backend: Optional[IBackend] = None,
        store: Optional[VariableStore] = None,
        vault: Optional[CredentialVault] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        provider_factory: Optional[ProviderFactory] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the executor.

        Args:
            backend: Browser backend for the default context
            store: Variable store for the default context
            vault: Credential lookup for ``credentialId`` parameters
            http_client: Client for HTTP and service steps (created lazily)
            provider_factory: Builds LLM providers by name, mainly for tests
            settings: Configuration (defaults to the global settings)
        """
        self.context = ExecutionContext(store=store or VariableStore(), backend=backend)
        self.vault = vault or CredentialVault()
        self.settings = settings or get_settings()
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._provider_factory = provider_factory
        self.history: Deque[StepResult] = deque(maxlen=HISTORY_LIMIT)

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(follow_redirects=True, timeout=30.0)
        return self._http_client

    def create_provider(self, name: str, **kwargs: Any) -> ILLMProvider:
        """Build an LLM provider for AI steps and the agent."""
        if self._provider_factory is not None:
            return self._provider_factory(name, **kwargs)
        from stepflow.llm import create_provider
        return create_provider(name, **kwargs)

    async def browser(self, ctx: ExecutionContext) -> IBackend:
        """
        The context's backend, launched on first use.

        Raises:
            UnsupportedOperation: If the run has no browser backend
        """
        if ctx.backend is None:
            raise UnsupportedOperation("This step needs a browser backend, but none is configured")
        if not ctx.backend.is_ready:
            logger.info(f"Launching {ctx.backend.name} backend")
            await ctx.backend.launch()
        return ctx.backend

    async def execute(self, data: Dict[str, Any], ctx: Optional[ExecutionContext] = None) -> StepResult:
        """Parse a raw step dict and execute it."""
        return await self.execute_step(parse_step(data), ctx)

    async def execute_step(self, step: Step, ctx: Optional[ExecutionContext] = None) -> StepResult:
        """
        Execute a single step.

        Args:
            step: Validated step model
            ctx: Context to run in (defaults to the executor's own)

        Returns:
            StepResult with the handler's value in ``data``

        Raises:
            StepError: Typed failure tagged with step id and duration
            BoundedIterationFailure: An aiAgent step ran out of iterations
        """
        ctx = ctx or self.context
        started_at = time.time()
        prefix = f"[{ctx.run_id}] " if ctx.run_id else ""
        logger.debug(f"{prefix}Executing {step.type} step {step.id}")

        try:
            resolved = resolve_parameters(step, ctx.store)
            handler = get_handler(step.type)
            data = await handler(self, resolved, ctx)
            if resolved.store_key:
                data = ctx.store.set(resolved.store_key, data)
        except BoundedIterationFailure as e:
            duration_ms = (time.time() - started_at) * 1000
            self._record(step, started_at, duration_ms, error=e.message)
            logger.error(f"{prefix}Step {step.id} ({step.type}) failed: {e.message}")
            raise
        except Exception as e:
            duration_ms = (time.time() - started_at) * 1000
            error = _as_step_error(e).tag(step.id, step.type, duration_ms)
            self._record(step, started_at, duration_ms, error=error.message)
            logger.error(f"{prefix}Step {step.id} ({step.type}) failed after {duration_ms:.0f}ms: {error.message}")
            if error is e:
                raise
            raise error from e

        duration_ms = (time.time() - started_at) * 1000
        result = self._record(step, started_at, duration_ms, data=data)
        logger.info(f"{prefix}Step {step.id} ({step.type}) completed in {duration_ms:.0f}ms")
        return result

    def _record(
        self,
        step: Step,
        started_at: float,
        duration_ms: float,
        data: Any = None,
        error: Optional[str] = None,
    ) -> StepResult:
        result = StepResult(
            step_id=step.id,
            step_type=step.type,
            success=error is None,
            data=data,
            error=error,
            started_at=started_at,
            duration_ms=duration_ms,
        )
        self.history.append(result)
        return result

    async def close(self) -> None:
        """Close the HTTP client if the executor created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def describe_error(error: Union[StepError, Exception]) -> str:
    """One-line description of a step failure, used for tool results."""
    if isinstance(error, StepError):
        return f"{type(error).__name__}: {error.message}"
    return f"{type(error).__name__}: {error}"
