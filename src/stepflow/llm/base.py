"""
Base LLM Provider - HTTP plumbing shared by all providers.
"""

from typing import Any, Dict, List, Optional
import logging

import httpx

from stepflow.exceptions import (
    LLMAuthenticationError,
    LLMError,
    RateLimitError,
)
from stepflow.interfaces.llm import (
    ILLMProvider,
    LLMResponse,
    Message,
    ToolDefinition,
)
from stepflow.llm.codecs import ProviderCodec, get_codec
from stepflow.utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)


class BaseLLMProvider(ILLMProvider):
    """
    Base class for HTTP chat providers.

    Subclasses set the endpoint path and auth headers; the codec for the
    provider's name does all request and response formatting. Rate-limited
    requests are retried with exponential backoff.
    """

    endpoint: str = ""
    requires_api_key: bool = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the provider.

        Args:
            api_key: API key (falls back to the provider's environment variable)
            model: Model to use (falls back to default_model)
            base_url: Custom API endpoint
            timeout: Request timeout in seconds
            max_retries: Extra attempts after a 429 response
            client: Pre-built HTTP client, mainly for tests
        """
        self._api_key = api_key
        self._model = model
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._timeout = timeout
        self._retry = RetryConfig(
            max_attempts=max_retries + 1,
            initial_delay_ms=1000,
            retry_on=(RateLimitError,),
        )
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @property
    def default_base_url(self) -> str:
        raise NotImplementedError

    @property
    def codec(self) -> ProviderCodec:
        return get_codec(self.name)

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _get_model(self, model: Optional[str] = None) -> str:
        """Get the model to use, with fallbacks."""
        return model or self._model or self.default_model

    async def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        tools: Optional[List[ToolDefinition]] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a completion."""
        if self.requires_api_key and not self._api_key:
            raise LLMAuthenticationError(f"API key is required for {self.name}")

        model = self._get_model(model)
        body = self.codec.encode_request(messages, model, temperature, max_tokens, tools)
        body.update(kwargs)

        logger.debug(f"Calling {self.name} API: {model} ({len(messages)} messages, {len(tools or [])} tools)")
        data = await retry_async(self._post, self._retry, body)
        return self.codec.decode_response(data, model)

    async def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(f"{self._base_url}{self.endpoint}", json=body, headers=self._headers())
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            text = e.response.text
            logger.error(f"HTTP error from {self.name}: {status} - {text[:200]}")
            if status in (401, 403):
                raise LLMAuthenticationError(
                    f"{self.name} rejected the API key ({status})",
                    {"status_code": status, "body": text[:500]},
                )
            if status == 429:
                retry_after = e.response.headers.get("retry-after")
                raise RateLimitError(
                    f"{self.name} rate limit exceeded",
                    retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                )
            raise LLMError(
                f"{self.name} API error {status}",
                {"status_code": status, "body": text[:500]},
            )
        except httpx.RequestError as e:
            logger.error(f"Error calling {self.name} API: {e}")
            raise LLMError(f"Could not reach {self.name} at {self._base_url}: {e}")
        except ValueError as e:
            raise LLMError(f"{self.name} returned a non-JSON body: {e}")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client:
            await self._client.aclose()
