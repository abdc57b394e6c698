"""
OpenAI-compatible LLM Provider.

Supports any endpoint that speaks the Chat Completions API:
- OpenAI
- Azure OpenAI style gateways
- Local servers (LM Studio, vLLM, ...)
"""

import os
from typing import Any, Dict, Optional

from stepflow.llm.base import BaseLLMProvider


class OpenAIProvider(BaseLLMProvider):
    """
    OpenAI-compatible LLM provider.

    Example:
        >>> provider = OpenAIProvider(model="gpt-4o-mini")
        >>> response = await provider.complete([Message.user("Hello!")])
    """

    endpoint = "/chat/completions"

    def __init__(self, api_key: Optional[str] = None, **kwargs: Any):
        super().__init__(api_key=api_key or os.environ.get("OPENAI_API_KEY"), **kwargs)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def default_base_url(self) -> str:
        return "https://api.openai.com/v1"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers
