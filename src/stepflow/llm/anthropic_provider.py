"""
Anthropic Claude LLM Provider.
"""

import os
from typing import Any, Dict, Optional

from stepflow.llm.base import BaseLLMProvider


class AnthropicProvider(BaseLLMProvider):
    """
    Anthropic Messages API provider.

    Example:
        >>> provider = AnthropicProvider(model="claude-3-5-sonnet-latest")
        >>> response = await provider.complete([Message.user("Hello!")], max_tokens=256)
    """

    endpoint = "/v1/messages"
    API_VERSION = "2023-06-01"

    def __init__(self, api_key: Optional[str] = None, **kwargs: Any):
        super().__init__(api_key=api_key or os.environ.get("ANTHROPIC_API_KEY"), **kwargs)

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-3-5-sonnet-latest"

    @property
    def default_base_url(self) -> str:
        return "https://api.anthropic.com"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self._api_key or ""
        headers["anthropic-version"] = self.API_VERSION
        return headers
