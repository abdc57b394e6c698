"""
Ollama LLM Provider for locally served models.
"""

import os
from typing import Any, Dict, Optional

from stepflow.llm.base import BaseLLMProvider


class OllamaProvider(BaseLLMProvider):
    """
    Provider for an Ollama server's ``/api/chat`` endpoint.

    No API key is needed; one is sent as a bearer token when given, for
    servers sitting behind an authenticating proxy.
    """

    endpoint = "/api/chat"
    requires_api_key = False

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, **kwargs: Any):
        super().__init__(
            api_key=api_key,
            base_url=base_url or os.environ.get("OLLAMA_HOST"),
            **kwargs,
        )

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3.1"

    @property
    def default_base_url(self) -> str:
        return "http://localhost:11434"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers
