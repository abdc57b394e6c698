"""
LLM Providers - Concrete implementations of the LLM interface.

Available providers:
- OpenAIProvider: Chat Completions API (default)
- AnthropicProvider: Anthropic Messages API
- OllamaProvider: local Ollama server
"""

from typing import Any

from stepflow.llm.base import BaseLLMProvider
from stepflow.llm.openai_provider import OpenAIProvider
from stepflow.llm.anthropic_provider import AnthropicProvider
from stepflow.llm.ollama_provider import OllamaProvider
from stepflow.llm.codecs import get_codec

__all__ = [
    "BaseLLMProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "OllamaProvider",
    "get_codec",
    "create_provider",
]


def create_provider(name: str, **kwargs: Any) -> BaseLLMProvider:
    """
    Instantiate a registered provider by name.

    Example:
        >>> provider = create_provider("anthropic", api_key="sk-ant-...")
    """
    from stepflow.registry import ComponentRegistry

    provider_class = ComponentRegistry.get_llm_provider(name)
    return provider_class(**kwargs)


def _register_providers() -> None:
    """Register provider implementations with the registry."""
    from stepflow.registry import ComponentRegistry

    ComponentRegistry.register_llm("openai")(OpenAIProvider)
    ComponentRegistry.register_llm("anthropic")(AnthropicProvider)
    ComponentRegistry.register_llm("ollama")(OllamaProvider)


# Auto-register on import
_register_providers()
