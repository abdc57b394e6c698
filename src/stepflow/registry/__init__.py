"""
Registry module - plugin architecture for backends and LLM providers.
"""

from stepflow.registry.registry import (
    ComponentRegistry,
    register_backend,
    register_llm,
    get_backend,
    get_llm_provider,
)

__all__ = [
    "ComponentRegistry",
    "register_backend",
    "register_llm",
    "get_backend",
    "get_llm_provider",
]
