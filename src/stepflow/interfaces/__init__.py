"""
Abstract interfaces that backends and LLM providers implement.
"""

from stepflow.interfaces.backend import IBackend
from stepflow.interfaces.llm import (
    ILLMProvider,
    LLMResponse,
    Message,
    MessageRole,
    ToolCall,
    ToolDefinition,
    Usage,
)

__all__ = [
    "IBackend",
    "ILLMProvider",
    "LLMResponse",
    "Message",
    "MessageRole",
    "ToolCall",
    "ToolDefinition",
    "Usage",
]
