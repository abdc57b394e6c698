"""
LLM Provider Interface - Abstract base classes for LLM integrations.

Messages, tool calls and tool definitions are provider-agnostic here;
``stepflow.llm.codecs`` renders them into each vendor's wire format.

Example:
    >>> from stepflow.llm import OpenAIProvider
    >>> provider = OpenAIProvider(api_key="sk-...", model="gpt-4o-mini")
    >>> response = await provider.complete([Message.user("Hello")])
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MessageRole(Enum):
    """Role of a message in the conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCall:
    """
    A tool/function call from the LLM.

    Attributes:
        id: Unique identifier for this tool call
        name: Name of the tool/function to call
        arguments: JSON string of arguments
    """
    id: str
    name: str
    arguments: str

    def parsed_arguments(self) -> Dict[str, Any]:
        """
        Decode the argument string.

        Raises:
            ValueError: If the arguments are not a JSON object
        """
        if not self.arguments or not self.arguments.strip():
            return {}
        parsed = json.loads(self.arguments)
        if not isinstance(parsed, dict):
            raise ValueError(f"Tool arguments must be a JSON object, got {type(parsed).__name__}")
        return parsed


@dataclass
class Message:
    """
    A message in the LLM conversation.

    Attributes:
        role: The role of the message sender
        content: The text content of the message
        name: Tool name for tool result messages
        tool_call_id: Id of the call a tool result answers
        tool_calls: Calls requested by an assistant message
        is_error: Marks a tool result that reports a failure
    """
    role: MessageRole
    content: str
    name: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    is_error: bool = False

    @classmethod
    def system(cls, content: str) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[List[ToolCall]] = None) -> "Message":
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=content, tool_calls=tool_calls)

    @classmethod
    def tool(cls, call: ToolCall, content: str, is_error: bool = False) -> "Message":
        """Create a tool result message answering ``call``."""
        return cls(
            role=MessageRole.TOOL,
            content=content,
            name=call.name,
            tool_call_id=call.id,
            is_error=is_error,
        )


@dataclass
class Usage:
    """Token usage information from an LLM response."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """
    Response from an LLM completion request.

    Attributes:
        content: The text content of the response
        model: The model that generated the response
        usage: Token usage information
        tool_calls: Tool calls requested by the model (empty when none)
        finish_reason: Reason the completion finished
        raw_response: The decoded JSON body from the provider
    """
    content: str
    model: str
    usage: Usage = field(default_factory=Usage)
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: str = "stop"
    raw_response: Any = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class ToolDefinition:
    """
    Definition of a tool/function that the LLM can call.

    Attributes:
        name: Name of the tool
        description: Description of what the tool does
        parameters: JSON schema object for the tool's parameters
    """
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)


class ILLMProvider(ABC):
    """
    Abstract interface for LLM providers.

    Implementations handle authentication, request formatting, and response
    parsing for their specific provider.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'openai', 'anthropic', 'ollama')."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when complete() is called without one."""
        ...

    @property
    def supports_tools(self) -> bool:
        """Check if this provider supports tool/function calling."""
        return True

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        tools: Optional[List[ToolDefinition]] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a completion for the given messages.

        Args:
            messages: List of messages in the conversation
            model: Model to use (defaults to provider's default model)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the response
            tools: Optional list of tools the model can call
            **kwargs: Provider-specific options

        Returns:
            The LLM's response

        Raises:
            LLMError: If the request fails
            RateLimitError: If rate limited
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None
