"""
Wire codecs for LLM providers.

Each vendor speaks its own tool-calling dialect. A codec turns the
provider-agnostic conversation and tool catalog into a request body, and
turns the response body back into an ``LLMResponse`` with uniform
``ToolCall`` objects. Providers only move bytes; all format knowledge
lives here.
"""

import json
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from stepflow.exceptions import InvalidResponseError
from stepflow.interfaces.llm import (
    LLMResponse,
    Message,
    MessageRole,
    ToolCall,
    ToolDefinition,
    Usage,
)


def _load_arguments(raw: str) -> Dict[str, Any]:
    """Arguments as a dict for providers that want objects, not strings."""
    try:
        parsed = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class ProviderCodec(ABC):
    """Encoder/decoder pair for one provider's chat API."""

    name: str = ""

    @abstractmethod
    def encode_tools(self, tools: List[ToolDefinition]) -> List[Dict[str, Any]]:
        """Render the tool catalog in the provider's schema."""
        ...

    @abstractmethod
    def encode_request(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        tools: Optional[List[ToolDefinition]] = None,
    ) -> Dict[str, Any]:
        """Build the JSON request body."""
        ...

    @abstractmethod
    def decode_response(self, data: Dict[str, Any], model: str) -> LLMResponse:
        """
        Parse a response body.

        Raises:
            InvalidResponseError: If the body does not have the expected shape
        """
        ...


class OpenAICodec(ProviderCodec):
    """Chat Completions format: ``tools[].function`` and ``tool_calls``."""

    name = "openai"

    def encode_tools(self, tools: List[ToolDefinition]) -> List[Dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in tools
        ]

    def encode_message(self, msg: Message) -> Dict[str, Any]:
        if msg.role == MessageRole.TOOL:
            return {
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "content": msg.content,
            }
        formatted: Dict[str, Any] = {"role": msg.role.value, "content": msg.content}
        if msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            formatted["content"] = msg.content or None
            formatted["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments or "{}"},
                }
                for call in msg.tool_calls
            ]
        return formatted

    def encode_request(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        tools: Optional[List[ToolDefinition]] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": model,
            "messages": [self.encode_message(m) for m in messages],
            "temperature": temperature,
            "n": 1,
            "stream": False,
        }
        if max_tokens:
            body["max_tokens"] = max_tokens
        if tools:
            body["tools"] = self.encode_tools(tools)
        return body

    def decode_response(self, data: Dict[str, Any], model: str) -> LLMResponse:
        try:
            choice = data["choices"][0]
            message = choice["message"]
        except (KeyError, IndexError, TypeError):
            raise InvalidResponseError("OpenAI response has no choices", json.dumps(data)[:500])

        tool_calls = [
            ToolCall(
                id=tc.get("id") or f"call_{uuid.uuid4().hex[:8]}",
                name=tc["function"]["name"],
                arguments=tc["function"].get("arguments") or "{}",
            )
            for tc in (message.get("tool_calls") or [])
        ]

        content = message.get("content") or ""
        if not isinstance(content, str):
            content = json.dumps(content)

        usage_data = data.get("usage") or {}
        return LLMResponse(
            content=content.strip(),
            model=data.get("model", model),
            usage=Usage(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0),
            ),
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason") or "stop",
            raw_response=data,
        )


class AnthropicCodec(ProviderCodec):
    """
    Messages API format.

    The system prompt is a top-level field, tools use ``input_schema``,
    and tool traffic travels as ``tool_use``/``tool_result`` content blocks.
    Consecutive messages with the same role are merged since the API
    requires user and assistant turns to alternate.
    """

    name = "anthropic"
    DEFAULT_MAX_TOKENS = 1024

    def encode_tools(self, tools: List[ToolDefinition]) -> List[Dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters,
            }
            for tool in tools
        ]

    def _blocks(self, msg: Message) -> List[Dict[str, Any]]:
        if msg.role == MessageRole.TOOL:
            block: Dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.content,
            }
            if msg.is_error:
                block["is_error"] = True
            return [block]
        blocks: List[Dict[str, Any]] = []
        if msg.content:
            blocks.append({"type": "text", "text": msg.content})
        for call in msg.tool_calls or []:
            blocks.append({
                "type": "tool_use",
                "id": call.id,
                "name": call.name,
                "input": _load_arguments(call.arguments),
            })
        return blocks

    def encode_request(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        tools: Optional[List[ToolDefinition]] = None,
    ) -> Dict[str, Any]:
        system_parts = [m.content for m in messages if m.role == MessageRole.SYSTEM and m.content]

        turns: List[Dict[str, Any]] = []
        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                continue
            role = "assistant" if msg.role == MessageRole.ASSISTANT else "user"
            blocks = self._blocks(msg)
            if not blocks:
                continue
            if turns and turns[-1]["role"] == role:
                turns[-1]["content"].extend(blocks)
            else:
                turns.append({"role": role, "content": blocks})

        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens or self.DEFAULT_MAX_TOKENS,
            "temperature": temperature,
            "messages": turns,
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        if tools:
            body["tools"] = self.encode_tools(tools)
        return body

    def decode_response(self, data: Dict[str, Any], model: str) -> LLMResponse:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise InvalidResponseError("Anthropic response has no content blocks", json.dumps(data)[:500])

        texts: List[str] = []
        tool_calls: List[ToolCall] = []
        for block in blocks:
            kind = block.get("type")
            if kind == "text":
                texts.append(block.get("text", ""))
            elif kind == "tool_use":
                tool_calls.append(ToolCall(
                    id=block.get("id") or f"toolu_{uuid.uuid4().hex[:8]}",
                    name=block["name"],
                    arguments=json.dumps(block.get("input") or {}),
                ))

        usage_data = data.get("usage") or {}
        prompt = usage_data.get("input_tokens", 0)
        completion = usage_data.get("output_tokens", 0)
        return LLMResponse(
            content="".join(texts).strip(),
            model=data.get("model", model),
            usage=Usage(prompt, completion, prompt + completion),
            tool_calls=tool_calls,
            finish_reason=data.get("stop_reason") or "end_turn",
            raw_response=data,
        )


class OllamaCodec(ProviderCodec):
    """
    Ollama ``/api/chat`` format.

    Tools use the OpenAI function schema, but call arguments are JSON
    objects rather than strings and calls carry no ids.
    """

    name = "ollama"

    def encode_tools(self, tools: List[ToolDefinition]) -> List[Dict[str, Any]]:
        return OpenAICodec().encode_tools(tools)

    def encode_message(self, msg: Message) -> Dict[str, Any]:
        formatted: Dict[str, Any] = {"role": msg.role.value, "content": msg.content}
        if msg.role == MessageRole.TOOL and msg.name:
            formatted["tool_name"] = msg.name
        if msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            formatted["tool_calls"] = [
                {"function": {"name": call.name, "arguments": _load_arguments(call.arguments)}}
                for call in msg.tool_calls
            ]
        return formatted

    def encode_request(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: Optional[int],
        tools: Optional[List[ToolDefinition]] = None,
    ) -> Dict[str, Any]:
        options: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            options["num_predict"] = max_tokens
        body: Dict[str, Any] = {
            "model": model,
            "messages": [self.encode_message(m) for m in messages],
            "stream": False,
            "options": options,
        }
        if tools:
            body["tools"] = self.encode_tools(tools)
        return body

    def decode_response(self, data: Dict[str, Any], model: str) -> LLMResponse:
        message = data.get("message")
        if not isinstance(message, dict):
            raise InvalidResponseError("Ollama response has no message", json.dumps(data)[:500])

        tool_calls = []
        for tc in message.get("tool_calls") or []:
            function = tc.get("function") or {}
            arguments = function.get("arguments") or {}
            tool_calls.append(ToolCall(
                id=tc.get("id") or f"call_{uuid.uuid4().hex[:8]}",
                name=function.get("name", ""),
                arguments=arguments if isinstance(arguments, str) else json.dumps(arguments),
            ))

        prompt = data.get("prompt_eval_count", 0)
        completion = data.get("eval_count", 0)
        return LLMResponse(
            content=(message.get("content") or "").strip(),
            model=data.get("model", model),
            usage=Usage(prompt, completion, prompt + completion),
            tool_calls=tool_calls,
            finish_reason=data.get("done_reason") or "stop",
            raw_response=data,
        )


CODECS: Dict[str, ProviderCodec] = {
    "openai": OpenAICodec(),
    "anthropic": AnthropicCodec(),
    "ollama": OllamaCodec(),
}


def get_codec(provider: str) -> ProviderCodec:
    """
    Look up the codec for a provider name.

    Raises:
        ValueError: If no codec exists for the provider
    """
    try:
        return CODECS[provider]
    except KeyError:
        raise ValueError(f"No codec for provider '{provider}'. Available: {sorted(CODECS)}")
