"""
Tests for the per-provider wire codecs.
"""

import json

import pytest

from stepflow.exceptions import InvalidResponseError
from stepflow.interfaces.llm import Message, ToolCall, ToolDefinition
from stepflow.llm.codecs import AnthropicCodec, OllamaCodec, OpenAICodec, get_codec


@pytest.fixture
def tools():
    return [ToolDefinition(
        name="click",
        description="Click an element.",
        parameters={
            "type": "object",
            "properties": {"selector": {"type": "string", "description": "CSS selector"}},
            "required": ["selector"],
        },
    )]


@pytest.fixture
def conversation():
    call = ToolCall(id="call_1", name="click", arguments='{"selector": "#go"}')
    return [
        Message.system("You automate browsers."),
        Message.user("Press go"),
        Message.assistant("", [call]),
        Message.tool(call, "Error: TimeoutFailure: Element not found: #go", is_error=True),
    ]


class TestGetCodec:
    """Test codec lookup."""

    def test_known(self):
        assert isinstance(get_codec("anthropic"), AnthropicCodec)

    def test_unknown(self):
        with pytest.raises(ValueError, match="No codec"):
            get_codec("palm")


class TestOpenAICodec:
    """Test the Chat Completions format."""

    def test_tool_schema(self, tools):
        encoded = OpenAICodec().encode_tools(tools)
        assert encoded == [{
            "type": "function",
            "function": {
                "name": "click",
                "description": "Click an element.",
                "parameters": tools[0].parameters,
            },
        }]

    def test_request(self, conversation, tools):
        body = OpenAICodec().encode_request(conversation, "gpt-4o-mini", 0.2, 512, tools)
        assert body["model"] == "gpt-4o-mini"
        assert body["max_tokens"] == 512
        assert [m["role"] for m in body["messages"]] == ["system", "user", "assistant", "tool"]
        assistant = body["messages"][2]
        assert assistant["content"] is None
        assert assistant["tool_calls"][0]["function"] == {"name": "click", "arguments": '{"selector": "#go"}'}
        assert body["messages"][3] == {
            "role": "tool",
            "tool_call_id": "call_1",
            "content": "Error: TimeoutFailure: Element not found: #go",
        }

    def test_no_tools_key_without_tools(self, conversation):
        body = OpenAICodec().encode_request(conversation[:2], "m", 0.0, None)
        assert "tools" not in body
        assert "max_tokens" not in body

    def test_decode_tool_calls(self):
        data = {
            "model": "gpt-4o-mini",
            "choices": [{
                "message": {
                    "content": None,
                    "tool_calls": [{
                        "id": "call_9",
                        "type": "function",
                        "function": {"name": "navigate", "arguments": '{"url": "https://a.b"}'},
                    }],
                },
                "finish_reason": "tool_calls",
            }],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        }
        response = OpenAICodec().decode_response(data, "fallback")
        assert response.has_tool_calls
        assert response.tool_calls[0] == ToolCall("call_9", "navigate", '{"url": "https://a.b"}')
        assert response.content == ""
        assert response.usage.total_tokens == 15
        assert response.finish_reason == "tool_calls"

    def test_decode_text(self):
        data = {"choices": [{"message": {"content": " hello "}, "finish_reason": "stop"}]}
        response = OpenAICodec().decode_response(data, "fallback")
        assert response.content == "hello"
        assert response.model == "fallback"
        assert not response.has_tool_calls

    def test_decode_malformed(self):
        with pytest.raises(InvalidResponseError):
            OpenAICodec().decode_response({"error": "nope"}, "m")


class TestAnthropicCodec:
    """Test the Messages API format."""

    def test_tool_schema(self, tools):
        assert AnthropicCodec().encode_tools(tools) == [{
            "name": "click",
            "description": "Click an element.",
            "input_schema": tools[0].parameters,
        }]

    def test_request(self, conversation, tools):
        body = AnthropicCodec().encode_request(conversation, "claude", 0.0, None, tools)
        assert body["system"] == "You automate browsers."
        assert body["max_tokens"] == AnthropicCodec.DEFAULT_MAX_TOKENS
        assert [t["role"] for t in body["messages"]] == ["user", "assistant", "user"]
        assert body["messages"][1]["content"] == [
            {"type": "tool_use", "id": "call_1", "name": "click", "input": {"selector": "#go"}},
        ]
        assert body["messages"][2]["content"] == [{
            "type": "tool_result",
            "tool_use_id": "call_1",
            "content": "Error: TimeoutFailure: Element not found: #go",
            "is_error": True,
        }]

    def test_consecutive_tool_results_merge(self):
        first = ToolCall("a", "click", "{}")
        second = ToolCall("b", "hover", "{}")
        messages = [
            Message.user("go"),
            Message.assistant("Doing both", [first, second]),
            Message.tool(first, "OK"),
            Message.tool(second, "OK"),
        ]
        body = AnthropicCodec().encode_request(messages, "claude", 0.0, 100)
        assert len(body["messages"]) == 3
        assert [b["tool_use_id"] for b in body["messages"][2]["content"]] == ["a", "b"]
        assert body["messages"][1]["content"][0] == {"type": "text", "text": "Doing both"}

    def test_decode(self):
        data = {
            "model": "claude",
            "content": [
                {"type": "text", "text": "Let me click."},
                {"type": "tool_use", "id": "toolu_1", "name": "click", "input": {"selector": "#go"}},
            ],
            "stop_reason": "tool_use",
            "usage": {"input_tokens": 7, "output_tokens": 3},
        }
        response = AnthropicCodec().decode_response(data, "m")
        assert response.content == "Let me click."
        assert response.tool_calls[0].id == "toolu_1"
        assert json.loads(response.tool_calls[0].arguments) == {"selector": "#go"}
        assert response.usage.total_tokens == 10
        assert response.finish_reason == "tool_use"

    def test_decode_malformed(self):
        with pytest.raises(InvalidResponseError):
            AnthropicCodec().decode_response({"type": "error"}, "m")


class TestOllamaCodec:
    """Test the Ollama /api/chat format."""

    def test_request(self, conversation, tools):
        body = OllamaCodec().encode_request(conversation, "llama3.1", 0.1, 256, tools)
        assert body["stream"] is False
        assert body["options"] == {"temperature": 0.1, "num_predict": 256}
        assert body["tools"] == OpenAICodec().encode_tools(tools)
        assistant = body["messages"][2]
        assert assistant["tool_calls"] == [{"function": {"name": "click", "arguments": {"selector": "#go"}}}]
        assert body["messages"][3]["role"] == "tool"
        assert body["messages"][3]["tool_name"] == "click"

    def test_decode_object_arguments(self):
        data = {
            "model": "llama3.1",
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [{"function": {"name": "getVariable", "arguments": {"name": "x"}}}],
            },
            "done_reason": "stop",
            "prompt_eval_count": 4,
            "eval_count": 2,
        }
        response = OllamaCodec().decode_response(data, "m")
        call = response.tool_calls[0]
        assert call.name == "getVariable"
        assert call.parsed_arguments() == {"name": "x"}
        assert call.id.startswith("call_")
        assert response.usage.total_tokens == 6

    def test_decode_malformed(self):
        with pytest.raises(InvalidResponseError):
            OllamaCodec().decode_response({"error": "model not found"}, "m")
