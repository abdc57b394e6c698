"""
Tests for ToolCallingAgent - the provider/tool loop and its iteration cap.
"""

import pytest

from fakes import FakeProvider, text_response, tool_response
from stepflow.agent import AgentConfig, ToolCallingAgent
from stepflow.agent.agent import DEFAULT_SYSTEM_PROMPT, format_tool_output
from stepflow.engine.context import ExecutionContext
from stepflow.engine.variables import VariableStore
from stepflow.exceptions import BoundedIterationFailure, TransportFailure
from stepflow.interfaces.llm import MessageRole


class TestFormatToolOutput:
    """Test how step results are shown to the model."""

    def test_none_is_ok(self):
        assert format_tool_output(None) == "OK"

    def test_structures_are_json(self):
        assert format_tool_output({"a": 1}) == '{"a": 1}'

    def test_scalars(self):
        assert format_tool_output(5) == "5"
        assert format_tool_output(True) == "true"

    def test_truncated(self):
        assert len(format_tool_output("x" * 10000)) == 4000


class TestAgentLoop:
    """Test the tool-calling session."""

    @pytest.mark.asyncio
    async def test_set_variable_then_answer(self, make_executor):
        """'set variable x to 5' runs setVariable in iteration 1 and answers in iteration 2."""
        provider = FakeProvider([
            tool_response(("setVariable", '{"name": "x", "value": "5"}')),
            text_response("x is now 5"),
        ])
        executor = make_executor()
        result = await ToolCallingAgent(executor, provider).run("set variable x to 5")

        assert result.final_text == "x is now 5"
        assert result.iterations == 2
        assert executor.context.store.get("x") == 5
        assert len(result.tool_calls) == 1
        record = result.tool_calls[0]
        assert (record.iteration, record.name, record.success, record.output) == (1, "setVariable", True, "5")

    @pytest.mark.asyncio
    async def test_set_variable_keeps_json_types(self, make_executor):
        """Booleans, numbers and objects sent as JSON arrive typed, not as Python reprs."""
        provider = FakeProvider([
            tool_response(
                ("setVariable", '{"name": "flag", "value": true}'),
                ("setVariable", '{"name": "count", "value": 7}'),
                ("setVariable", '{"name": "obj", "value": {"a": 1}}'),
            ),
            text_response("stored"),
        ])
        executor = make_executor()
        result = await ToolCallingAgent(executor, provider).run("store some values")

        store = executor.context.store
        assert all(call.success for call in result.tool_calls)
        assert store.get("flag") is True
        assert store.get("count") == 7
        assert store.get("obj") == {"a": 1}

    @pytest.mark.asyncio
    async def test_transcript_shape(self, make_executor):
        provider = FakeProvider([
            tool_response(("getVariable", '{"name": "x"}')),
            text_response("done"),
        ])
        executor = make_executor()
        result = await ToolCallingAgent(executor, provider).run("read x")

        roles = [m.role for m in result.transcript]
        assert roles == [
            MessageRole.SYSTEM,
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
            MessageRole.ASSISTANT,
        ]
        assert result.transcript[0].content == DEFAULT_SYSTEM_PROMPT
        tool_message = result.transcript[3]
        assert tool_message.tool_call_id == "call_0"
        assert tool_message.content == "OK"

        second_request = provider.requests[1]["messages"]
        assert second_request[-1].role == MessageRole.TOOL

    @pytest.mark.asyncio
    async def test_tool_definitions_sent(self, make_executor):
        provider = FakeProvider([text_response("nothing to do")])
        config = AgentConfig(allowed_tools=["navigate", "click"], model="m1", temperature=0.3, max_tokens=100)
        await ToolCallingAgent(make_executor(), provider).run("noop", config)
        request = provider.requests[0]
        assert [t.name for t in request["tools"]] == ["navigate", "click"]
        assert request["model"] == "m1"
        assert request["temperature"] == 0.3
        assert request["max_tokens"] == 100

    @pytest.mark.asyncio
    async def test_step_failure_becomes_error_result(self, make_executor, fake_backend):
        """A missing selector is reported to the model, which tries again."""
        provider = FakeProvider([
            tool_response(("click", '{"selector": "#missing"}')),
            tool_response(("click", '{"selector": "#submit"}')),
            text_response("clicked submit"),
        ])
        executor = make_executor(backend=fake_backend)
        result = await ToolCallingAgent(executor, provider).run("click the submit button")

        first, second = result.tool_calls
        assert first.iteration == 1
        assert not first.success
        assert first.output.startswith("Error: TimeoutFailure")
        assert second.iteration == 2
        assert second.success
        assert result.iterations == 3

        error_message = provider.requests[1]["messages"][-1]
        assert error_message.role == MessageRole.TOOL
        assert error_message.is_error

    @pytest.mark.asyncio
    async def test_unknown_tool(self, make_executor):
        provider = FakeProvider([
            tool_response(("launchRocket", "{}")),
            text_response("cannot"),
        ])
        result = await ToolCallingAgent(make_executor(), provider).run("go to space")
        assert result.tool_calls[0].output.startswith("Error: unknown tool 'launchRocket'")

    @pytest.mark.asyncio
    async def test_disallowed_tool_is_unknown(self, make_executor):
        provider = FakeProvider([
            tool_response(("setVariable", '{"name": "x", "value": "1"}')),
            text_response("ok"),
        ])
        executor = make_executor()
        config = AgentConfig(allowed_tools=["getVariable"])
        result = await ToolCallingAgent(executor, provider).run("set x", config)
        assert not result.tool_calls[0].success
        assert not executor.context.store.has("x")

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, make_executor):
        provider = FakeProvider([
            tool_response(("navigate", "{not json")),
            tool_response(("navigate", "{}")),
            text_response("giving up"),
        ])
        result = await ToolCallingAgent(make_executor(), provider).run("open a page")
        bad_json, missing = result.tool_calls
        assert bad_json.output.startswith("Error: invalid arguments for navigate")
        assert "Missing required argument(s) for navigate: url" in missing.output

    @pytest.mark.asyncio
    async def test_several_calls_in_one_turn(self, make_executor):
        provider = FakeProvider([
            tool_response(
                ("setVariable", '{"name": "a", "value": "1"}'),
                ("setVariable", '{"name": "b", "value": "2"}'),
            ),
            text_response("both set"),
        ])
        executor = make_executor()
        result = await ToolCallingAgent(executor, provider).run("set a and b")
        assert [r.iteration for r in result.tool_calls] == [1, 1]
        assert executor.context.store.snapshot() == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_iteration_cap(self, make_executor):
        """A model that never stops calling tools is cut off after exactly max_iterations calls."""
        provider = FakeProvider(default=tool_response(("getVariable", '{"name": "x"}')))
        config = AgentConfig(max_iterations=4)
        with pytest.raises(BoundedIterationFailure) as exc_info:
            await ToolCallingAgent(make_executor(), provider).run("loop forever", config)
        assert len(provider.requests) == 4
        assert exc_info.value.iterations == 4
        assert exc_info.value.transcript[-1].role == MessageRole.TOOL

    @pytest.mark.asyncio
    async def test_default_cap_is_ten(self, make_executor):
        provider = FakeProvider(default=tool_response(("getVariable", '{"name": "x"}')))
        with pytest.raises(BoundedIterationFailure):
            await ToolCallingAgent(make_executor(), provider).run("loop forever")
        assert len(provider.requests) == 10

    @pytest.mark.asyncio
    async def test_store_key_and_context(self, make_executor):
        provider = FakeProvider([text_response("  the answer  ")])
        ctx = ExecutionContext(store=VariableStore())
        config = AgentConfig(store_key="answer", system_prompt="Be brief.")
        result = await ToolCallingAgent(make_executor(), provider).run("answer", config, ctx)
        assert result.final_text == "the answer"
        assert ctx.store.get("answer") == "the answer"
        assert provider.requests[0]["messages"][0].content == "Be brief."


class TestAgentStep:
    """Test the aiAgent step, which runs the agent inside a graph."""

    @pytest.mark.asyncio
    async def test_agent_step(self, make_executor):
        provider = FakeProvider([
            tool_response(("setVariable", '{"name": "city", "value": "Paris"}')),
            text_response("Stored Paris"),
        ])
        executor = make_executor(provider=provider)
        result = await executor.execute({
            "type": "aiAgent",
            "provider": "anthropic",
            "goal": "remember the capital of France",
            "apiKey": "sk-ant-test",
            "storeKey": "summary",
        })
        assert result.data == "Stored Paris"
        assert executor.context.store.get("city") == "Paris"
        assert executor.context.store.get("summary") == "Stored Paris"
        assert provider.created_with["name"] == "anthropic"
        assert provider.created_with["api_key"] == "sk-ant-test"
        assert provider.closed

    @pytest.mark.asyncio
    async def test_agent_step_cap_propagates(self, make_executor):
        provider = FakeProvider(default=tool_response(("getVariable", '{"name": "x"}')))
        executor = make_executor(provider=provider)
        with pytest.raises(BoundedIterationFailure):
            await executor.execute({"type": "aiAgent", "goal": "spin", "apiKey": "k", "maxIterations": 2})
        assert len(provider.requests) == 2
        assert executor.history[-1].success is False

    @pytest.mark.asyncio
    async def test_provider_error_is_transport_failure(self, make_executor):
        from stepflow.exceptions import LLMError

        class BrokenProvider(FakeProvider):
            async def complete(self, messages, **kwargs):
                raise LLMError("openai API error 500", {"status_code": 500, "body": "oops"})

        executor = make_executor(provider=BrokenProvider())
        with pytest.raises(TransportFailure) as exc_info:
            await executor.execute({"type": "aiAgent", "goal": "anything", "apiKey": "k"})
        assert exc_info.value.status_code == 500
