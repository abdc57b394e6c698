"""
Tests for StepExecutor - the shared step pipeline and browser/variable steps.
"""

import pytest

from stepflow.engine.context import ExecutionContext
from stepflow.engine.executor import describe_error, resolve_parameters
from stepflow.engine.steps import parse_step
from stepflow.engine.variables import VariableStore
from stepflow.exceptions import (
    StepError,
    TimeoutFailure,
    UnsupportedOperation,
    ValidationFailure,
)


class TestResolveParameters:
    """Test template substitution in step fields."""

    def test_strings_substituted(self):
        store = VariableStore({"host": "example.com"})
        step = parse_step({"id": "s1", "type": "navigate", "value": "https://{{host}}/login"})
        resolved = resolve_parameters(step, store)
        assert resolved.value == "https://example.com/login"
        assert step.value == "https://{{host}}/login"

    def test_id_and_type_untouched(self):
        store = VariableStore({"x": "y"})
        step = parse_step({"id": "{{x}}", "type": "click", "selector": "#a"})
        assert resolve_parameters(step, store).id == "{{x}}"

    def test_nested_models_and_dicts(self):
        store = VariableStore({"token": "abc", "trace": "t-1"})
        step = parse_step({
            "type": "webhook",
            "url": "https://hooks.example.com",
            "headers": {"X-Trace": "{{trace}}"},
            "authentication": {"type": "bearer", "token": "{{token}}"},
        })
        resolved = resolve_parameters(step, store)
        assert resolved.headers == {"X-Trace": "t-1"}
        assert resolved.authentication.token == "abc"

    def test_unchanged_step_returned_as_is(self):
        step = parse_step({"type": "click", "selector": "#a"})
        assert resolve_parameters(step, VariableStore()) is step


class TestPipeline:
    """Test what every step goes through."""

    @pytest.mark.asyncio
    async def test_success_result(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        result = await executor.execute({"id": "n", "type": "navigate", "value": "https://example.com"})
        assert result.success
        assert result.step_id == "n"
        assert result.step_type == "navigate"
        assert result.data == "https://example.com"
        assert fake_backend.url == "https://example.com"
        assert list(executor.history) == [result]

    @pytest.mark.asyncio
    async def test_history_keeps_latest_results(self, make_executor, monkeypatch):
        monkeypatch.setattr("stepflow.engine.executor.HISTORY_LIMIT", 3)
        executor = make_executor()
        for i in range(5):
            await executor.execute({"id": f"s{i}", "type": "setVariable", "variableName": "i", "value": str(i)})
        assert [r.step_id for r in executor.history] == ["s2", "s3", "s4"]

    @pytest.mark.asyncio
    async def test_store_key_persists_auto_typed(self, make_executor, fake_backend):
        fake_backend.elements["#count"] = "42"
        executor = make_executor(backend=fake_backend)
        result = await executor.execute({"type": "extract", "selector": "#count", "storeKey": "count"})
        assert executor.context.store.get("count") == 42
        assert result.data == 42

    @pytest.mark.asyncio
    async def test_blank_store_key_ignored(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        await executor.execute({"type": "extract", "selector": "#title", "storeKey": ""})
        assert len(executor.context.store) == 0

    @pytest.mark.asyncio
    async def test_missing_element_is_tagged_timeout(self, make_executor, fake_backend):
        """A selector that never resolves fails with a tagged TimeoutFailure."""
        executor = make_executor(backend=fake_backend)
        with pytest.raises(TimeoutFailure) as exc_info:
            await executor.execute({"id": "c1", "type": "click", "selector": "#missing"})
        error = exc_info.value
        assert error.step_id == "c1"
        assert error.step_type == "click"
        assert error.duration_ms is not None
        assert executor.history[-1].success is False

    @pytest.mark.asyncio
    async def test_no_backend(self, make_executor):
        executor = make_executor()
        with pytest.raises(UnsupportedOperation):
            await executor.execute({"type": "click", "selector": "#a"})

    @pytest.mark.asyncio
    async def test_unknown_step_type(self, make_executor):
        executor = make_executor()
        with pytest.raises(ValidationFailure):
            await executor.execute({"type": "teleport"})

    @pytest.mark.asyncio
    async def test_missing_credential_is_validation_failure(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        with pytest.raises(ValidationFailure, match="missing credential"):
            await executor.execute({"type": "type", "selector": "#email", "credentialId": "nope"})

    @pytest.mark.asyncio
    async def test_backend_launched_once(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        await executor.execute({"type": "click", "selector": "#submit"})
        await executor.execute({"type": "hover", "selector": "#submit"})
        assert fake_backend.launches == 1

    @pytest.mark.asyncio
    async def test_explicit_context(self, make_executor, fake_backend):
        executor = make_executor()
        ctx = ExecutionContext(store=VariableStore(), backend=fake_backend, run_id="abc")
        await executor.execute({"type": "extract", "selector": "#title", "storeKey": "title"}, ctx)
        assert ctx.store.get("title") == "Welcome"
        assert not executor.context.store.has("title")

    def test_describe_error(self):
        error = TimeoutFailure("Element not found: #x")
        assert describe_error(error) == "TimeoutFailure: Element not found: #x"
        assert describe_error(RuntimeError("boom")) == "RuntimeError: boom"

    @pytest.mark.asyncio
    async def test_unexpected_exception_wrapped(self, make_executor, fake_backend):
        async def explode(script):
            raise RuntimeError("page crashed")

        fake_backend.evaluate = explode
        executor = make_executor(backend=fake_backend)
        with pytest.raises(StepError) as exc_info:
            await executor.execute({"id": "e", "type": "evaluate", "script": "1"})
        assert "page crashed" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestBrowserSteps:
    """Test browser step handlers against the fake backend."""

    @pytest.mark.asyncio
    async def test_type_with_template(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        executor.context.store.set("email", "ada@example.com")
        await executor.execute({"type": "type", "selector": "#email", "value": "{{email}}"})
        assert ("type", "#email", "ada@example.com") in fake_backend.calls

    @pytest.mark.asyncio
    async def test_type_with_credential(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        await executor.execute({"type": "type", "selector": "#email", "credentialId": "team-slack"})
        assert ("type", "#email", "xoxb-test") in fake_backend.calls

    @pytest.mark.asyncio
    async def test_navigate_requires_url(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        with pytest.raises(ValidationFailure):
            await executor.execute({"type": "navigate", "value": "  "})

    @pytest.mark.asyncio
    async def test_extract_trims(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        result = await executor.execute({"type": "extract", "selector": "#title"})
        assert result.data == "Welcome"

    @pytest.mark.asyncio
    async def test_extract_with_logic(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        result = await executor.execute({
            "type": "extractWithLogic",
            "selector": "#title",
            "condition": "contains",
            "expectedValue": "Wel",
        })
        assert result.data == {"value": "Welcome", "conditionMet": True}

    @pytest.mark.asyncio
    async def test_wait_needs_no_backend(self, make_executor):
        executor = make_executor()
        result = await executor.execute({"type": "wait", "value": "0"})
        assert result.data == 0

    @pytest.mark.asyncio
    async def test_wait_rejects_garbage(self, make_executor):
        executor = make_executor()
        with pytest.raises(ValidationFailure):
            await executor.execute({"type": "wait", "value": "soon"})

    @pytest.mark.asyncio
    async def test_scroll_by_amount(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        await executor.execute({"type": "scroll", "scrollType": "byAmount", "scrollAmount": 300})
        assert ("scroll", None, 300) in fake_backend.calls

    @pytest.mark.asyncio
    async def test_scroll_to_element_requires_selector(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        with pytest.raises(ValidationFailure):
            await executor.execute({"type": "scroll", "scrollType": "toElement"})

    @pytest.mark.asyncio
    async def test_select_option_requires_choice(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        with pytest.raises(ValidationFailure):
            await executor.execute({"type": "selectOption", "selector": "#submit"})

    @pytest.mark.asyncio
    async def test_screenshot(self, make_executor, fake_backend):
        executor = make_executor(backend=fake_backend)
        result = await executor.execute({"type": "screenshot", "savePath": "out.png"})
        assert result.data == "out.png"

    @pytest.mark.asyncio
    async def test_evaluate(self, make_executor, fake_backend):
        fake_backend.eval_result = {"items": 3}
        executor = make_executor(backend=fake_backend)
        result = await executor.execute({"type": "evaluate", "script": "countItems()"})
        assert result.data == {"items": 3}


class TestVariableSteps:
    """Test setVariable, getVariable and modifyVariable."""

    @pytest.mark.asyncio
    async def test_set_auto_types(self, make_executor):
        executor = make_executor()
        result = await executor.execute({"type": "setVariable", "variableName": "x", "value": "5"})
        assert result.data == 5
        assert executor.context.store.get("x") == 5

    @pytest.mark.asyncio
    async def test_set_with_template(self, make_executor):
        executor = make_executor()
        executor.context.store.set("first", "Ada")
        await executor.execute({"type": "setVariable", "variableName": "greeting", "value": "Hi {{first}}"})
        assert executor.context.store.get("greeting") == "Hi Ada"

    @pytest.mark.asyncio
    async def test_get(self, make_executor):
        executor = make_executor()
        executor.context.store.set("user", {"name": "Ada"})
        result = await executor.execute({"type": "getVariable", "variableName": "user.name"})
        assert result.data == "Ada"

    @pytest.mark.asyncio
    async def test_increment_missing_starts_at_zero(self, make_executor):
        executor = make_executor()
        await executor.execute({"type": "modifyVariable", "variableName": "n", "operation": "increment"})
        await executor.execute({"type": "modifyVariable", "variableName": "n", "operation": "increment", "value": "2"})
        assert executor.context.store.get("n") == 3

    @pytest.mark.asyncio
    async def test_decrement(self, make_executor):
        executor = make_executor()
        executor.context.store.set("n", 1.5)
        result = await executor.execute({
            "type": "modifyVariable", "variableName": "n", "operation": "decrement", "value": "0.5",
        })
        assert result.data == 1

    @pytest.mark.asyncio
    async def test_increment_non_number(self, make_executor):
        executor = make_executor()
        executor.context.store.set("n", "abc")
        with pytest.raises(ValidationFailure):
            await executor.execute({"type": "modifyVariable", "variableName": "n", "operation": "increment"})

    @pytest.mark.asyncio
    async def test_append_string_and_list(self, make_executor):
        executor = make_executor()
        store = executor.context.store
        store.set("s", "ab")
        store.set("items", [1])
        await executor.execute({"type": "modifyVariable", "variableName": "s", "operation": "append", "value": "c"})
        await executor.execute({"type": "modifyVariable", "variableName": "items", "operation": "append", "value": "2"})
        assert store.get("s") == "abc"
        assert store.get("items") == [1, 2]
