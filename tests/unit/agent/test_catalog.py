"""
Tests for the agent tool catalog.
"""

import pytest

from stepflow.agent.catalog import TOOLS, get_catalog, tool_definitions
from stepflow.engine.steps import STEP_TYPES, parse_step
from stepflow.exceptions import ValidationFailure


class TestCatalog:
    """Test catalog contents and filtering."""

    def test_every_tool_is_a_step_type(self):
        for tool in TOOLS:
            assert tool.name in STEP_TYPES

    def test_names_unique(self):
        names = [tool.name for tool in TOOLS]
        assert len(names) == len(set(names))

    def test_allow_list(self):
        catalog = get_catalog(["click", "navigate", "nonexistent"])
        assert list(catalog) == ["click", "navigate"]

    def test_definitions_are_json_schema(self):
        definitions = tool_definitions(get_catalog(["type"]))
        assert definitions[0].parameters == {
            "type": "object",
            "properties": {
                "selector": {"type": "string", "description": "Input element to type into"},
                "text": {"type": "string", "description": "Text to type"},
            },
            "required": ["selector", "text"],
        }

    def test_enum_in_schema(self):
        schema = get_catalog(["apiCall"])["apiCall"].to_definition().parameters
        assert schema["properties"]["method"]["enum"] == ["GET", "POST", "PUT", "PATCH", "DELETE"]
        assert schema["required"] == ["url"]


class TestToStep:
    """Test translating tool arguments into steps."""

    @pytest.mark.parametrize("name, arguments", [
        ("navigate", {"url": "https://example.com"}),
        ("click", {"selector": "#go"}),
        ("type", {"selector": "#q", "text": 42}),
        ("extract", {"selector": "h1", "store_key": "title"}),
        ("screenshot", {}),
        ("wait", {"seconds": 1.5}),
        ("scroll", {}),
        ("hover", {"selector": "#menu"}),
        ("selectOption", {"selector": "#size", "index": 2}),
        ("apiCall", {"url": "https://api.example.com", "headers": {"X-N": 1}}),
        ("setVariable", {"name": "x", "value": 5}),
        ("getVariable", {"name": "x"}),
        ("twitterCreateTweet", {"text": "hi"}),
        ("twitterSearchTweets", {"query": "python", "max_results": 500}),
        ("discordSendMessage", {"channel_id": "1", "content": "hi", "credential_id": "bot"}),
    ])
    def test_every_tool_builds_a_valid_step(self, name, arguments):
        step = parse_step(get_catalog()[name].to_step(arguments))
        assert step.type == name

    def test_navigate_maps_url(self):
        assert get_catalog()["navigate"].to_step({"url": "https://a.b"}) == {"value": "https://a.b", "type": "navigate"}

    def test_set_variable_value_is_text(self):
        step = get_catalog()["setVariable"].to_step({"name": "x", "value": 5})
        assert step["value"] == "5"

    def test_set_variable_renders_json_values(self):
        set_variable = get_catalog()["setVariable"]
        assert set_variable.to_step({"name": "x", "value": True})["value"] == "true"
        assert set_variable.to_step({"name": "x", "value": {"a": 1}})["value"] == '{"a":1}'
        assert set_variable.to_step({"name": "x", "value": [1, 2]})["value"] == "[1,2]"

    def test_scroll_variants(self):
        scroll = get_catalog()["scroll"]
        assert scroll.to_step({"selector": "#footer"})["scrollType"] == "toElement"
        by_amount = scroll.to_step({"amount": 200})
        assert by_amount["scrollType"] == "byAmount"
        assert by_amount["scrollAmount"] == 200
        assert scroll.to_step({})["scrollAmount"] == 500

    def test_search_results_clamped(self):
        search = get_catalog()["twitterSearchTweets"]
        assert search.to_step({"query": "q", "max_results": 500})["maxResults"] == 100
        assert search.to_step({"query": "q", "max_results": 1})["maxResults"] == 10

    def test_unknown_arguments_dropped(self):
        step = get_catalog()["click"].to_step({"selector": "#a", "force": True})
        assert step == {"selector": "#a", "type": "click"}

    def test_missing_required(self):
        with pytest.raises(ValidationFailure, match="selector"):
            get_catalog()["click"].to_step({"selector": ""})
