"""
Tests for VariableStore - path access, auto-typing and templates.
"""

import pytest

from stepflow.engine.variables import VariableStore, auto_type, parse_path, stringify


class TestAutoType:
    """Test string auto-typing."""

    def test_integer(self):
        """Numeric strings become numbers."""
        assert auto_type("42") == 42
        assert isinstance(auto_type("42"), int)

    def test_float(self):
        assert auto_type("3.5") == 3.5

    def test_booleans(self):
        assert auto_type("true") is True
        assert auto_type("false") is False

    def test_json_object_and_array(self):
        assert auto_type('{"a":1}') == {"a": 1}
        assert auto_type("[1, 2]") == [1, 2]

    def test_null(self):
        assert auto_type("null") is None

    def test_plain_string(self):
        assert auto_type("hello") == "hello"

    def test_not_json_constants(self):
        """NaN and Infinity stay strings."""
        assert auto_type("NaN") == "NaN"
        assert auto_type("Infinity") == "Infinity"

    def test_empty_string(self):
        assert auto_type("") == ""

    def test_non_string_passthrough(self):
        value = {"a": [1]}
        assert auto_type(value) is value


class TestParsePath:
    """Test path tokenizing."""

    def test_dotted(self):
        assert parse_path("a.b.c") == ["a", "b", "c"]

    def test_indexes(self):
        assert parse_path("users[0].name") == ["users", 0, "name"]
        assert parse_path("grid[1][2]") == ["grid", 1, 2]

    def test_non_integer_index_dropped(self):
        assert parse_path("a[x].b") == ["a", "b"]

    def test_unterminated_bracket_stops(self):
        assert parse_path("a[1") == ["a"]

    def test_leading_integer_prefix(self):
        assert parse_path("a[2abc]") == ["a", 2]


class TestVariableStore:
    """Test store operations."""

    def test_set_auto_types_strings(self):
        store = VariableStore()
        assert store.set("count", "5") == 5
        assert store.get("count") == 5

    def test_set_keeps_non_strings(self):
        store = VariableStore()
        store.set("items", [1, 2])
        assert store.get("items") == [1, 2]

    def test_set_raw_keeps_strings(self):
        store = VariableStore()
        store.set_raw("zip", "02134")
        assert store.get("zip") == "02134"

    def test_nested_get(self):
        store = VariableStore({"users": [{"name": "Ada"}, {"name": "Grace"}]})
        assert store.get("users[1].name") == "Grace"

    def test_get_unset_returns_none(self):
        """Unset and mismatched paths return None, never raise."""
        store = VariableStore({"user": {"name": "Ada"}, "items": [1]})
        assert store.get("missing") is None
        assert store.get("user.email") is None
        assert store.get("user[0]") is None
        assert store.get("items[5]") is None
        assert store.get("items.name") is None
        assert store.get("") is None

    def test_has_delete_clear(self):
        store = VariableStore({"a": 1, "b": 2})
        assert store.has("a")
        assert "b" in store
        assert store.delete("a") is True
        assert store.delete("a") is False
        store.clear()
        assert len(store) == 0

    def test_init_replaces_values(self):
        store = VariableStore({"a": 1})
        store.init({"b": 2})
        assert list(store) == ["b"]

    def test_snapshot_is_deep_copy(self):
        store = VariableStore({"user": {"name": "Ada"}})
        snap = store.snapshot()
        snap["user"]["name"] = "changed"
        assert store.get("user.name") == "Ada"


class TestSubstitute:
    """Test template substitution."""

    def test_resolvable_references_leave_no_braces(self):
        store = VariableStore({"user": {"name": "Ada"}, "n": 3})
        result = store.substitute("{{user.name}} has {{ n }} items")
        assert result == "Ada has 3 items"
        assert "{{" not in result

    def test_unresolved_becomes_empty(self):
        store = VariableStore()
        assert store.substitute("Hello {{nobody}}!") == "Hello !"

    def test_objects_rendered_as_json(self):
        store = VariableStore({"data": {"a": 1}, "flag": True})
        assert store.substitute("{{data}} {{flag}}") == '{"a":1} true'

    def test_none_template(self):
        assert VariableStore().substitute(None) == ""

    def test_index_reference(self):
        store = VariableStore({"rows": ["x", "y"]})
        assert store.substitute("li:nth-child({{rows[1]}})") == "li:nth-child(y)"

    @pytest.mark.parametrize("value, expected", [
        (None, ""),
        (False, "false"),
        (2.0, "2"),
        (2.5, "2.5"),
        ([1, "a"], '[1,"a"]'),
    ])
    def test_stringify(self, value, expected):
        assert stringify(value) == expected
