"""
Tests for the component registry.
"""

import pytest

from stepflow.backends import HeadlessBackend, InteractiveBackend
from stepflow.llm import OpenAIProvider
from stepflow.registry import ComponentRegistry

from fakes import FakeBackend, FakeProvider


class TestComponentRegistry:
    """Test the ComponentRegistry class."""

    def setup_method(self):
        """Clear registry before each test."""
        ComponentRegistry.clear_all()

    def teardown_method(self):
        """Restore the built-in components after each test."""
        from stepflow.backends import _register_backends
        from stepflow.llm import _register_providers

        ComponentRegistry.clear_all()
        _register_backends()
        _register_providers()

    def test_register_backend(self):
        ComponentRegistry.register_backend("fake")(FakeBackend)

        assert "fake" in ComponentRegistry.list_backends()
        assert ComponentRegistry.get_backend("fake") is FakeBackend

    def test_register_backend_twice_with_same_class(self):
        ComponentRegistry.register_backend("fake")(FakeBackend)
        ComponentRegistry.register_backend("fake")(FakeBackend)
        assert ComponentRegistry.list_backends() == ["fake"]

    def test_name_conflict(self):
        ComponentRegistry.register_backend("fake")(FakeBackend)
        with pytest.raises(ValueError, match="already registered"):
            ComponentRegistry.register_backend("fake")(HeadlessBackend)

    def test_get_unknown_backend_raises(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            ComponentRegistry.get_backend("nonexistent")

    def test_backend_factory_is_lazy(self):
        loaded = []

        def factory():
            loaded.append(True)
            return FakeBackend

        ComponentRegistry.register_backend_factory("lazy", factory)
        assert "lazy" in ComponentRegistry.list_backends()
        assert loaded == []

        assert ComponentRegistry.get_backend("lazy") is FakeBackend
        ComponentRegistry.get_backend("lazy")
        assert loaded == [True]

    def test_register_llm_provider(self):
        ComponentRegistry.register_llm("fake")(FakeProvider)

        assert "fake" in ComponentRegistry.list_llm_providers()
        assert ComponentRegistry.get_llm_provider("fake") is FakeProvider

    def test_get_unknown_llm_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            ComponentRegistry.get_llm_provider("nonexistent")


class TestBuiltins:
    """Test the components registered on import."""

    def test_builtin_backends(self, registry):
        assert registry.list_backends() == ["headless", "interactive"]
        assert registry.get_backend("interactive") is InteractiveBackend

    def test_builtin_providers(self, registry):
        assert registry.list_llm_providers() == ["anthropic", "ollama", "openai"]
        assert registry.get_llm_provider("openai") is OpenAIProvider
