"""
Tests for configuration system.
"""

import pytest
from pydantic import ValidationError

from stepflow.config import (
    AgentSettings,
    BackendSettings,
    ConfigLoader,
    EngineSettings,
    Settings,
    load_config,
)
from stepflow.exceptions import ConfigurationError


class TestSettings:
    """Test the Settings classes."""

    def test_default_settings(self):
        """Test default settings are created correctly."""
        settings = Settings()

        assert settings.backend.mode == "headless"
        assert settings.backend.timeout_ms == 10000
        assert settings.llm.provider == "openai"
        assert settings.engine.max_node_visits == 10000
        assert settings.agent.max_iterations == 10

    def test_override_settings(self):
        settings = Settings(
            backend=BackendSettings(mode="interactive", browser_type="firefox"),
            agent=AgentSettings(max_iterations=3),
        )

        assert settings.backend.mode == "interactive"
        assert settings.backend.browser_type == "firefox"
        assert settings.agent.max_iterations == 3

    def test_merge_with_overrides(self):
        """Nested overrides replace single fields and keep the rest."""
        new_settings = Settings().merge_with({
            "backend": {"mode": "interactive"},
            "engine": {"max_node_visits": 50},
        })

        assert new_settings.backend.mode == "interactive"
        assert new_settings.engine.max_node_visits == 50
        assert new_settings.backend.browser_type == "chromium"

    def test_backend_settings_validation(self):
        assert BackendSettings(timeout_ms=5000).timeout_ms == 5000

        with pytest.raises(ValidationError):
            BackendSettings(timeout_ms=10)

        with pytest.raises(ValidationError):
            BackendSettings(mode="remote")

    def test_engine_settings_validation(self):
        with pytest.raises(ValidationError):
            EngineSettings(max_node_visits=0)

    def test_agent_settings_validation(self):
        assert AgentSettings(max_iterations=50).max_iterations == 50

        with pytest.raises(ValidationError):
            AgentSettings(max_iterations=500)

    def test_env_vars(self, monkeypatch):
        """STEPFLOW__ variables feed nested settings."""
        monkeypatch.setenv("STEPFLOW__BACKEND__MODE", "interactive")
        monkeypatch.setenv("STEPFLOW__AGENT__MAX_ITERATIONS", "4")

        settings = Settings()
        assert settings.backend.mode == "interactive"
        assert settings.agent.max_iterations == 4

    def test_api_key_is_secret(self):
        settings = Settings(llm={"api_key": "sk-secret"})
        assert "sk-secret" not in repr(settings.llm)
        assert settings.llm.api_key.get_secret_value() == "sk-secret"


class TestConfigLoader:
    """Test loading settings from files."""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "stepflow.yaml"
        path.write_text("engine:\n  max_node_visits: 25\nagent:\n  max_iterations: 2\n")

        settings = load_config(config_path=path)
        assert settings.engine.max_node_visits == 25
        assert settings.agent.max_iterations == 2

    def test_overrides_win_over_file(self, tmp_path):
        path = tmp_path / "stepflow.yaml"
        path.write_text("engine:\n  max_node_visits: 25\n")

        settings = load_config(config_path=path, engine={"max_node_visits": 7})
        assert settings.engine.max_node_visits == 7

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            ConfigLoader(tmp_path / "missing.yaml").find_config_file()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("engine: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigLoader(path).load_yaml_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            ConfigLoader(path).load_yaml_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert ConfigLoader(path).load_yaml_config(path) == {}
