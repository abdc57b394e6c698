"""
Configuration module - Centralized settings management.

Usage:
    from stepflow.config import get_settings, load_config

    # Get global settings (loaded once)
    settings = get_settings()

    # Or load fresh settings with overrides
    settings = load_config(engine={"max_node_visits": 500})

Environment Variables:
    STEPFLOW__BACKEND__MODE=interactive
    STEPFLOW__LLM__PROVIDER=anthropic
    STEPFLOW__AGENT__MAX_ITERATIONS=5
    OPENAI_API_KEY=sk-...
"""

from stepflow.config.settings import (
    Settings,
    BackendSettings,
    LLMSettings,
    EngineSettings,
    AgentSettings,
    LoggingSettings,
)
from stepflow.config.loader import ConfigLoader, load_config

# Global settings singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    Call reset_settings() to reload.
    """
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Reset the global settings (forces reload on next get_settings())."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "BackendSettings",
    "LLMSettings",
    "EngineSettings",
    "AgentSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
]
