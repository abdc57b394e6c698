"""
Settings - Pydantic models for type-safe configuration.

Example:
    >>> from stepflow.config import load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> settings.engine.max_node_visits
    10000
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseModel):
    """
    Browser backend settings.

    Attributes:
        mode: Which backend executes browser steps
        browser_type: Playwright browser to launch
        timeout_ms: Bounded wait for element lookups
        viewport_width: Headless viewport width in pixels
        viewport_height: Headless viewport height in pixels
        slow_mo: Slow down operations by this amount (ms) - useful for debugging
        screenshot_dir: Directory screenshots are written to
    """
    mode: Literal["headless", "interactive"] = "headless"
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    timeout_ms: int = Field(default=10000, ge=100, le=300000)
    viewport_width: int = Field(default=1920, ge=320, le=3840)
    viewport_height: int = Field(default=1080, ge=240, le=2160)
    slow_mo: int = Field(default=0, ge=0, le=5000)
    screenshot_dir: str = "./screenshots"
    launch_args: List[str] = Field(default_factory=lambda: [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
    ])


class LLMSettings(BaseModel):
    """
    LLM provider settings used by the agent command and as defaults for AI steps.

    Attributes:
        provider: LLM provider to use
        model: Model name/identifier
        api_key: API key (falls back to the provider's usual env var)
        base_url: Custom API endpoint URL
        temperature: Sampling temperature
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds
    """
    provider: Literal["openai", "anthropic", "ollama"] = "openai"
    model: str = "gpt-4o-mini"
    api_key: Optional[SecretStr] = None
    base_url: Optional[str] = None
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1, le=128000)
    timeout: int = Field(default=60, ge=1, le=300)


class EngineSettings(BaseModel):
    """
    Graph execution settings.

    Attributes:
        max_node_visits: Hard cap on node visits per run, independent of loops
        step_delay_ms: Pause between node visits
    """
    max_node_visits: int = Field(default=10000, ge=1)
    step_delay_ms: int = Field(default=0, ge=0, le=60000)


class AgentSettings(BaseModel):
    """
    Tool-calling agent settings.

    Attributes:
        max_iterations: Provider calls allowed before the session fails
        allowed_tools: Restrict the tool catalog (None means every tool)
        system_prompt: Override for the default agent system prompt
    """
    max_iterations: int = Field(default=10, ge=1, le=100)
    allowed_tools: Optional[List[str]] = None
    system_prompt: Optional[str] = None


class LoggingSettings(BaseModel):
    """
    Logging configuration.

    Attributes:
        level: Log level
        file: Log file path (None for console only)
        json_format: Use JSON format for the file log
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.

    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with STEPFLOW__)
    3. Config file (YAML)
    4. Default values

    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(backend=BackendSettings(mode="interactive"))
    """

    model_config = SettingsConfigDict(
        env_prefix="STEPFLOW__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    backend: BackendSettings = Field(default_factory=BackendSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = False

    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.

        Args:
            overrides: Dictionary of values to override

        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()

        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base

        merged = deep_merge(current, overrides)
        return Settings(**merged)
