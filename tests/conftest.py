"""
Pytest configuration and fixtures.
"""

from typing import Any, Callable, Optional

import httpx
import pytest

from stepflow.config import Settings
from stepflow.interfaces.backend import IBackend
from stepflow.interfaces.llm import ILLMProvider

from fakes import FakeBackend


@pytest.fixture
def settings():
    """Provide test settings."""
    from stepflow.config import AgentSettings, EngineSettings

    return Settings(
        engine=EngineSettings(max_node_visits=200),
        agent=AgentSettings(max_iterations=10),
    )


@pytest.fixture
def fake_backend():
    """Provide a backend with a few elements on the page."""
    return FakeBackend({
        "#title": "  Welcome  ",
        "#price": "$42,500",
        "#submit": "Submit",
        "#email": "",
    })


@pytest.fixture
def vault():
    """Provide a credential vault backed by memory."""
    from stepflow.security import Credential, CredentialVault, MemoryCredentialBackend

    return CredentialVault(MemoryCredentialBackend([
        Credential("team-slack", "slack", {"token": "xoxb-test"}),
        Credential("bot", "discord", {"bot_token": "discord-token"}),
        Credential("x", "twitter", {
            "api_key": "ck",
            "api_secret": "cs",
            "access_token": "at",
            "access_secret": "as",
        }),
        Credential("openai", "openai", {"api_key": "sk-test"}),
    ]))


@pytest.fixture
def make_executor(settings, vault):
    """
    Factory for executors wired to fakes.

    ``handler`` serves HTTP requests through httpx.MockTransport;
    ``provider`` is returned for every LLM provider lookup.
    """
    from stepflow.engine import StepExecutor

    def factory(
        backend: Optional[IBackend] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        provider: Optional[ILLMProvider] = None,
    ) -> StepExecutor:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler)) if handler else None
        provider_factory = None
        if provider is not None:
            def provider_factory(name: str, **kwargs: Any) -> ILLMProvider:
                provider.created_with = {"name": name, **kwargs}
                return provider
        return StepExecutor(
            backend=backend,
            vault=vault,
            http_client=client,
            provider_factory=provider_factory,
            settings=settings,
        )

    return factory


@pytest.fixture
def registry():
    """Provide a component registry with the built-in components registered."""
    from stepflow.backends import _register_backends
    from stepflow.llm import _register_providers
    from stepflow.registry import ComponentRegistry

    ComponentRegistry.clear_all()
    _register_backends()
    _register_providers()

    yield ComponentRegistry

    # Restore the built-ins for other tests
    ComponentRegistry.clear_all()
    _register_backends()
    _register_providers()
