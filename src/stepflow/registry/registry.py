"""
Component Registry - Central registry for pluggable components.

Backends and LLM providers register themselves by name so the CLI and the
Step Executor can pick one from settings without importing it directly.

Example:
    >>> from stepflow.registry import register_backend, get_backend
    >>>
    >>> @register_backend("headless")
    >>> class HeadlessBackend(IBackend):
    ...     pass
    >>>
    >>> backend_class = get_backend("headless")
"""

from typing import Callable, Dict, List, Type

from stepflow.interfaces.backend import IBackend
from stepflow.interfaces.llm import ILLMProvider


class ComponentRegistry:
    """
    Central registry for pluggable components.

    Components are registered by name, either directly through the
    decorators or as factories that import the implementation on first use.
    """

    _backends: Dict[str, Type[IBackend]] = {}
    _llm_providers: Dict[str, Type[ILLMProvider]] = {}

    # Factory functions for lazy loading
    _backend_factories: Dict[str, Callable[[], Type[IBackend]]] = {}
    _llm_factories: Dict[str, Callable[[], Type[ILLMProvider]]] = {}

    # ==================== Backend Registration ====================

    @classmethod
    def register_backend(cls, name: str) -> Callable[[Type[IBackend]], Type[IBackend]]:
        """
        Decorator to register a backend implementation.

        Args:
            name: Unique name for the backend (e.g., 'headless', 'interactive')

        Returns:
            Decorator function
        """
        def decorator(backend_class: Type[IBackend]) -> Type[IBackend]:
            if name in cls._backends and cls._backends[name] is not backend_class:
                raise ValueError(f"Backend '{name}' is already registered")
            cls._backends[name] = backend_class
            return backend_class
        return decorator

    @classmethod
    def register_backend_factory(
        cls,
        name: str,
        factory: Callable[[], Type[IBackend]],
    ) -> None:
        """Register a factory function for lazy-loading a backend."""
        cls._backend_factories[name] = factory

    @classmethod
    def get_backend(cls, name: str) -> Type[IBackend]:
        """
        Get a registered backend class by name.

        Raises:
            ValueError: If the backend is not registered
        """
        if name in cls._backends:
            return cls._backends[name]

        if name in cls._backend_factories:
            backend_class = cls._backend_factories[name]()
            cls._backends[name] = backend_class
            return backend_class

        available = sorted(set(cls._backends) | set(cls._backend_factories))
        raise ValueError(
            f"Unknown backend: '{name}'. Available backends: {available}"
        )

    @classmethod
    def list_backends(cls) -> List[str]:
        """List all registered backend names."""
        return sorted(set(cls._backends) | set(cls._backend_factories))

    # ==================== LLM Provider Registration ====================

    @classmethod
    def register_llm(cls, name: str) -> Callable[[Type[ILLMProvider]], Type[ILLMProvider]]:
        """
        Decorator to register an LLM provider implementation.

        Args:
            name: Unique name for the provider (e.g., 'openai', 'anthropic')
        """
        def decorator(provider_class: Type[ILLMProvider]) -> Type[ILLMProvider]:
            if name in cls._llm_providers and cls._llm_providers[name] is not provider_class:
                raise ValueError(f"LLM provider '{name}' is already registered")
            cls._llm_providers[name] = provider_class
            return provider_class
        return decorator

    @classmethod
    def register_llm_factory(
        cls,
        name: str,
        factory: Callable[[], Type[ILLMProvider]],
    ) -> None:
        """Register a factory function for lazy-loading an LLM provider."""
        cls._llm_factories[name] = factory

    @classmethod
    def get_llm_provider(cls, name: str) -> Type[ILLMProvider]:
        """
        Get a registered LLM provider class by name.

        Raises:
            ValueError: If the provider is not registered
        """
        if name in cls._llm_providers:
            return cls._llm_providers[name]

        if name in cls._llm_factories:
            provider_class = cls._llm_factories[name]()
            cls._llm_providers[name] = provider_class
            return provider_class

        available = sorted(set(cls._llm_providers) | set(cls._llm_factories))
        raise ValueError(
            f"Unknown LLM provider: '{name}'. Available providers: {available}"
        )

    @classmethod
    def list_llm_providers(cls) -> List[str]:
        """List all registered LLM provider names."""
        return sorted(set(cls._llm_providers) | set(cls._llm_factories))

    # ==================== Utility Methods ====================

    @classmethod
    def clear_all(cls) -> None:
        """Clear all registries. Useful for testing."""
        cls._backends.clear()
        cls._llm_providers.clear()
        cls._backend_factories.clear()
        cls._llm_factories.clear()


# ==================== Convenience Decorators ====================

def register_backend(name: str) -> Callable[[Type[IBackend]], Type[IBackend]]:
    """Convenience decorator for registering backends."""
    return ComponentRegistry.register_backend(name)


def register_llm(name: str) -> Callable[[Type[ILLMProvider]], Type[ILLMProvider]]:
    """Convenience decorator for registering LLM providers."""
    return ComponentRegistry.register_llm(name)


# ==================== Convenience Getters ====================

def get_backend(name: str) -> Type[IBackend]:
    """Get a backend class by name."""
    return ComponentRegistry.get_backend(name)


def get_llm_provider(name: str) -> Type[ILLMProvider]:
    """Get an LLM provider class by name."""
    return ComponentRegistry.get_llm_provider(name)
