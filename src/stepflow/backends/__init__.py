"""
Backends module - Browser capability implementations.
"""

from stepflow.backends.playwright_backend import (
    PlaywrightBackend,
    HeadlessBackend,
    InteractiveBackend,
)

__all__ = [
    "PlaywrightBackend",
    "HeadlessBackend",
    "InteractiveBackend",
]


def _register_backends() -> None:
    """Register backend implementations with the registry."""
    from stepflow.registry import ComponentRegistry

    ComponentRegistry.register_backend("headless")(HeadlessBackend)
    ComponentRegistry.register_backend("interactive")(InteractiveBackend)


# Auto-register on import
_register_backends()
