"""
Backend Interface - The capability surface browser steps run against.

Two implementations exist: an interactive backend bound to a long-lived,
user-visible browser session, and a headless backend spawned per run.
The Step Executor only ever talks to this interface, so every browser
step behaves the same against either of them.

Example:
    >>> from stepflow.backends import HeadlessBackend
    >>> async with HeadlessBackend() as backend:
    ...     await backend.navigate("https://example.com")
    ...     title = await backend.extract("h1")
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class IBackend(ABC):
    """
    Abstract interface for browser backends.

    Selectors are CSS first with an XPath fallback. Element lookups wait a
    bounded time and raise ``TimeoutFailure`` when nothing matches.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registered name of the backend ('interactive', 'headless')."""
        ...

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """True once launch() succeeded and until close() is called."""
        ...

    @abstractmethod
    async def launch(self) -> None:
        """
        Acquire the browser session.

        Raises:
            BackendLaunchError: If the browser cannot be started
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the browser session. Safe to call more than once."""
        ...

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """
        Load a URL in the active page.

        Args:
            url: Absolute URL to load
        """
        ...

    @abstractmethod
    async def click(self, selector: str) -> None:
        """Click the first element matching the selector."""
        ...

    @abstractmethod
    async def type(self, selector: str, text: str) -> None:
        """
        Type text into an element.

        Args:
            selector: Target input element
            text: Text to type
        """
        ...

    @abstractmethod
    async def extract(self, selector: str) -> str:
        """
        Read the text of an element.

        Returns:
            The element's inner text ("" for empty elements)
        """
        ...

    @abstractmethod
    async def screenshot(self, path: Optional[str] = None) -> str:
        """
        Capture the page.

        Args:
            path: Output file; a timestamped name is generated when omitted

        Returns:
            Path of the written image
        """
        ...

    @abstractmethod
    async def scroll(self, selector: Optional[str] = None, amount: Optional[int] = None) -> None:
        """
        Scroll an element into view, or the window by ``amount`` pixels.
        """
        ...

    @abstractmethod
    async def select_option(
        self,
        selector: str,
        value: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        """Select an option of a <select> element by value or index."""
        ...

    @abstractmethod
    async def hover(self, selector: str) -> None:
        """Move the pointer over an element."""
        ...

    @abstractmethod
    async def evaluate(self, script: str) -> Any:
        """Run JavaScript in the page and return its JSON-able result."""
        ...

    @abstractmethod
    async def element_exists(self, selector: str) -> bool:
        """
        Check for an element without waiting or raising.

        Used by DOM conditionals; a miss is a normal False result.
        """
        ...

    @abstractmethod
    async def element_text(self, selector: str) -> Optional[str]:
        """
        Read an element's text without waiting.

        Returns:
            The text, or None when nothing matches
        """
        ...

    @abstractmethod
    async def upload_file(self, selector: str, path: str) -> None:
        """Attach a local file to a file input."""
        ...

    async def __aenter__(self) -> "IBackend":
        await self.launch()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()
