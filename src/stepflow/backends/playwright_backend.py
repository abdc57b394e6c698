"""
Playwright Backends - Implementations of IBackend using Playwright.

``HeadlessBackend`` launches an isolated headless Chromium per run with a
fixed viewport. ``InteractiveBackend`` drives a visible browser the user can
watch, and can attach to an already running browser over CDP instead of
launching its own.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from stepflow.config.settings import BackendSettings
from stepflow.interfaces.backend import IBackend
from stepflow.exceptions import (
    BackendLaunchError,
    BackendNotReadyError,
    TimeoutFailure,
    TransportFailure,
)

logger = logging.getLogger(__name__)


# CSS first, XPath when the selector is not valid CSS or matches nothing
_FIND_ELEMENT_JS = """(sel) => {
    let el = null;
    try { el = document.querySelector(sel); } catch (e) { }
    if (!el) {
        try {
            el = document.evaluate(
                sel, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null
            ).singleNodeValue;
        } catch (e) { }
    }
    return el;
}"""

_ELEMENT_PRESENT_JS = f"(sel) => !!({_FIND_ELEMENT_JS})(sel)"

_ELEMENT_TEXT_JS = f"""(sel) => {{
    const el = ({_FIND_ELEMENT_JS})(sel);
    return el ? (el.innerText ?? el.textContent ?? "") : null;
}}"""


class PlaywrightBackend(IBackend):
    """
    Shared Playwright plumbing for both backends.

    Subclasses decide how the page is acquired; every capability is
    implemented here against ``self._page``.
    """

    def __init__(
        self,
        headless: bool = True,
        browser_type: str = "chromium",
        timeout_ms: int = 10000,
        viewport: Optional[Dict[str, int]] = None,
        launch_args: Optional[List[str]] = None,
        slow_mo: int = 0,
        screenshot_dir: str = ".",
    ):
        self._headless = headless
        self._browser_type = browser_type
        self._timeout_ms = timeout_ms
        self._viewport = viewport
        self._launch_args = list(launch_args or [])
        self._slow_mo = slow_mo
        self._screenshot_dir = Path(screenshot_dir)

        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None

    @property
    def is_ready(self) -> bool:
        return self._page is not None

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    async def launch(self) -> None:
        if self._page is not None:
            return
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            launchers = {
                "chromium": self._playwright.chromium,
                "firefox": self._playwright.firefox,
                "webkit": self._playwright.webkit,
            }
            launcher = launchers.get(self._browser_type, self._playwright.chromium)

            self._browser = await launcher.launch(
                headless=self._headless,
                args=self._launch_args,
                slow_mo=self._slow_mo,
            )
            if self._viewport:
                self._context = await self._browser.new_context(viewport=self._viewport)
            else:
                self._context = await self._browser.new_context(no_viewport=True)
            self._page = await self._context.new_page()
            self._page.set_default_timeout(self._timeout_ms)

            logger.info(
                f"Launched {self._browser_type} for {self.name} backend "
                f"(headless={self._headless})"
            )
        except Exception as e:
            await self._teardown()
            raise BackendLaunchError(f"Failed to launch browser: {e}")

    async def close(self) -> None:
        await self._teardown()
        logger.info(f"{self.name} backend closed")

    async def _teardown(self) -> None:
        page, context, browser, playwright = self._page, self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        for resource in (context, browser):
            if resource is not None:
                try:
                    await resource.close()
                except Exception as e:
                    logger.debug(f"Ignoring error during close: {e}")
        if playwright is not None:
            await playwright.stop()

    # ==================== Element Resolution ====================

    def _require_page(self) -> Any:
        if self._page is None:
            raise BackendNotReadyError(
                f"{self.name} backend is not launched. Call launch() first."
            )
        return self._page

    async def _wait_for_element(self, selector: str) -> Any:
        """Wait up to the configured timeout for a CSS or XPath match."""
        page = self._require_page()
        try:
            await page.wait_for_function(
                _ELEMENT_PRESENT_JS,
                arg=selector,
                timeout=self._timeout_ms,
            )
        except Exception as e:
            raise TimeoutFailure(
                f"Element not found within {self._timeout_ms}ms: {selector} ({e})",
                selector=selector,
                timeout_ms=self._timeout_ms,
            )
        handle = await page.evaluate_handle(_FIND_ELEMENT_JS, selector)
        element = handle.as_element()
        if element is None:
            raise TimeoutFailure(
                f"Element disappeared before it could be used: {selector}",
                selector=selector,
                timeout_ms=self._timeout_ms,
            )
        return element

    # ==================== Capabilities ====================

    async def navigate(self, url: str) -> None:
        page = self._require_page()
        logger.debug(f"Navigating to {url}")
        try:
            await page.goto(url, wait_until="networkidle")
        except Exception as e:
            raise TransportFailure(f"Failed to navigate to {url}: {e}")

    async def click(self, selector: str) -> None:
        element = await self._wait_for_element(selector)
        await element.click()

    async def type(self, selector: str, text: str) -> None:
        element = await self._wait_for_element(selector)
        await element.type(text)

    async def extract(self, selector: str) -> str:
        element = await self._wait_for_element(selector)
        text = await element.text_content()
        return (text or "").strip()

    async def screenshot(self, path: Optional[str] = None) -> str:
        page = self._require_page()
        if path:
            target = Path(path)
        else:
            timestamp = datetime.now().strftime("%Y%m%dT%H%M%S")
            target = self._screenshot_dir / f"screenshot_{timestamp}.png"
        target.parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=str(target), full_page=True)
        logger.info(f"Screenshot saved to: {target}")
        return str(target)

    async def scroll(self, selector: Optional[str] = None, amount: Optional[int] = None) -> None:
        if selector:
            element = await self._wait_for_element(selector)
            await element.scroll_into_view_if_needed()
            return
        page = self._require_page()
        await page.evaluate("(amt) => window.scrollBy(0, amt)", int(amount or 0))

    async def select_option(
        self,
        selector: str,
        value: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        element = await self._wait_for_element(selector)
        if index is not None:
            await element.select_option(index=index)
        else:
            await element.select_option(value=value)

    async def hover(self, selector: str) -> None:
        element = await self._wait_for_element(selector)
        await element.hover()

    async def evaluate(self, script: str) -> Any:
        page = self._require_page()
        return await page.evaluate(script)

    async def element_exists(self, selector: str) -> bool:
        page = self._require_page()
        return bool(await page.evaluate(_ELEMENT_PRESENT_JS, selector))

    async def element_text(self, selector: str) -> Optional[str]:
        """Text of the first match without waiting, None when absent."""
        page = self._require_page()
        return await page.evaluate(_ELEMENT_TEXT_JS, selector)

    async def upload_file(self, selector: str, path: str) -> None:
        if not Path(path).exists():
            raise FileNotFoundError(f"Upload file does not exist: {path}")
        element = await self._wait_for_element(selector)
        await element.set_input_files(path)


class HeadlessBackend(PlaywrightBackend):
    """
    Isolated headless browser, one per run.

    Must be released explicitly with close() or by using it as an async
    context manager.

    Example:
        >>> async with HeadlessBackend() as backend:
        ...     await backend.navigate("https://example.com")
    """

    DEFAULT_ARGS = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
    ]

    def __init__(
        self,
        timeout_ms: int = 10000,
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        launch_args: Optional[List[str]] = None,
        browser_type: str = "chromium",
        slow_mo: int = 0,
        screenshot_dir: str = ".",
    ):
        super().__init__(
            headless=True,
            browser_type=browser_type,
            timeout_ms=timeout_ms,
            viewport={"width": viewport_width, "height": viewport_height},
            launch_args=launch_args if launch_args is not None else self.DEFAULT_ARGS,
            slow_mo=slow_mo,
            screenshot_dir=screenshot_dir,
        )

    @property
    def name(self) -> str:
        return "headless"

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> "HeadlessBackend":
        return cls(
            timeout_ms=settings.timeout_ms,
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
            launch_args=settings.launch_args,
            browser_type=settings.browser_type,
            slow_mo=settings.slow_mo,
            screenshot_dir=settings.screenshot_dir,
        )


class InteractiveBackend(PlaywrightBackend):
    """
    Visible browser session that outlives individual runs.

    When ``cdp_url`` is given the backend attaches to an already running
    Chromium and drives its first open page; close() then only drops the
    connection and leaves the user's browser running.
    """

    def __init__(
        self,
        cdp_url: Optional[str] = None,
        timeout_ms: int = 10000,
        browser_type: str = "chromium",
        slow_mo: int = 0,
        screenshot_dir: str = ".",
    ):
        super().__init__(
            headless=False,
            browser_type=browser_type,
            timeout_ms=timeout_ms,
            viewport=None,
            slow_mo=slow_mo,
            screenshot_dir=screenshot_dir,
        )
        self._cdp_url = cdp_url

    @property
    def name(self) -> str:
        return "interactive"

    @property
    def is_attached(self) -> bool:
        return self._cdp_url is not None

    @classmethod
    def from_settings(cls, settings: BackendSettings, cdp_url: Optional[str] = None) -> "InteractiveBackend":
        return cls(
            cdp_url=cdp_url,
            timeout_ms=settings.timeout_ms,
            browser_type=settings.browser_type,
            slow_mo=settings.slow_mo,
            screenshot_dir=settings.screenshot_dir,
        )

    async def launch(self) -> None:
        if not self._cdp_url:
            await super().launch()
            return
        if self._page is not None:
            return
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            browser = await self._playwright.chromium.connect_over_cdp(self._cdp_url)
            context = browser.contexts[0] if browser.contexts else await browser.new_context()
            self._page = context.pages[0] if context.pages else await context.new_page()
            self._page.set_default_timeout(self._timeout_ms)
            logger.info(f"Attached to running browser at {self._cdp_url}")
        except Exception as e:
            await self._teardown()
            raise BackendLaunchError(f"Failed to attach to {self._cdp_url}: {e}")

    async def close(self) -> None:
        if not self._cdp_url:
            await super().close()
            return
        playwright = self._playwright
        self._page = self._playwright = None
        if playwright is not None:
            await playwright.stop()
        logger.info("Detached from running browser")
