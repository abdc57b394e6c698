"""
Browser step handlers.

All of them go through ``executor.browser(ctx)``, which launches the
backend on first use and raises UnsupportedOperation when the run has
no browser.
"""

from typing import Any, Dict, Optional
import asyncio
import logging

from stepflow.engine.conditions import compare_values, parse_float
from stepflow.engine.handlers import handles
from stepflow.exceptions import ValidationFailure

logger = logging.getLogger(__name__)


@handles("navigate")
async def navigate(executor, step, ctx) -> str:
    url = step.value.strip()
    if not url:
        raise ValidationFailure("URL is required for navigate")
    backend = await executor.browser(ctx)
    await backend.navigate(url)
    return url


@handles("click")
async def click(executor, step, ctx) -> None:
    backend = await executor.browser(ctx)
    await backend.click(step.selector)


@handles("type")
async def type_text(executor, step, ctx) -> None:
    text = step.value
    if step.credential_id:
        text = executor.vault.resolve(step.credential_id, None, "password", "value", "token", "secret")
    backend = await executor.browser(ctx)
    await backend.type(step.selector, text)


@handles("wait")
async def wait(executor, step, ctx) -> float:
    """Sleep for ``value`` seconds. Needs no browser."""
    seconds = parse_float(step.value)
    if seconds is None or seconds < 0:
        raise ValidationFailure(f"Invalid wait duration: {step.value!r}")
    await asyncio.sleep(seconds)
    return seconds


@handles("screenshot")
async def screenshot(executor, step, ctx) -> str:
    backend = await executor.browser(ctx)
    path = await backend.screenshot(step.save_path or None)
    logger.info(f"Screenshot saved to {path}")
    return path


@handles("extract")
async def extract(executor, step, ctx) -> str:
    backend = await executor.browser(ctx)
    return await backend.extract(step.selector)


@handles("extractWithLogic")
async def extract_with_logic(executor, step, ctx) -> Dict[str, Any]:
    backend = await executor.browser(ctx)
    value = await backend.extract(step.selector)
    expected = step.expected_value if isinstance(step.expected_value, str) else str(step.expected_value)
    return {
        "value": value,
        "conditionMet": compare_values(step.condition, value, expected, parse_as_number=False),
    }


@handles("scroll")
async def scroll(executor, step, ctx) -> None:
    if step.scroll_type == "toElement":
        if not step.selector:
            raise ValidationFailure("Selector is required to scroll to an element")
        backend = await executor.browser(ctx)
        await backend.scroll(selector=step.selector)
        return
    if step.scroll_amount is None:
        raise ValidationFailure("Scroll amount is required to scroll by amount")
    backend = await executor.browser(ctx)
    await backend.scroll(amount=step.scroll_amount)


@handles("selectOption")
async def select_option(executor, step, ctx) -> Optional[str]:
    if step.option_value in (None, "") and step.option_index is None:
        raise ValidationFailure("selectOption needs an option value or index")
    backend = await executor.browser(ctx)
    await backend.select_option(step.selector, value=step.option_value or None, index=step.option_index)
    return step.option_value


@handles("fileUpload")
async def file_upload(executor, step, ctx) -> str:
    backend = await executor.browser(ctx)
    await backend.upload_file(step.selector, step.file_path)
    return step.file_path


@handles("hover")
async def hover(executor, step, ctx) -> None:
    backend = await executor.browser(ctx)
    await backend.hover(step.selector)


@handles("evaluate")
async def evaluate(executor, step, ctx) -> Any:
    backend = await executor.browser(ctx)
    return await backend.evaluate(step.script)
