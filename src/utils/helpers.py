"""Helper utilities for common browser operations."""

import asyncio
import base64
from typing import Awaitable, Callable, Literal, Optional

from loguru import logger
from playwright.async_api import Page
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from ..constants import Timeouts
from ..core.exceptions import UpstreamNavigationError

__all__ = [
    "poll_until",
    "settle",
    "safe_navigate",
    "screenshot_b64",
]


def _last_result(retry_state: RetryCallState) -> bool:
    """Return the final predicate result instead of raising RetryError."""
    if retry_state.outcome is None:
        return False
    return bool(retry_state.outcome.result())


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    timeout: float,
    interval: float,
    attempts: Optional[int] = None,
) -> bool:
    """
    Poll an async predicate until it returns truthy or the budget runs out.

    Args:
        predicate: Async callable returning a truthy value when satisfied
        timeout: Maximum seconds to keep polling
        interval: Seconds between attempts
        attempts: Optional attempt budget used instead of the time budget

    Returns:
        True if the predicate was satisfied, False on exhaustion
    """
    stop = stop_after_attempt(attempts) if attempts else stop_after_delay(timeout)
    retrying = AsyncRetrying(
        stop=stop,
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda satisfied: not satisfied),
        retry_error_callback=_last_result,
        reraise=True,
    )
    result = await retrying(predicate)
    return bool(result)


async def settle(seconds: float) -> None:
    """Wait for an asynchronous re-render that has no observable postcondition."""
    if seconds > 0:
        await asyncio.sleep(seconds)


async def safe_navigate(
    page: Page,
    url: str,
    wait_until: Literal["commit", "domcontentloaded", "load", "networkidle"] = "networkidle",
    timeout: Optional[int] = None,
) -> None:
    """
    Navigate to URL, translating any failure into UpstreamNavigationError.

    Args:
        page: Playwright page object
        url: URL to navigate to
        wait_until: Wait condition
        timeout: Optional timeout in milliseconds

    Raises:
        UpstreamNavigationError: If the page could not be loaded
    """
    timeout = timeout or Timeouts.NAVIGATION
    try:
        await page.goto(url, wait_until=wait_until, timeout=timeout)
    except Exception as e:
        logger.error(f"Failed to navigate to {url}: {e}")
        raise UpstreamNavigationError(url, str(e)) from e


async def screenshot_b64(page: Page, full_page: bool = True) -> Optional[str]:
    """
    Capture the page as a base64-encoded PNG, best effort.

    Args:
        page: Playwright page object
        full_page: Whether to capture the full scrollable page

    Returns:
        Base64 string, or None if the capture failed
    """
    try:
        raw = await page.screenshot(full_page=full_page, type="png")
    except Exception as e:
        logger.warning(f"Screenshot capture failed: {e}")
        return None
    return base64.b64encode(raw).decode("ascii")
