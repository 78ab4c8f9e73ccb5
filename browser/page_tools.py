"""Page helpers shared by locators and injectors.

Thin wrappers around the Playwright page API:

* :func:`wait_for_document_ready` -- block until ``DOMContentLoaded`` /
  ``load`` has been observed, optionally bounded by a timeout.
* :func:`wait_for_vendor_client` -- bounded polling until a vendor script
  has initialised; fails soft.
* :func:`paint_frames` -- visual feedback tint for located/solved frames.
"""

import asyncio
import logging
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from core.errors import DetectionFailure

from . import scripts

logger = logging.getLogger(__name__)

BUSY_FILTER = "opacity(60%) hue-rotate(400deg)"  # violet
SOLVED_FILTER = "opacity(60%) hue-rotate(230deg)"  # green


async def wait_for_document_ready(
    page: Any, timeout: Optional[float] = None,
) -> None:
    """Wait until the page's document is ready.

    Args:
        page: Playwright ``Page`` or ``Frame``.
        timeout: Seconds to wait; ``None`` waits indefinitely.

    Raises:
        DetectionFailure: If the document is still loading after
            *timeout* seconds.
    """
    ready = page.evaluate(scripts.DOCUMENT_READY)
    if timeout is None:
        await ready
        return
    try:
        await asyncio.wait_for(ready, timeout)
    except asyncio.TimeoutError as exc:
        raise DetectionFailure(
            f"Document not ready after {timeout:g}s"
        ) from exc


async def wait_for_vendor_client(
    page: Any,
    script_selector: str,
    ready_expression: str,
    timeout: float,
    interval: float,
) -> bool:
    """Wait for a vendor script to finish initialising.

    Nothing is awaited when the page has no matching script tag.  A
    timeout is logged and swallowed so that detection still runs.

    Args:
        page: Playwright ``Page`` or ``Frame``.
        script_selector: CSS selector of the vendor ``<script>`` tag.
        ready_expression: JS expression that turns truthy once ready.
        timeout: Maximum seconds to poll.
        interval: Seconds between polls.

    Returns:
        True if the vendor client reported ready.
    """
    if not await page.query_selector(script_selector):
        return False

    logger.debug("Waiting for vendor client (%s)", script_selector)
    try:
        await page.wait_for_function(
            ready_expression,
            polling=int(interval * 1000),
            timeout=int(timeout * 1000),
        )
    except PlaywrightTimeoutError:
        logger.debug(
            "Vendor client not ready after %.1fs; continuing",
            timeout,
        )
        return False
    return True


async def paint_frames(page: Any, selector: str, css_filter: str) -> int:
    """Apply a CSS filter to every frame matching *selector*.

    Returns:
        Number of painted frames (0 if painting failed).
    """
    if not selector:
        return 0
    try:
        return await page.evaluate(
            scripts.PAINT_FRAMES,
            {"selector": selector, "filter": css_filter},
        )
    except PlaywrightError as e:
        logger.debug("Painting frames failed: %s", e)
        return 0
