"""
Browser module for Captcha Autosolver.

Everything that runs inside, or waits on, the page context.  The pipeline
never launches a browser itself; callers hand in a Playwright ``Page`` (or
``Frame``) and these helpers execute scripts against it.

Submodules:
    scripts: Raw JS payloads passed to ``page.evaluate``.
    page_tools: Readiness waits and visual feedback helpers.
"""

from .page_tools import (
    BUSY_FILTER,
    SOLVED_FILTER,
    paint_frames,
    wait_for_document_ready,
    wait_for_vendor_client,
)

__all__ = [
    "BUSY_FILTER",
    "SOLVED_FILTER",
    "paint_frames",
    "wait_for_document_ready",
    "wait_for_vendor_client",
]
