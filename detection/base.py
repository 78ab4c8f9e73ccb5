"""Common locator contract.

A locator performs one detection pass for one vendor:

1. Wait (bounded, fail soft) for the vendor script to initialise.
2. Wait for document readiness.
3. Snapshot candidate frames and extract widgets from them.
4. Tint located frames when visual feedback is on.

Any failure in steps 2-3 aborts the pass with a single
:class:`~core.errors.DetectionFailure`; no partial list is returned.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from playwright.async_api import Error as PlaywrightError

from browser import page_tools
from core.config import SolverSettings
from core.errors import DetectionFailure
from core.models import Vendor, Widget

from .frames import PageSnapshot, snapshot_frames

logger = logging.getLogger(__name__)


class WidgetLocator(ABC):
    """Base class for per-vendor widget locators.

    Subclasses set the class attributes and implement :meth:`extract`.

    Attributes:
        vendor: Vendor handled by the locator.
        script_selector: Selector of the vendor ``<script>`` tag.
        ready_expression: JS expression truthy once the vendor is ready.
        frame_query: Selector of every candidate frame for the snapshot.
        response_field: Name of the vendor's response form field.
    """

    vendor: Vendor
    script_selector: str = ""
    ready_expression: str = ""
    frame_query: str = ""
    response_field: Optional[str] = None

    def __init__(
        self, page: Any, settings: Optional[SolverSettings] = None,
    ) -> None:
        self.page = page
        self.settings = settings or SolverSettings()

    async def locate(self) -> List[Widget]:
        """Run one detection pass.

        Raises:
            DetectionFailure: If any extraction step failed.
        """
        try:
            await page_tools.wait_for_vendor_client(
                self.page,
                self.script_selector,
                self.ready_expression,
                timeout=self.settings.vendor_wait_timeout,
                interval=self.settings.vendor_wait_interval,
            )
            await page_tools.wait_for_document_ready(
                self.page, self.settings.document_ready_timeout,
            )
            snapshot = await snapshot_frames(
                self.page, self.frame_query, self.response_field,
            )
            widgets = await self.extract(snapshot)
        except DetectionFailure:
            raise
        except (PlaywrightError, KeyError, TypeError, ValueError) as e:
            raise DetectionFailure(
                f"{self.vendor.value} detection failed: {e}"
            ) from e

        logger.info(
            "Located %d %s widget(s)", len(widgets), self.vendor.value,
        )
        if widgets and self.settings.visual_feedback:
            await page_tools.paint_frames(
                self.page,
                self.frame_selector(widgets),
                page_tools.BUSY_FILTER,
            )
        return widgets

    @abstractmethod
    async def extract(self, snapshot: PageSnapshot) -> List[Widget]:
        """Turn a frame snapshot into widgets with unique ids and sitekeys."""

    @abstractmethod
    def frame_selector(self, widgets: List[Widget]) -> str:
        """CSS selector of the frames belonging to *widgets*."""
