"""hCaptcha widget locator.

hCaptcha exposes no usable client registry; everything needed (widget id,
sitekey, size) is encoded in the frame URL, partly after a ``#``.
"""

import logging
from typing import Dict, List
from urllib.parse import parse_qs, urlsplit

from browser import scripts
from core.models import Vendor, Widget, WidgetDisplay

from .base import WidgetLocator
from .classifier import HcaptchaClassifier
from .frames import FrameInfo, PageSnapshot

logger = logging.getLogger(__name__)

BASE_URL = "assets.hcaptcha.com/captcha/v1/"
SCRIPT_SELECTOR = 'script[src*="//hcaptcha.com/1/api.js"]'


def frame_params(src: str) -> Dict[str, str]:
    """Query parameters of a frame URL, treating ``.html#`` as ``.html?``."""
    query = urlsplit(src.replace(".html#", ".html?")).query
    return {key: values[0] for key, values in parse_qs(query).items()}


class HcaptchaLocator(WidgetLocator):
    """Locates hCaptcha checkboxes and open invisible challenges."""

    vendor = Vendor.HCAPTCHA
    script_selector = SCRIPT_SELECTOR
    ready_expression = scripts.HCAPTCHA_CLIENT_READY
    frame_query = f"iframe[src*='{BASE_URL}']"

    @staticmethod
    def regular_checkboxes(snapshot: PageSnapshot) -> List[FrameInfo]:
        return [
            f for f in snapshot.frames
            if f.widget_id_attr is not None and "invisible" not in f.src
        ]

    @staticmethod
    def active_challenges(snapshot: PageSnapshot) -> List[FrameInfo]:
        return [
            f for f in snapshot.frames
            if f.in_visible_container
            and "hcaptcha-challenge.html" in f.src
            and "invisible" in f.src
        ]

    async def extract(self, snapshot: PageSnapshot) -> List[Widget]:
        frames = (
            self.regular_checkboxes(snapshot)
            + self.active_challenges(snapshot)
        )
        classifier = HcaptchaClassifier(snapshot)
        located: Dict[str, Widget] = {}
        for frame in frames:
            params = frame_params(frame.src)
            wid = params.get("id")
            sitekey = (params.get("sitekey") or "").strip()
            if not wid or not sitekey:
                logger.debug("Skipping hCaptcha frame without id/sitekey")
                continue
            if wid in located:
                continue
            widget = Widget(
                id=wid,
                vendor=self.vendor,
                sitekey=sitekey,
                url=snapshot.url,
                display=WidgetDisplay(size=params.get("size") or "normal"),
            )
            located[wid] = classifier.classify(widget, frame)
        return list(located.values())

    def frame_selector(self, widgets: List[Widget]) -> str:
        return ",".join(
            f"iframe[src*='{BASE_URL}'][src*='id={w.id}']" for w in widgets
        )
