"""reCAPTCHA widget locator.

Ids come from the anchor frames' ``name`` attributes; configuration
(sitekey, callback, action, ``data-s``, geometry) comes from the vendor's
client registry, read through :class:`GrecaptchaClientRegistry`.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from browser import scripts
from core.config import SolverSettings
from core.models import (
    Callback,
    DirectCallback,
    ExpressionCallback,
    Vendor,
    Widget,
    WidgetDisplay,
)

from .base import WidgetLocator
from .classifier import RecaptchaClassifier
from .frames import FrameMatcher, PageSnapshot, unique

logger = logging.getLogger(__name__)

SCRIPT_SELECTOR = (
    'script[src*="/recaptcha/api.js"], '
    'script[src*="/recaptcha/enterprise.js"]'
)
RESPONSE_FIELD = "g-recaptcha-response"
DISPLAY_FIELDS = ("size", "top", "left", "width", "height", "theme")


def parse_callback(value: Any) -> Optional[Callback]:
    """Map a serialised registry callback onto the :data:`Callback` variant.

    Functions arrive as ``{"__function__": name}``; strings are expressions
    to be evaluated in the page.
    """
    if isinstance(value, dict) and "__function__" in value:
        return DirectCallback(value["__function__"] or "anonymous")
    if isinstance(value, str) and value:
        return ExpressionCallback(value)
    return None


@dataclass
class ClientInfo:
    """Configuration of one registered reCAPTCHA client."""

    id: str
    sitekey: Optional[str] = None
    callback: Optional[Callback] = None
    action: Optional[str] = None
    data_s: Optional[str] = None
    widget_id: Optional[Any] = None
    display: WidgetDisplay = field(default_factory=WidgetDisplay)

    @classmethod
    def from_flat(cls, widget_id: str, flat: Dict[str, Any]) -> "ClientInfo":
        sitekey = flat.get("sitekey")
        if sitekey is not None:
            sitekey = str(sitekey).strip()
        return cls(
            id=widget_id,
            sitekey=sitekey or None,
            callback=parse_callback(flat.get("callback")),
            action=flat.get("action") or None,
            data_s=flat.get("s") or None,
            widget_id=flat.get("widgetId"),
            display=WidgetDisplay(
                **{name: flat.get(name) for name in DISPLAY_FIELDS}
            ),
        )


class GrecaptchaClientRegistry:
    """Adapter over ``window.___grecaptcha_cfg.clients``.

    The raw registry is an internal, circular object graph; the page-side
    script flattens it and only returns serialisable values, so nothing
    outside this class depends on its shape.
    """

    def __init__(self, page: Any) -> None:
        self.page = page

    async def list_active_clients(self) -> Dict[str, ClientInfo]:
        """Return client configuration keyed by widget id."""
        raw = await self.page.evaluate(scripts.LIST_RECAPTCHA_CLIENTS)
        if not raw:
            return {}
        return {
            wid: ClientInfo.from_flat(wid, flat or {})
            for wid, flat in raw.items()
        }


class RecaptchaLocator(WidgetLocator):
    """Locates reCAPTCHA checkbox, invisible and score widgets."""

    vendor = Vendor.RECAPTCHA
    script_selector = SCRIPT_SELECTOR
    ready_expression = scripts.RECAPTCHA_CLIENT_READY
    frame_query = "iframe[src*='recaptcha']"
    response_field = RESPONSE_FIELD

    def __init__(
        self,
        page: Any,
        settings: Optional[SolverSettings] = None,
        registry: Optional[GrecaptchaClientRegistry] = None,
        matcher: Optional[FrameMatcher] = None,
    ) -> None:
        super().__init__(page, settings)
        self.registry = registry or GrecaptchaClientRegistry(page)
        self.matcher = matcher or FrameMatcher()

    def visible_ids(self, snapshot: PageSnapshot) -> List[str]:
        return [
            f.widget_id
            for f in self.matcher.find(snapshot, "anchor")
            if f.visible and f.name and f.widget_id
        ]

    def invisible_ids(self, snapshot: PageSnapshot) -> List[str]:
        """Anchors (visible or not) whose widget has a challenge frame."""
        return [
            f.widget_id
            for f in self.matcher.find(snapshot, "anchor")
            if f.name
            and f.widget_id
            and self.matcher.find(snapshot, "bframe", f.widget_id)
        ]

    def collect_ids(self, snapshot: PageSnapshot) -> List[str]:
        return unique(self.visible_ids(snapshot) + self.invisible_ids(snapshot))

    async def extract(self, snapshot: PageSnapshot) -> List[Widget]:
        ids = self.collect_ids(snapshot)
        logger.debug("reCAPTCHA frame ids: %s", ids)
        if not ids:
            return []

        clients = await self.registry.list_active_clients()
        if not clients:
            logger.debug("No reCAPTCHA clients registered on %s", snapshot.url)
            return []

        classifier = RecaptchaClassifier(snapshot, self.matcher)
        widgets: List[Widget] = []
        for wid in ids:
            info = clients.get(wid)
            if info is None or not info.sitekey:
                logger.debug("Skipping reCAPTCHA %s: no client/sitekey", wid)
                continue
            widget = Widget(
                id=wid,
                vendor=self.vendor,
                sitekey=info.sitekey,
                url=snapshot.url,
                display=info.display,
                callback=info.callback,
                action=info.action,
                data_s=info.data_s,
                widget_id=info.widget_id,
            )
            widgets.append(classifier.classify(widget))
        return widgets

    def frame_selector(self, widgets: List[Widget]) -> str:
        return ",".join(
            self.matcher.selector_for_id("anchor", w.id) for w in widgets
        )
