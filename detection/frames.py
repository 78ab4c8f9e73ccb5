"""Challenge frame facts and matching.

The page is scanned once per pass into a :class:`PageSnapshot` (plain data
describing every candidate iframe).  Matching, id extraction and geometry
checks then run in Python against the snapshot.

reCAPTCHA is deployed from several mirrors, so recognised frame sources are
generated as the cross product of protocols, hosts and path variants.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from browser import scripts

logger = logging.getLogger(__name__)

PROTOCOLS = ("http", "https")
RECAPTCHA_HOSTS = (
    "google.com",
    "www.google.com",
    "recaptcha.net",
    "www.recaptcha.net",
)
RECAPTCHA_PATHS: Dict[str, Sequence[str]] = {
    "anchor": ("/recaptcha/api2/anchor", "/recaptcha/enterprise/anchor"),
    "bframe": ("/recaptcha/api2/bframe", "/recaptcha/enterprise/bframe"),
}
# Anchor (checkbox) frames are named ``a-<id>``, challenge frames ``c-<id>``
NAME_PREFIXES = {"anchor": "a", "bframe": "c"}


@dataclass
class Rect:
    top: float = 0.0
    left: float = 0.0
    bottom: float = 0.0
    right: float = 0.0


@dataclass
class FrameInfo:
    """Facts about one iframe as seen by the page.

    Attributes:
        name: ``name`` attribute (e.g. ``"a-841543e13666"``).
        src: ``src`` attribute.
        visible: Non-zero rendered box or non-empty client rects.
        rect: Bounding client rect.
        widget_id_attr: ``data-hcaptcha-widget-id`` attribute, if any.
        in_visible_container: Inside a ``div`` styled ``visible``.
        has_response_element: A response field exists in the enclosing
            form (or page-wide when there is no form).
    """

    name: str = ""
    src: str = ""
    visible: bool = False
    rect: Optional[Rect] = None
    widget_id_attr: Optional[str] = None
    in_visible_container: bool = False
    has_response_element: bool = False

    @property
    def widget_id(self) -> str:
        return widget_id_from_name(self.name)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "FrameInfo":
        rect = raw.get("rect")
        return cls(
            name=raw.get("name") or "",
            src=raw.get("src") or "",
            visible=bool(raw.get("visible")),
            rect=Rect(**rect) if rect else None,
            widget_id_attr=raw.get("widgetIdAttr"),
            in_visible_container=bool(raw.get("inVisibleContainer")),
            has_response_element=bool(raw.get("hasResponseElement")),
        )


@dataclass
class PageSnapshot:
    """All candidate frames of a page plus its viewport size."""

    url: str = ""
    viewport_width: float = 0.0
    viewport_height: float = 0.0
    frames: List[FrameInfo] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "PageSnapshot":
        if not raw:
            return cls()
        viewport = raw.get("viewport") or {}
        return cls(
            url=raw.get("url") or "",
            viewport_width=float(viewport.get("width") or 0),
            viewport_height=float(viewport.get("height") or 0),
            frames=[FrameInfo.from_raw(f) for f in raw.get("frames") or []],
        )

    def in_viewport(self, frame: FrameInfo) -> bool:
        """Whether the frame's bounding box lies fully inside the viewport.

        Bounding-box based on purpose: challenge popups sit in a hidden
        container while the iframe itself still occupies layout.
        """
        rect = frame.rect
        if rect is None:
            return False
        return (
            rect.top >= 0
            and rect.left >= 0
            and rect.bottom <= self.viewport_height
            and rect.right <= self.viewport_width
        )


def generate_frame_sources(
    protocols: Iterable[str] = PROTOCOLS,
    hosts: Iterable[str] = RECAPTCHA_HOSTS,
    paths: Optional[Dict[str, Sequence[str]]] = None,
) -> Dict[str, List[str]]:
    """Build every known frame source URL prefix per frame kind."""
    paths = paths or RECAPTCHA_PATHS
    origins = [f"{proto}://{host}" for proto in protocols for host in hosts]
    return {
        kind: [f"{origin}{path}" for origin in origins for path in variants]
        for kind, variants in paths.items()
    }


def widget_id_from_name(name: Optional[str]) -> str:
    """Return the suffix after the last hyphen (``a-841543e13666`` -> ``841543e13666``)."""
    if not name:
        return ""
    return name.split("-")[-1]


def unique(ids: Iterable[str]) -> List[str]:
    """Deduplicate while preserving first-seen order."""
    return list(dict.fromkeys(ids))


class FrameMatcher:
    """Recognises anchor/challenge frames against the generated sources."""

    def __init__(self, sources: Optional[Dict[str, List[str]]] = None) -> None:
        self.sources = sources or generate_frame_sources()

    def matches(self, frame: FrameInfo, kind: str, widget_id: str = "") -> bool:
        prefix = f"{NAME_PREFIXES[kind]}-{widget_id}"
        if not frame.name.startswith(prefix):
            return False
        return any(frame.src.startswith(src) for src in self.sources[kind])

    def find(
        self, snapshot: PageSnapshot, kind: str, widget_id: str = "",
    ) -> List[FrameInfo]:
        return [
            f for f in snapshot.frames if self.matches(f, kind, widget_id)
        ]

    def selector_for_id(self, kind: str, widget_id: str = "") -> str:
        """CSS selector equivalent of :meth:`matches` for page-side use."""
        prefix = NAME_PREFIXES[kind]
        return ",".join(
            f"iframe[src^='{src}'][name^=\"{prefix}-{widget_id}\"]"
            for src in self.sources[kind]
        )


async def snapshot_frames(
    page: Any, selector: str, response_field: Optional[str] = None,
) -> PageSnapshot:
    """Collect facts about every iframe matching *selector*."""
    raw = await page.evaluate(
        scripts.FRAME_SNAPSHOT,
        {"selector": selector, "responseField": response_field},
    )
    snapshot = PageSnapshot.from_raw(raw)
    logger.debug(
        "Snapshot of %s: %d frame(s)", snapshot.url, len(snapshot.frames),
    )
    return snapshot
