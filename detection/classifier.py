"""Widget classification.

Derives the interaction type and the visibility/activity flags of located
widgets from a :class:`~detection.frames.PageSnapshot`.  Classification is
deterministic: the same snapshot always yields the same flags.
"""

import logging
from typing import List, Optional

from core.models import Widget, WidgetType

from .frames import FrameInfo, FrameMatcher, PageSnapshot

logger = logging.getLogger(__name__)


class RecaptchaClassifier:
    """Flags and type derivation for reCAPTCHA widgets."""

    def __init__(
        self, snapshot: PageSnapshot, matcher: Optional[FrameMatcher] = None,
    ) -> None:
        self.snapshot = snapshot
        self.matcher = matcher or FrameMatcher()

    def _frames_for(self, widget_id: str, *prefixes: str) -> List[FrameInfo]:
        names = tuple(f"{p}-{widget_id}" for p in prefixes)
        return [f for f in self.snapshot.frames if f.name.startswith(names)]

    def is_enterprise(self, widget_id: str) -> bool:
        if not widget_id:
            return False
        return any(
            "/recaptcha/" in f.src and "/enterprise/" in f.src
            for f in self._frames_for(widget_id, "a", "c")
        )

    def is_invisible(self, widget_id: str) -> bool:
        if not widget_id:
            return False
        return any(
            f.name == f"a-{widget_id}"
            and "/recaptcha/" in f.src
            and "/anchor" in f.src
            and "&size=invisible" in f.src
            for f in self.snapshot.frames
        )

    def has_active_challenge_popup(self, widget_id: str) -> bool:
        """Challenge frame exists and lies within the viewport."""
        if not widget_id:
            return False
        for f in self.snapshot.frames:
            if (
                f.name == f"c-{widget_id}"
                and "/recaptcha/" in f.src
                and "/bframe" in f.src
            ):
                return self.snapshot.in_viewport(f)
        return False

    def has_challenge_frame(self, widget_id: str) -> bool:
        """Without a challenge frame an invisible widget is score based."""
        if not widget_id:
            return False
        return bool(self.matcher.find(self.snapshot, "bframe", widget_id))

    def is_in_viewport(self, widget_id: str) -> bool:
        if not widget_id:
            return False
        for f in self._frames_for(widget_id, "a", "c"):
            if "recaptcha" in f.src:
                return self.snapshot.in_viewport(f)
        return False

    def has_response_element(self, widget_id: str) -> bool:
        anchors = self.matcher.find(self.snapshot, "anchor", widget_id)
        return bool(anchors) and anchors[0].has_response_element

    def classify(self, widget: Widget) -> Widget:
        wid = widget.id
        widget.has_response_element = self.has_response_element(wid)
        widget.is_enterprise = self.is_enterprise(wid)
        widget.is_in_viewport = self.is_in_viewport(wid)
        widget.is_invisible = self.is_invisible(wid)
        widget.type = WidgetType.CHECKBOX
        if widget.is_invisible:
            widget.type = WidgetType.INVISIBLE
            widget.has_active_challenge_popup = (
                self.has_active_challenge_popup(wid)
            )
            widget.has_challenge_frame = self.has_challenge_frame(wid)
            if not widget.has_challenge_frame:
                widget.type = WidgetType.SCORE
        logger.debug(
            "Classified %s as %s (enterprise=%s, in_viewport=%s)",
            wid, widget.type.value, widget.is_enterprise,
            widget.is_in_viewport,
        )
        return widget


class HcaptchaClassifier:
    """Flags for hCaptcha widgets, derived from the frame they came from.

    Invisible hCaptcha widgets are only ever located through their open
    challenge frame, so they always count as having an active popup.
    """

    def __init__(self, snapshot: PageSnapshot) -> None:
        self.snapshot = snapshot

    def classify(self, widget: Widget, frame: FrameInfo) -> Widget:
        widget.is_in_viewport = self.snapshot.in_viewport(frame)
        widget.is_invisible = widget.display.size == "invisible"
        if widget.is_invisible:
            widget.type = WidgetType.INVISIBLE
            widget.has_challenge_frame = True
            widget.has_active_challenge_popup = frame.in_visible_container
        else:
            widget.type = WidgetType.CHECKBOX
        return widget
