"""Tests for detection/classifier.py."""

from core.models import Vendor, Widget, WidgetDisplay, WidgetType
from detection.classifier import HcaptchaClassifier, RecaptchaClassifier
from detection.frames import FrameInfo, PageSnapshot, Rect

ANCHOR = "https://www.google.com/recaptcha/api2/anchor?ar=1&k=KEY&co=x&hl=en&size=normal"
INVISIBLE_ANCHOR = "https://www.google.com/recaptcha/api2/anchor?ar=1&k=KEY&co=x&hl=en&size=invisible"
ENTERPRISE_ANCHOR = "https://www.google.com/recaptcha/enterprise/anchor?ar=1&k=KEY&size=normal"
BFRAME = "https://www.google.com/recaptcha/api2/bframe?hl=en&k=KEY"

IN_VIEW = Rect(top=10, left=10, bottom=88, right=314)
OFF_VIEW = Rect(top=-9000, left=-9000, bottom=-8000, right=-8000)


def _widget(wid="abc123"):
    return Widget(id=wid, vendor=Vendor.RECAPTCHA, sitekey="KEY", url="https://example.com")


def _snapshot(*frames):
    return PageSnapshot(
        url="https://example.com",
        viewport_width=1280,
        viewport_height=720,
        frames=list(frames),
    )


class TestRecaptchaClassifier:

    def test_visible_checkbox(self):
        snapshot = _snapshot(
            FrameInfo(name="a-abc123", src=ANCHOR, visible=True, rect=IN_VIEW,
                      has_response_element=True),
        )
        widget = RecaptchaClassifier(snapshot).classify(_widget())
        assert widget.type == WidgetType.CHECKBOX
        assert widget.is_in_viewport is True
        assert widget.has_response_element is True
        assert widget.is_enterprise is False
        assert widget.is_invisible is False

    def test_enterprise_flag(self):
        snapshot = _snapshot(FrameInfo(name="a-abc123", src=ENTERPRISE_ANCHOR, rect=IN_VIEW))
        widget = RecaptchaClassifier(snapshot).classify(_widget())
        assert widget.is_enterprise is True

    def test_invisible_without_challenge_frame_is_score(self):
        snapshot = _snapshot(FrameInfo(name="a-abc123", src=INVISIBLE_ANCHOR, rect=OFF_VIEW))
        widget = RecaptchaClassifier(snapshot).classify(_widget())
        assert widget.type == WidgetType.SCORE
        assert widget.has_challenge_frame is False
        assert widget.has_active_challenge_popup is False

    def test_invisible_with_popup_in_viewport(self):
        snapshot = _snapshot(
            FrameInfo(name="a-abc123", src=INVISIBLE_ANCHOR, rect=OFF_VIEW),
            FrameInfo(name="c-abc123", src=BFRAME, rect=IN_VIEW),
        )
        widget = RecaptchaClassifier(snapshot).classify(_widget())
        assert widget.type == WidgetType.INVISIBLE
        assert widget.has_challenge_frame is True
        assert widget.has_active_challenge_popup is True

    def test_invisible_with_popup_out_of_viewport(self):
        snapshot = _snapshot(
            FrameInfo(name="a-abc123", src=INVISIBLE_ANCHOR, rect=OFF_VIEW),
            FrameInfo(name="c-abc123", src=BFRAME, rect=OFF_VIEW),
        )
        widget = RecaptchaClassifier(snapshot).classify(_widget())
        assert widget.type == WidgetType.INVISIBLE
        assert widget.has_active_challenge_popup is False

    def test_classification_is_deterministic(self):
        snapshot = _snapshot(
            FrameInfo(name="a-abc123", src=INVISIBLE_ANCHOR, rect=OFF_VIEW),
            FrameInfo(name="c-abc123", src=BFRAME, rect=IN_VIEW),
        )
        classifier = RecaptchaClassifier(snapshot)
        first = classifier.classify(_widget())
        second = classifier.classify(_widget())
        assert first == second

    def test_empty_id_has_no_flags(self):
        classifier = RecaptchaClassifier(_snapshot())
        assert classifier.is_enterprise("") is False
        assert classifier.is_in_viewport("") is False
        assert classifier.has_challenge_frame("") is False


class TestHcaptchaClassifier:

    def _hcaptcha_widget(self, size):
        return Widget(
            id="0abc", vendor=Vendor.HCAPTCHA, sitekey="KEY",
            display=WidgetDisplay(size=size),
        )

    def test_checkbox(self):
        frame = FrameInfo(name="h", src="x", rect=IN_VIEW)
        widget = HcaptchaClassifier(_snapshot(frame)).classify(
            self._hcaptcha_widget("normal"), frame,
        )
        assert widget.type == WidgetType.CHECKBOX
        assert widget.is_in_viewport is True

    def test_invisible_active_challenge(self):
        frame = FrameInfo(name="h", src="x", rect=IN_VIEW, in_visible_container=True)
        widget = HcaptchaClassifier(_snapshot(frame)).classify(
            self._hcaptcha_widget("invisible"), frame,
        )
        assert widget.type == WidgetType.INVISIBLE
        assert widget.has_challenge_frame is True
        assert widget.has_active_challenge_popup is True
