"""Transient data model shared by all pipeline stages.

None of these objects outlive a single orchestration call: widgets are
created by the locators, solutions by the provider, solved results by the
injectors, and all of them are dropped once
:meth:`core.orchestrator.CaptchaOrchestrator.solve_captchas` returns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Union


class Vendor(str, Enum):
    """Supported challenge families."""

    RECAPTCHA = "recaptcha"
    HCAPTCHA = "hcaptcha"


class WidgetType(str, Enum):
    """Interaction mode of a widget.

    Members:
        CHECKBOX: Regular "I'm not a robot" box.
        INVISIBLE: Invisible widget that opens a challenge popup.
        SCORE: Invisible widget evaluated without any challenge frame.
    """

    CHECKBOX = "checkbox"
    INVISIBLE = "invisible"
    SCORE = "score"


@dataclass(frozen=True)
class DirectCallback:
    """Callback registered as a live function in the page.

    Only the function name is known on the Python side; the injector calls
    the function through the vendor client registry.
    """

    name: str = "anonymous"


@dataclass(frozen=True)
class ExpressionCallback:
    """Callback registered as a string expression (e.g. ``"onSubmit"``).

    Executing it means evaluating arbitrary page-supplied code, so the
    injector only does so when ``allow_expression_callbacks`` is set.
    """

    expression: str


Callback = Union[DirectCallback, ExpressionCallback]


@dataclass
class WidgetDisplay:
    """Geometry and theme reported by the vendor, when available."""

    size: Optional[str] = None
    top: Optional[float] = None
    left: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    theme: Optional[str] = None


@dataclass
class Widget:
    """One detected challenge instance.

    Attributes:
        id: Identifier taken from the challenge frame name, unique per pass.
        vendor: Challenge family.
        sitekey: Public per-site key (always non-empty).
        url: Page URL at detection time.
        display: Geometry reported by the vendor.
        type: Derived interaction mode.
        callback: Registered success callback, if any.
        action: reCAPTCHA v3 / enterprise action value.
        data_s: Vendor-opaque per-site token (``data-s``).
        widget_id: Vendor registry's internal widget index.
        filtered: Set by the filter policy.
        filtered_reason: Name of the option that filtered the widget.
    """

    id: str
    vendor: Vendor
    sitekey: str
    url: str = ""
    display: WidgetDisplay = field(default_factory=WidgetDisplay)
    type: WidgetType = WidgetType.CHECKBOX
    callback: Optional[Callback] = None
    action: Optional[str] = None
    data_s: Optional[str] = None
    widget_id: Optional[Any] = None
    is_enterprise: bool = False
    is_invisible: bool = False
    is_in_viewport: bool = False
    has_active_challenge_popup: bool = False
    has_challenge_frame: bool = False
    has_response_element: bool = False
    filtered: bool = False
    filtered_reason: Optional[str] = None


@dataclass
class Solution:
    """A provider's answer for one widget."""

    id: Optional[str]
    vendor: Optional[Vendor]
    provider: str
    provider_captcha_id: Optional[str] = None
    text: Optional[str] = None
    request_at: Optional[datetime] = None
    response_at: Optional[datetime] = None
    duration: Optional[float] = None
    error: Optional[str] = None

    @property
    def has_solution(self) -> bool:
        return bool(self.text)


@dataclass
class SolvedResult:
    """Outcome of injecting one solution."""

    id: str
    vendor: Optional[Vendor]
    is_solved: bool = False
    response_element: bool = False
    response_callback: bool = False
    solved_at: Optional[datetime] = None
    error: Optional[str] = None


@dataclass
class DetectionResult:
    captchas: List[Widget] = field(default_factory=list)
    filtered: List[Widget] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SolutionsResult:
    solutions: List[Solution] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class InjectionResult:
    solved: List[SolvedResult] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SolveResult:
    """Combined result of a full detect/solve/inject run."""

    captchas: List[Widget] = field(default_factory=list)
    filtered: List[Widget] = field(default_factory=list)
    solutions: List[Solution] = field(default_factory=list)
    solved: List[SolvedResult] = field(default_factory=list)
    error: Optional[str] = None


def utcnow() -> datetime:
    """Timezone-aware current time used for all pipeline timestamps."""
    return datetime.now(timezone.utc)
