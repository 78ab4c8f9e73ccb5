"""
Detection module for Captcha Autosolver.

Finds challenge widgets in a page, classifies them and applies the filter
policy.

Submodules:
    frames: Frame snapshots, frame source generation and matching.
    base: ``WidgetLocator`` contract shared by the vendor locators.
    recaptcha: ``RecaptchaLocator`` and the client registry adapter.
    hcaptcha: ``HcaptchaLocator`` reading configuration from frame URLs.
    classifier: Interaction type and visibility/activity flags.
    filters: ``FilterPolicy`` partitioning widgets into solve/skip sets.
"""

from .filters import FilterPolicy, FilterResult
from .hcaptcha import HcaptchaLocator
from .recaptcha import GrecaptchaClientRegistry, RecaptchaLocator

__all__ = [
    "FilterPolicy",
    "FilterResult",
    "GrecaptchaClientRegistry",
    "HcaptchaLocator",
    "RecaptchaLocator",
]
