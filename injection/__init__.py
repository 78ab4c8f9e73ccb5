"""
Injection module for Captcha Autosolver.

Writes solved tokens back into the page so the widget registers as passed.

Submodules:
    base: ``SolutionInjector`` contract and visual feedback.
    recaptcha: Response field write plus callback invocation.
    hcaptcha: ``challenge-passed`` message broadcast.
"""

from .base import SolutionInjector
from .hcaptcha import HcaptchaInjector
from .recaptcha import RecaptchaInjector

__all__ = ["HcaptchaInjector", "RecaptchaInjector", "SolutionInjector"]
