"""
Solvers module for Captcha Autosolver.

Solution providers turn located widgets into solved tokens.  The pipeline
never solves anything itself; it delegates to a provider.

Submodules:
    base: ``SolutionProvider`` contract.
    twocaptcha: ``TwoCaptchaProvider`` -- built-in submit/poll/retry client
        for the 2Captcha text protocol, with ``TwoCaptchaOptions``.
"""

from .base import SolutionProvider
from .twocaptcha import TwoCaptchaOptions, TwoCaptchaProvider

__all__ = ["SolutionProvider", "TwoCaptchaOptions", "TwoCaptchaProvider"]
