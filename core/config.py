"""Configuration for Captcha Autosolver.

Settings are powered by Pydantic v2.  :class:`SolverSettings` is loaded from
environment variables (prefix ``CAPTCHA_``) with ``.env`` file support;
:class:`ProviderConfig` describes which solution provider to call and with
which credential.

Key exports:
    SolverSettings: Pipeline behaviour (filtering, feedback, timeouts).
    ProviderConfig: Provider descriptor ``{id, token, fn, opts}``.
    PLACEHOLDER_TOKEN: Token value treated as "not configured".
"""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger: logging.Logger = logging.getLogger(__name__)

PLACEHOLDER_TOKEN = "XXXXXXX"
"""Token shipped in example configs; never a real credential."""


class ProviderConfig(BaseModel):
    """Descriptor of the solution provider to use.

    Attributes:
        id: Built-in provider identifier (see :mod:`core.registry`).
        token: API credential passed to the provider.
        fn: Optional custom async callable
            ``fn(widgets, token, opts) -> SolutionsResult`` used instead of
            a built-in provider.
        opts: Provider-specific options (for the built-in 2Captcha
            provider see :class:`solvers.twocaptcha.TwoCaptchaOptions`).
    """

    id: str = "2captcha"
    token: Optional[str] = None
    fn: Optional[Callable[..., Any]] = None
    opts: Dict[str, Any] = Field(default_factory=dict)

    def is_usable(self) -> bool:
        """Whether the descriptor can reach any provider at all."""
        if self.fn is not None:
            return True
        return bool(self.token) and self.token != PLACEHOLDER_TOKEN


class SolverSettings(BaseSettings):
    """Root configuration model.

    Section overview:
        * **Core** -- log level, visual feedback, fatal error mode.
        * **Filtering** -- which widget types are worth solving.
        * **Injection** -- opt-in for string expression callbacks.
        * **Waits** -- document readiness and vendor script polling.
        * **Provider** -- default provider id, credential and options.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPTCHA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    log_level: str = "INFO"
    # Tint located/solved frames in the page
    visual_feedback: bool = True
    # Raise the first error instead of returning it in the result
    throw_on_error: bool = False

    # Filtering
    solve_in_viewport_only: bool = False
    solve_score_based: bool = False
    solve_inactive_challenges: bool = False

    # Injection
    # Evaluating string callbacks runs page-supplied code; off by default
    allow_expression_callbacks: bool = False

    # Waits (seconds). None disables the document readiness timeout.
    document_ready_timeout: Optional[float] = 30.0
    vendor_wait_timeout: float = 10.0
    vendor_wait_interval: float = 0.2

    # Provider
    provider_id: str = "2captcha"
    provider_token: Optional[str] = None
    provider_opts: Dict[str, Any] = Field(default_factory=dict)

    def provider_config(self) -> ProviderConfig:
        """Build the provider descriptor from the flat settings fields."""
        return ProviderConfig(
            id=self.provider_id,
            token=self.provider_token,
            opts=dict(self.provider_opts),
        )
