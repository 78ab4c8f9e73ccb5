"""Exception taxonomy for the captcha pipeline.

Per-widget failures are normally carried as strings on
:class:`~core.models.Solution` / :class:`~core.models.SolvedResult`.  The
exceptions below are raised when a whole stage fails, and are what the
orchestrator re-raises when ``throw_on_error`` is enabled.
"""

from typing import Optional


class CaptchaError(Exception):
    """Base class for all pipeline errors."""


class DetectionFailure(CaptchaError):
    """Locating or extracting widgets from the page failed."""


class NoSolutionsProvided(CaptchaError):
    """The injection stage was called without any usable solution."""

    def __init__(self, message: str = "No solutions provided") -> None:
        super().__init__(message)


class ProviderNotConfigured(CaptchaError):
    """No usable solution provider was supplied."""


class ProviderError(CaptchaError):
    """A solution provider failed to return a token.

    Attributes:
        code: Raw error code reported by the remote service, if any.
    """

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class SubmissionError(ProviderError):
    """The provider rejected the job submission."""


class PollError(ProviderError):
    """Polling for a job result returned an error."""


class RetriesExhausted(ProviderError):
    """Every submit/poll cycle for a widget failed."""


class InjectionFailure(CaptchaError):
    """Writing a solution back into the page failed."""
