"""reCAPTCHA solution injection.

For each solution the client registry is re-read, any open challenge popup
is hidden, the token is written into the ``g-recaptcha-response`` field and
the widget's success callback is invoked.

Callbacks come in two flavours (see :data:`core.models.Callback`):

* :class:`~core.models.DirectCallback` -- a live function in the registry,
  called in place by the injection script.
* :class:`~core.models.ExpressionCallback` -- a string naming code to
  evaluate.  Evaluating it runs arbitrary page-supplied JavaScript, so it
  only happens when ``allow_expression_callbacks`` is enabled; otherwise
  the callback is skipped with a warning.
"""

import logging
from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from browser import scripts
from core.config import SolverSettings
from core.models import (
    DirectCallback,
    ExpressionCallback,
    SolvedResult,
    Solution,
    Vendor,
    utcnow,
)
from detection.frames import FrameMatcher
from detection.recaptcha import ClientInfo, GrecaptchaClientRegistry

from .base import SolutionInjector

logger = logging.getLogger(__name__)


class RecaptchaInjector(SolutionInjector):
    """Injects reCAPTCHA tokens."""

    vendor = Vendor.RECAPTCHA

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
        self.clients: Dict[str, ClientInfo] = {}

    async def prepare(self) -> None:
        try:
            self.clients = await self.registry.list_active_clients()
        except PlaywrightError as e:
            logger.warning("Reading reCAPTCHA clients failed: %s", e)
            self.clients = {}

    async def enter_solution(self, solution: Solution) -> SolvedResult:
        result = SolvedResult(id=solution.id, vendor=self.vendor)
        info = self.clients.get(solution.id)
        if info is None:
            result.error = "Client not found"
            return result

        try:
            outcome = await self.page.evaluate(
                scripts.INJECT_RECAPTCHA_SOLUTION,
                {
                    "id": solution.id,
                    "text": solution.text,
                    "anchorSelector": self.matcher.selector_for_id("anchor", solution.id),
                    "bframeSelector": self.matcher.selector_for_id("bframe", solution.id),
                    "invokeDirectCallback": isinstance(info.callback, DirectCallback),
                },
            ) or {}
        except PlaywrightError as e:
            result.error = str(e)
            return result

        if not outcome.get("frameFound"):
            result.error = f"Iframe not found for id '{solution.id}'"
            return result

        result.response_element = bool(outcome.get("responseElement"))
        result.response_callback = bool(outcome.get("responseCallback"))
        result.error = outcome.get("error") or None

        if isinstance(info.callback, ExpressionCallback):
            await self._run_expression_callback(info.callback, solution, result)

        result.is_solved = result.response_element or result.response_callback
        if result.is_solved:
            result.solved_at = utcnow()
        return result

    async def _run_expression_callback(
        self,
        callback: ExpressionCallback,
        solution: Solution,
        result: SolvedResult,
    ) -> None:
        if not self.settings.allow_expression_callbacks:
            logger.warning(
                "Skipping expression callback %r for %s "
                "(allow_expression_callbacks is off)",
                callback.expression, solution.id,
            )
            return
        try:
            await self.page.evaluate(
                scripts.EVALUATE_EXPRESSION_CALLBACK,
                {"expression": callback.expression, "text": solution.text},
            )
        except PlaywrightError as e:
            result.error = result.error or str(e)
            return
        result.response_callback = True

    def frame_selector(self, ids: List[str]) -> str:
        return ",".join(self.matcher.selector_for_id("anchor", i) for i in ids)
