"""Pipeline driver for Captcha Autosolver.

:class:`CaptchaOrchestrator` sequences the four stages for one page:

1. **Detect** -- run the reCAPTCHA and hCaptcha locators, then the
   :class:`~detection.filters.FilterPolicy`.
2. **Solve** -- hand the unfiltered widgets to the configured solution
   provider (skipped when nothing is left to solve).
3. **Inject** -- write returned solutions that belong to this pass back
   into the page.
4. **Aggregate** -- collect everything into a :class:`SolveResult` whose
   ``error`` is the first error of any stage.

By default every stage is best effort and failures become error strings on
the result.  With ``throw_on_error`` the first failure is raised as the
typed :mod:`core.errors` exception of its stage and later stages are
skipped.

Each stage is also exposed on its own (:meth:`find_captchas`,
:meth:`get_solutions`, :meth:`enter_solutions`).
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from core.config import ProviderConfig, SolverSettings
from core.errors import (
    CaptchaError,
    DetectionFailure,
    InjectionFailure,
    NoSolutionsProvided,
    ProviderError,
    ProviderNotConfigured,
)
from core.models import (
    DetectionResult,
    InjectionResult,
    Solution,
    SolutionsResult,
    SolvedResult,
    SolveResult,
    Widget,
)
from core.registry import get_provider_class
from detection.filters import FilterPolicy
from detection.hcaptcha import HcaptchaLocator
from detection.recaptcha import RecaptchaLocator
from injection.hcaptcha import HcaptchaInjector
from injection.recaptcha import RecaptchaInjector

logger = logging.getLogger(__name__)

R = TypeVar("R")
SolveFn = Callable[..., Awaitable[SolutionsResult]]

LOCATORS = (RecaptchaLocator, HcaptchaLocator)
INJECTORS = (RecaptchaInjector, HcaptchaInjector)


def accepted_solutions(solutions: Sequence[Solution]) -> List[Solution]:
    """Solutions worth injecting: error-free, with a token, first per id."""
    accepted: Dict[str, Solution] = {}
    for solution in solutions:
        if not solution.id or solution.error or not solution.has_solution:
            continue
        accepted.setdefault(solution.id, solution)
    return list(accepted.values())


class CaptchaOrchestrator:
    """Detects, solves and injects captchas in a page.

    Example::

        orchestrator = CaptchaOrchestrator(
            SolverSettings(),
            ProviderConfig(id="2captcha", token=api_key),
        )
        result = await orchestrator.solve_captchas(page)
    """

    def __init__(
        self,
        settings: Optional[SolverSettings] = None,
        provider: Optional[ProviderConfig] = None,
    ) -> None:
        """Initialise the orchestrator.

        Args:
            settings: Pipeline behaviour; loaded from the environment when
                omitted.
            provider: Provider descriptor; defaults to the one described by
                ``settings.provider_*``.
        """
        self.settings = settings or SolverSettings()
        self.provider = provider or self.settings.provider_config()
        self.policy = FilterPolicy.from_settings(self.settings)

    def _fail(self, result: R, error: CaptchaError) -> R:
        """Raise *error* in fatal mode, otherwise record it on *result*."""
        if self.settings.throw_on_error:
            raise error
        result.error = str(error)
        return result

    # ------------------------------------------------------------------
    # Stage 1: detection
    # ------------------------------------------------------------------
    async def find_captchas(self, page: Any) -> DetectionResult:
        """Locate and filter the widgets of *page*.

        A failing locator contributes no widgets for its vendor; the other
        vendor's pass still runs unless ``throw_on_error`` is set.
        """
        result = DetectionResult()
        widgets: List[Widget] = []
        for locator_cls in LOCATORS:
            try:
                widgets.extend(await locator_cls(page, self.settings).locate())
            except DetectionFailure as e:
                logger.error("Captcha detection failed: %s", e)
                if self.settings.throw_on_error:
                    raise
                result.error = result.error or str(e)

        partition = self.policy.apply(widgets)
        result.captchas = partition.captchas
        result.filtered = partition.filtered
        logger.info(
            "Detection: %d captcha(s) to solve, %d filtered",
            len(result.captchas), len(result.filtered),
        )
        return result

    # ------------------------------------------------------------------
    # Stage 2: solutions
    # ------------------------------------------------------------------
    def _resolve_provider(self, config: ProviderConfig) -> SolveFn:
        if not config.is_usable():
            raise ProviderNotConfigured(
                "No usable solution provider: supply a token or a custom fn"
            )
        if config.fn is not None:
            return config.fn
        provider_cls = get_provider_class(config.id)
        if provider_cls is None:
            raise ProviderNotConfigured(
                f"Cannot find provider '{config.id}', please check the id"
            )
        return provider_cls().solve

    async def get_solutions(
        self,
        widgets: Sequence[Widget],
        provider: Optional[ProviderConfig] = None,
    ) -> SolutionsResult:
        """Request solutions for *widgets* from the configured provider."""
        config = provider or self.provider
        try:
            solve = self._resolve_provider(config)
        except ProviderNotConfigured as e:
            logger.error("%s", e)
            return self._fail(SolutionsResult(), e)

        logger.info(
            "Requesting %d solution(s) from %s",
            len(widgets), "custom provider" if config.fn else config.id,
        )
        try:
            result = await solve(list(widgets), config.token, dict(config.opts))
        except CaptchaError as e:
            return self._fail(SolutionsResult(), e)
        except Exception as e:
            logger.exception("Provider %s crashed", config.id)
            return self._fail(
                SolutionsResult(), ProviderError(f"Provider failed: {e}"),
            )

        result.error = result.error or next(
            (s.error for s in result.solutions if s.error), None,
        )
        if result.error:
            logger.warning("Provider returned error: %s", result.error)
            if self.settings.throw_on_error:
                raise ProviderError(result.error)
        return result

    # ------------------------------------------------------------------
    # Stage 3: injection
    # ------------------------------------------------------------------
    async def enter_solutions(
        self, page: Any, solutions: Sequence[Solution],
    ) -> InjectionResult:
        """Inject every accepted solution, grouped by vendor."""
        result = InjectionResult()
        accepted = accepted_solutions(solutions)
        if not accepted:
            return self._fail(result, NoSolutionsProvided())

        for injector_cls in INJECTORS:
            batch = [s for s in accepted if s.vendor == injector_cls.vendor]
            if batch:
                injector = injector_cls(page, self.settings)
                result.solved.extend(await injector.enter(batch))

        known = {injector_cls.vendor for injector_cls in INJECTORS}
        for solution in accepted:
            if solution.vendor not in known:
                result.solved.append(SolvedResult(
                    id=solution.id,
                    vendor=solution.vendor,
                    error=f"Unknown vendor for solution '{solution.id}'",
                ))

        error = next((r.error for r in result.solved if r.error), None)
        if error:
            return self._fail(result, InjectionFailure(error))
        logger.info("Injected %d solution(s)", len(result.solved))
        return result

    # ------------------------------------------------------------------
    # Full pipeline
    # ------------------------------------------------------------------
    async def solve_captchas(self, page: Any) -> SolveResult:
        """Run detection, solving and injection for *page*."""
        result = SolveResult()
        errors: List[Optional[str]] = []

        detection = await self.find_captchas(page)
        result.captchas = detection.captchas
        result.filtered = detection.filtered
        errors.append(detection.error)

        if detection.captchas:
            solutions = await self.get_solutions(detection.captchas)
            result.solutions = solutions.solutions
            errors.append(solutions.error)

            ids = {w.id for w in detection.captchas}
            injection = await self.enter_solutions(
                page, [s for s in solutions.solutions if s.id in ids],
            )
            result.solved = injection.solved
            errors.append(injection.error)
        else:
            logger.debug("No captchas to solve, skipping provider")

        result.error = next((e for e in errors if e), None)
        return result
