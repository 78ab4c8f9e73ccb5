"""Common injector contract."""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from browser import page_tools
from core.config import SolverSettings
from core.models import SolvedResult, Solution, Vendor

logger = logging.getLogger(__name__)


class SolutionInjector(ABC):
    """Writes accepted solutions of one vendor back into a page.

    Solutions are injected one page script at a time, in order.  Failures
    are recorded on the affected :class:`SolvedResult` and never stop the
    remaining solutions.
    """

    vendor: Vendor

    def __init__(
        self, page: Any, settings: Optional[SolverSettings] = None,
    ) -> None:
        self.page = page
        self.settings = settings or SolverSettings()

    async def enter(self, solutions: Sequence[Solution]) -> List[SolvedResult]:
        """Inject *solutions* and return one result per solution."""
        await self.prepare()
        results: List[SolvedResult] = []
        for solution in solutions:
            result = await self.enter_solution(solution)
            if result.is_solved:
                logger.info("Injected %s solution for %s", self.vendor.value, solution.id)
            else:
                logger.warning(
                    "Could not inject %s solution for %s: %s",
                    self.vendor.value, solution.id, result.error,
                )
            results.append(result)

        solved = [r for r in results if r.is_solved]
        if solved and self.settings.visual_feedback:
            await page_tools.paint_frames(
                self.page,
                self.frame_selector([r.id for r in solved]),
                page_tools.SOLVED_FILTER,
            )
        return results

    async def prepare(self) -> None:
        """Hook run once before the first solution is injected."""

    @abstractmethod
    async def enter_solution(self, solution: Solution) -> SolvedResult:
        """Inject a single solution."""

    @abstractmethod
    def frame_selector(self, ids: List[str]) -> str:
        """CSS selector of the frames belonging to widget *ids*."""
