"""hCaptcha solution injection via the widget's ``postMessage`` channel."""

import logging
from typing import List

from playwright.async_api import Error as PlaywrightError

from browser import scripts
from core.models import SolvedResult, Solution, Vendor, utcnow
from detection.hcaptcha import BASE_URL

from .base import SolutionInjector

logger = logging.getLogger(__name__)

# Seconds the page keeps the passed state
MESSAGE_EXPIRATION = 120


class HcaptchaInjector(SolutionInjector):
    """Broadcasts a ``challenge-passed`` event carrying the token."""

    vendor = Vendor.HCAPTCHA

    async def enter_solution(self, solution: Solution) -> SolvedResult:
        result = SolvedResult(id=solution.id, vendor=self.vendor)
        try:
            await self.page.evaluate(
                scripts.HCAPTCHA_CHALLENGE_PASSED,
                {
                    "id": solution.id,
                    "text": solution.text,
                    "expiration": MESSAGE_EXPIRATION,
                },
            )
        except PlaywrightError as e:
            result.error = str(e)
            return result

        result.is_solved = True
        result.solved_at = utcnow()
        return result

    def frame_selector(self, ids: List[str]) -> str:
        return ",".join(
            f"iframe[src*='{BASE_URL}'][src*='id={i}']" for i in ids
        )
