"""Built-in 2Captcha solution provider.

Implements the legacy ``in.php`` / ``res.php`` text protocol:

    * **Submit** -- ``POST in.php`` answers ``OK|<job-id>`` or an error code.
    * **Poll** -- ``GET res.php?action=get`` until the body is no longer
      ``CAPCHA_NOT_READY``; answers ``OK|<token>`` or an error code.
    * **Report** -- ``GET res.php?action=reportbad`` (fire-and-forget; the
      calls still in flight are awaited before :meth:`solve` returns).

Each widget runs its own submit/poll/retry cycle; all cycles run
concurrently and share nothing but the HTTP session.  Credential and
polling options are per-call values, so one provider instance can serve
several accounts at once.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

import aiohttp
from pydantic import BaseModel, ConfigDict, Field

from core.errors import (
    PollError,
    ProviderError,
    RetriesExhausted,
    SubmissionError,
)
from core.models import Solution, SolutionsResult, Vendor, Widget, utcnow

from .base import SolutionProvider

logger = logging.getLogger(__name__)

PROVIDER_ID = "2captcha"
SUBMIT_URL = "http://2captcha.com/in.php"
STATUS_URL = "http://2captcha.com/res.php"
SOFT_ID = "2589"
NOT_READY = "CAPCHA_NOT_READY"
TOO_MANY_FAILURES = "CAPTCHA_FAILED_TOO_MANY_TIMES"

# vendor -> (API method, site key form field)
METHODS: Dict[Vendor, Tuple[str, str]] = {
    Vendor.RECAPTCHA: ("userrecaptcha", "googlekey"),
    Vendor.HCAPTCHA: ("hcaptcha", "sitekey"),
}


class TwoCaptchaOptions(BaseModel):
    """Per-call options of the 2Captcha provider.

    Attributes:
        polling_interval: Seconds between status polls.
        retries: Total number of submit/poll cycles per widget.
        use_enterprise_flag: Send ``enterprise=1`` for enterprise widgets.
        use_action_value: Send the widget's ``action`` value.
        report_bad_on_resolve: Call ``reportbad`` after every poll
            resolution, successful or not.  Matches the historical
            behaviour of this provider; disable to stop reporting good
            solutions as bad.
        solve_timeout: Upper bound in seconds for a widget's whole cycle
            (``None`` polls for as long as the service keeps answering
            ``CAPCHA_NOT_READY``).
        submit_url: Submission endpoint.
        status_url: Status/report endpoint.
        soft_id: Software id sent with every request.
    """

    model_config = ConfigDict(extra="ignore")

    polling_interval: float = Field(default=2.0, gt=0)
    retries: int = Field(default=3, ge=1)
    use_enterprise_flag: bool = False
    use_action_value: bool = True
    report_bad_on_resolve: bool = True
    solve_timeout: Optional[float] = None
    submit_url: str = SUBMIT_URL
    status_url: str = STATUS_URL
    soft_id: str = SOFT_ID


def seconds_between(before: datetime, after: datetime) -> float:
    return (after - before).total_seconds()


def parse_reply(body: str) -> Tuple[bool, str]:
    """Split a ``OK|<value>`` / ``<ERROR_CODE>`` reply.

    Returns:
        ``(True, value)`` for OK replies, ``(False, code)`` otherwise.
    """
    parts = (body or "").strip().split("|", 1)
    if parts[0] == "OK" and len(parts) == 2:
        return True, parts[1]
    return False, parts[0] or "EMPTY_RESPONSE"


class TwoCaptchaProvider(SolutionProvider):
    """2Captcha client implementing :class:`SolutionProvider`.

    Example::

        provider = TwoCaptchaProvider()
        result = await provider.solve(widgets, api_key, {"retries": 2})
    """

    provider_id = PROVIDER_ID

    def __init__(
        self, session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialise the provider.

        Args:
            session: Optional shared session.  When omitted, each
                :meth:`solve` call opens and closes its own.
        """
        self.session = session
        self._reports: Set[asyncio.Task] = set()

    async def solve(
        self,
        widgets: Sequence[Widget],
        token: Optional[str],
        opts: Union[TwoCaptchaOptions, Dict[str, Any], None] = None,
    ) -> SolutionsResult:
        if isinstance(opts, TwoCaptchaOptions):
            options = opts
        else:
            options = TwoCaptchaOptions(**(opts or {}))

        if self.session is not None:
            solutions = await self._solve_all(
                self.session, widgets, token, options,
            )
            await self._drain_reports()
        else:
            async with aiohttp.ClientSession() as session:
                solutions = await self._solve_all(
                    session, widgets, token, options,
                )
                await self._drain_reports()

        error = next((s.error for s in solutions if s.error), None)
        return SolutionsResult(solutions=solutions, error=error)

    async def _solve_all(
        self,
        session: aiohttp.ClientSession,
        widgets: Sequence[Widget],
        token: Optional[str],
        options: TwoCaptchaOptions,
    ) -> List[Solution]:
        return list(
            await asyncio.gather(
                *(
                    self.get_solution(session, widget, token, options)
                    for widget in widgets
                )
            )
        )

    async def get_solution(
        self,
        session: aiohttp.ClientSession,
        widget: Widget,
        token: Optional[str],
        options: TwoCaptchaOptions,
    ) -> Solution:
        """Run one widget's cycle; failures end up on ``Solution.error``."""
        solution = Solution(
            id=widget.id or None,
            vendor=widget.vendor,
            provider=PROVIDER_ID,
        )
        try:
            if not widget.id or not widget.sitekey or not widget.url:
                raise ProviderError("Missing data in captcha")
            if not token:
                raise ProviderError("Missing API key")

            solution.request_at = utcnow()
            logger.debug("Requesting solution for %s", widget.id)
            cycle = self.decode(
                session, widget, token,
                self.extra_data(widget, options), options,
            )
            if options.solve_timeout:
                try:
                    job_id, text = await asyncio.wait_for(
                        cycle, options.solve_timeout,
                    )
                except asyncio.TimeoutError:
                    raise ProviderError(
                        f"no solution within {options.solve_timeout:g}s"
                    ) from None
            else:
                job_id, text = await cycle

            solution.provider_captcha_id = job_id
            solution.text = text
        except ProviderError as e:
            solution.error = f"{PROVIDER_ID} error: {e}"

        if solution.request_at is not None:
            solution.response_at = utcnow()
            solution.duration = seconds_between(
                solution.request_at, solution.response_at,
            )
        if solution.error:
            logger.warning("Solution for %s failed: %s", widget.id, solution.error)
        else:
            logger.info(
                "Solved %s in %.1fs (job %s)",
                widget.id, solution.duration, solution.provider_captcha_id,
            )
        return solution

    @staticmethod
    def extra_data(
        widget: Widget, options: TwoCaptchaOptions,
    ) -> Dict[str, str]:
        extra: Dict[str, str] = {}
        if widget.data_s:
            extra["data-s"] = widget.data_s
        if options.use_action_value and widget.action:
            extra["action"] = widget.action
        if options.use_enterprise_flag and widget.is_enterprise:
            extra["enterprise"] = "1"
        return extra

    async def decode(
        self,
        session: aiohttp.ClientSession,
        widget: Widget,
        token: str,
        extra: Dict[str, str],
        options: TwoCaptchaOptions,
    ) -> Tuple[str, str]:
        """Submit/poll with retries.

        Submission errors are final.  Poll errors restart the cycle with
        the same parameters until ``options.retries`` cycles were spent.

        Returns:
            ``(job_id, token_text)``.

        Raises:
            SubmissionError: The job was rejected.
            RetriesExhausted: Every cycle ended in a poll error.
        """
        method, key_field = METHODS[widget.vendor]
        attempt = 0
        while True:
            attempt += 1
            job_id = await self.submit(
                session, method, key_field, widget.sitekey, widget.url,
                extra, token, options,
            )
            try:
                text = await self.poll(session, job_id, token, options)
            except PollError as e:
                if options.report_bad_on_resolve:
                    self.report_later(session, job_id, token, options)
                if attempt < options.retries:
                    logger.warning(
                        "2Captcha job %s failed (%s), retrying (%d/%d)",
                        job_id, e, attempt, options.retries,
                    )
                    continue
                raise RetriesExhausted(
                    f"{TOO_MANY_FAILURES} after {attempt} attempt(s), "
                    f"last error: {e}",
                    code=e.code,
                ) from e

            if options.report_bad_on_resolve:
                self.report_later(session, job_id, token, options)
            return job_id, text

    async def submit(
        self,
        session: aiohttp.ClientSession,
        method: str,
        key_field: str,
        sitekey: str,
        url: str,
        extra: Dict[str, str],
        token: str,
        options: TwoCaptchaOptions,
    ) -> str:
        """Create a job and return its id."""
        data: Dict[str, str] = {
            "method": method,
            "key": token,
            "soft_id": options.soft_id,
            "pageurl": url,
            key_field: sitekey,
        }
        data.update(extra)

        logger.info(
            "Submitting %s to 2Captcha (sitekey: %s...)",
            method, sitekey[:20],
        )
        try:
            async with session.post(options.submit_url, data=data) as resp:
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SubmissionError(f"Submit request failed: {e}") from e

        ok, value = parse_reply(body)
        if not ok:
            logger.error("2Captcha Submit Error: %s", value)
            raise SubmissionError(value, code=value)
        return value

    async def poll(
        self,
        session: aiohttp.ClientSession,
        job_id: str,
        token: str,
        options: TwoCaptchaOptions,
    ) -> str:
        """Poll until the job resolves and return the solved token.

        Requests are strictly sequential, so a job resolves exactly once.
        """
        params = {
            "action": "get",
            "soft_id": options.soft_id,
            "key": token,
            "id": job_id,
        }
        logger.info("Waiting for solution (ID: %s)...", job_id)
        polls = 0
        while True:
            await asyncio.sleep(options.polling_interval)
            polls += 1
            try:
                async with session.get(options.status_url, params=params) as resp:
                    body = await resp.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise PollError(f"Poll request failed: {e}") from e

            if body.strip() == NOT_READY:
                if polls % 10 == 0:
                    logger.info(
                        "Still waiting (ID: %s, %d polls)...", job_id, polls,
                    )
                continue

            ok, value = parse_reply(body)
            if not ok:
                logger.error("2Captcha Error: %s", value)
                raise PollError(value, code=value)
            return value

    def report_later(
        self,
        session: aiohttp.ClientSession,
        job_id: str,
        token: str,
        options: TwoCaptchaOptions,
    ) -> None:
        """Schedule :meth:`report` without holding up the widget's result."""
        task = asyncio.ensure_future(self.report(session, job_id, token, options))
        self._reports.add(task)
        task.add_done_callback(self._reports.discard)

    async def _drain_reports(self) -> None:
        # the session must outlive every reportbad call
        if self._reports:
            await asyncio.gather(*list(self._reports), return_exceptions=True)

    async def report(
        self,
        session: aiohttp.ClientSession,
        job_id: str,
        token: str,
        options: TwoCaptchaOptions,
    ) -> None:
        """Send ``reportbad`` for *job_id*; failures are only logged."""
        params = {
            "action": "reportbad",
            "soft_id": options.soft_id,
            "key": token,
            "id": job_id,
        }
        try:
            async with session.get(options.status_url, params=params) as resp:
                await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("reportbad for job %s failed: %s", job_id, e)
