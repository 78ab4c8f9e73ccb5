"""Tests for core/orchestrator.py: the full detect/solve/inject pipeline."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from browser import scripts
from core.config import PLACEHOLDER_TOKEN, ProviderConfig, SolverSettings
from core.errors import (
    DetectionFailure,
    NoSolutionsProvided,
    ProviderError,
    ProviderNotConfigured,
)
from core.models import Solution, SolutionsResult, Vendor, Widget
from core.orchestrator import CaptchaOrchestrator, accepted_solutions

PAGE_URL = "https://example.com/login"
ANCHOR = "https://www.google.com/recaptcha/api2/anchor?ar=1&k=KEY&size=normal"
SCORE_ANCHOR = "https://www.google.com/recaptcha/api2/anchor?ar=1&k=KEY&size=invisible"
HCAPTCHA_CHECKBOX = (
    "https://newassets.hcaptcha.com/captcha/v1/abc/static/hcaptcha-checkbox.html"
    "#id=0hc&sitekey=HKEY&size=normal"
)
IN_VIEW = {"top": 10, "left": 10, "bottom": 88, "right": 314}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _raw_frame(name, src, widget_id_attr=None):
    return {
        "name": name,
        "src": src,
        "visible": True,
        "rect": IN_VIEW,
        "widgetIdAttr": widget_id_attr,
        "inVisibleContainer": False,
        "hasResponseElement": True,
    }


def _make_page(recaptcha_frames=(), hcaptcha_frames=(), clients=None):
    """Page double serving both locators and both injectors."""
    page = AsyncMock()
    page.query_selector = AsyncMock(return_value=None)

    async def evaluate(script, arg=None):
        if script == scripts.DOCUMENT_READY:
            return True
        if script == scripts.FRAME_SNAPSHOT:
            frames = hcaptcha_frames if "hcaptcha" in arg["selector"] else recaptcha_frames
            return {
                "url": PAGE_URL,
                "viewport": {"width": 1280, "height": 720},
                "frames": list(frames),
            }
        if script == scripts.LIST_RECAPTCHA_CLIENTS:
            return clients
        if script == scripts.INJECT_RECAPTCHA_SOLUTION:
            return {
                "frameFound": True,
                "responseElement": True,
                "responseCallback": False,
                "error": None,
            }
        return True

    page.evaluate = AsyncMock(side_effect=evaluate)
    return page


def _two_checkbox_page():
    return _make_page(
        recaptcha_frames=[
            _raw_frame("a-one", ANCHOR),
            _raw_frame("a-two", ANCHOR),
        ],
        clients={
            "one": {"id": "one", "sitekey": "KEY"},
            "two": {"id": "two", "sitekey": "KEY"},
        },
    )


def _solved(widgets, *args, **kwargs):
    return SolutionsResult(solutions=[
        Solution(id=w.id, vendor=w.vendor, provider="custom", text=f"token-{w.id}")
        for w in widgets
    ])


def _custom_provider(side_effect=_solved):
    return ProviderConfig(fn=AsyncMock(side_effect=side_effect))


def _settings(**kwargs):
    kwargs.setdefault("visual_feedback", False)
    return SolverSettings(**kwargs)


def _orchestrator(provider=None, **settings):
    return CaptchaOrchestrator(_settings(**settings), provider or _custom_provider())


def _injected_ids(page):
    return [
        c.args[1]["id"] for c in page.evaluate.call_args_list
        if c.args[0] == scripts.INJECT_RECAPTCHA_SOLUTION
    ]


# ===================================================================
# 1. Full pipeline
# ===================================================================

class TestSolveCaptchas:

    async def test_round_trip(self):
        page = _two_checkbox_page()
        orchestrator = _orchestrator()

        result = await orchestrator.solve_captchas(page)

        assert [w.id for w in result.captchas] == ["one", "two"]
        assert result.filtered == []
        assert [s.text for s in result.solutions] == ["token-one", "token-two"]
        assert len(result.solved) == 2
        assert all(r.is_solved for r in result.solved)
        assert result.error is None

    async def test_mixed_vendors(self):
        page = _make_page(
            recaptcha_frames=[_raw_frame("a-one", ANCHOR)],
            hcaptcha_frames=[_raw_frame("", HCAPTCHA_CHECKBOX, widget_id_attr="0hc")],
            clients={"one": {"id": "one", "sitekey": "KEY"}},
        )
        result = await _orchestrator().solve_captchas(page)

        assert {(w.vendor, w.id) for w in result.captchas} == {
            (Vendor.RECAPTCHA, "one"), (Vendor.HCAPTCHA, "0hc"),
        }
        assert {r.vendor for r in result.solved} == {Vendor.RECAPTCHA, Vendor.HCAPTCHA}
        assert all(r.is_solved for r in result.solved)

    async def test_empty_page_skips_provider(self):
        page = _make_page()
        provider = _custom_provider()
        result = await _orchestrator(provider).solve_captchas(page)

        assert result.captchas == []
        assert result.filtered == []
        assert result.solutions == []
        assert result.solved == []
        assert result.error is None
        provider.fn.assert_not_called()

    async def test_filtered_widgets_not_solved(self):
        page = _make_page(
            recaptcha_frames=[_raw_frame("a-score", SCORE_ANCHOR)],
            clients={"score": {"id": "score", "sitekey": "KEY"}},
        )
        provider = _custom_provider()
        result = await _orchestrator(provider).solve_captchas(page)

        assert [w.id for w in result.filtered] == ["score"]
        assert result.filtered[0].filtered_reason == "solve_score_based"
        assert result.captchas == []
        provider.fn.assert_not_called()

    async def test_foreign_solutions_not_injected(self):
        def solve(widgets, *args):
            result = _solved(widgets)
            result.solutions.append(
                Solution(id="stranger", vendor=Vendor.RECAPTCHA, provider="custom", text="x")
            )
            return result

        page = _two_checkbox_page()
        result = await _orchestrator(_custom_provider(solve)).solve_captchas(page)

        assert _injected_ids(page) == ["one", "two"]
        assert len(result.solved) == 2

    async def test_provider_error_reported(self):
        def solve(widgets, *args):
            result = _solved(widgets)
            result.solutions[1].text = None
            result.solutions[1].error = "custom error: ERROR_ZERO_BALANCE"
            result.error = result.solutions[1].error
            return result

        page = _two_checkbox_page()
        result = await _orchestrator(_custom_provider(solve)).solve_captchas(page)

        assert result.error == "custom error: ERROR_ZERO_BALANCE"
        assert _injected_ids(page) == ["one"]
        assert [r.id for r in result.solved] == ["one"]

    async def test_provider_error_raised_with_throw_on_error(self):
        def solve(widgets, *args):
            result = _solved(widgets)
            result.error = "custom error: ERROR_ZERO_BALANCE"
            return result

        page = _two_checkbox_page()
        orchestrator = _orchestrator(_custom_provider(solve), throw_on_error=True)

        with pytest.raises(ProviderError, match="ERROR_ZERO_BALANCE"):
            await orchestrator.solve_captchas(page)
        assert _injected_ids(page) == []

    async def test_detection_failure_best_effort(self):
        page = _make_page()
        page.evaluate = AsyncMock(side_effect=PlaywrightError("Execution context was destroyed"))
        provider = _custom_provider()

        result = await _orchestrator(provider).solve_captchas(page)

        assert "Execution context was destroyed" in result.error
        assert result.captchas == []
        provider.fn.assert_not_called()

    async def test_detection_failure_isolated_per_vendor(self):
        page = _make_page(
            hcaptcha_frames=[_raw_frame("", HCAPTCHA_CHECKBOX, widget_id_attr="0hc")],
        )
        serve = page.evaluate.side_effect

        async def evaluate(script, arg=None):
            if script == scripts.FRAME_SNAPSHOT and "hcaptcha" not in arg["selector"]:
                raise PlaywrightError("Frame was detached")
            return await serve(script, arg)

        page.evaluate = AsyncMock(side_effect=evaluate)
        result = await _orchestrator().find_captchas(page)

        assert [w.id for w in result.captchas] == ["0hc"]
        assert "Frame was detached" in result.error

    async def test_detection_failure_raised_with_throw_on_error(self):
        page = _make_page()
        page.evaluate = AsyncMock(side_effect=PlaywrightError("boom"))

        with pytest.raises(DetectionFailure):
            await _orchestrator(throw_on_error=True).solve_captchas(page)


# ===================================================================
# 2. Provider resolution
# ===================================================================

class TestProviderResolution:

    async def test_not_configured(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        orchestrator = _orchestrator(ProviderConfig())
        result = await orchestrator.get_solutions(widgets)
        assert result.solutions == []
        assert "No usable solution provider" in result.error

    async def test_placeholder_token_rejected(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        orchestrator = _orchestrator(ProviderConfig(token=PLACEHOLDER_TOKEN), throw_on_error=True)
        with pytest.raises(ProviderNotConfigured):
            await orchestrator.get_solutions(widgets)

    async def test_unknown_provider_id(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        orchestrator = _orchestrator(ProviderConfig(id="nope", token="k"), throw_on_error=True)
        with pytest.raises(ProviderNotConfigured, match="nope"):
            await orchestrator.get_solutions(widgets)

    async def test_builtin_provider_from_registry(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        provider_cls = MagicMock()
        provider_cls.return_value.solve = AsyncMock(side_effect=_solved)
        config = ProviderConfig(id="2captcha", token="API_KEY", opts={"retries": 1})

        with patch("core.orchestrator.get_provider_class", return_value=provider_cls) as lookup:
            result = await _orchestrator(config).get_solutions(widgets)

        lookup.assert_called_once_with("2captcha")
        provider_cls.return_value.solve.assert_awaited_once_with(
            widgets, "API_KEY", {"retries": 1},
        )
        assert result.solutions[0].text == "token-one"

    async def test_custom_fn_receives_token_and_opts(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        fn = AsyncMock(side_effect=_solved)
        config = ProviderConfig(token="T", fn=fn, opts={"a": 1})

        await _orchestrator(config).get_solutions(widgets)

        fn.assert_awaited_once_with(widgets, "T", {"a": 1})

    async def test_per_call_provider_override(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        default = _custom_provider()
        override = _custom_provider()

        await _orchestrator(default).get_solutions(widgets, provider=override)

        default.fn.assert_not_called()
        override.fn.assert_awaited_once()

    async def test_crashing_fn_becomes_provider_error(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        config = _custom_provider(side_effect=RuntimeError("kaput"))
        result = await _orchestrator(config).get_solutions(widgets)
        assert "kaput" in result.error

    async def test_error_derived_from_solutions(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        config = _custom_provider(side_effect=lambda *args: SolutionsResult(
            solutions=[Solution(id="one", vendor=Vendor.RECAPTCHA, provider="custom", error="boom")],
        ))
        result = await _orchestrator(config).get_solutions(widgets)
        assert result.error == "boom"

    async def test_derived_error_raised_with_throw_on_error(self):
        widgets = [Widget(id="one", vendor=Vendor.RECAPTCHA, sitekey="KEY")]
        config = _custom_provider(side_effect=lambda *args: SolutionsResult(
            solutions=[Solution(id="one", vendor=Vendor.RECAPTCHA, provider="custom", error="boom")],
        ))
        with pytest.raises(ProviderError, match="boom"):
            await _orchestrator(config, throw_on_error=True).get_solutions(widgets)


# ===================================================================
# 3. Injection stage
# ===================================================================

class TestEnterSolutions:

    async def test_no_solutions(self):
        result = await _orchestrator().enter_solutions(_make_page(), [])
        assert result.solved == []
        assert result.error == "No solutions provided"

    async def test_no_solutions_raises_with_throw_on_error(self):
        with pytest.raises(NoSolutionsProvided):
            await _orchestrator(throw_on_error=True).enter_solutions(_make_page(), [])

    async def test_only_error_free_solutions_injected(self):
        page = _two_checkbox_page()
        solutions = [
            Solution(id="one", vendor=Vendor.RECAPTCHA, provider="p", text="t1"),
            Solution(id="two", vendor=Vendor.RECAPTCHA, provider="p", error="bad"),
        ]
        result = await _orchestrator().enter_solutions(page, solutions)
        assert [r.id for r in result.solved] == ["one"]

    async def test_duplicates_injected_once(self):
        page = _two_checkbox_page()
        solutions = [
            Solution(id="one", vendor=Vendor.RECAPTCHA, provider="p", text="t1"),
            Solution(id="one", vendor=Vendor.RECAPTCHA, provider="p", text="t2"),
        ]
        result = await _orchestrator().enter_solutions(page, solutions)
        assert _injected_ids(page) == ["one"]
        assert len(result.solved) == 1

    async def test_injection_error_aggregated(self):
        page = _make_page(clients={})
        solutions = [Solution(id="one", vendor=Vendor.RECAPTCHA, provider="p", text="t1")]
        result = await _orchestrator().enter_solutions(page, solutions)
        assert result.error == "Client not found"
        assert result.solved[0].is_solved is False

    async def test_solution_without_vendor_reported(self):
        page = _two_checkbox_page()
        solutions = [
            Solution(id="one", vendor=Vendor.RECAPTCHA, provider="p", text="t1"),
            Solution(id="mystery", vendor=None, provider="p", text="t2"),
        ]
        result = await _orchestrator().enter_solutions(page, solutions)

        assert _injected_ids(page) == ["one"]
        assert [r.id for r in result.solved] == ["one", "mystery"]
        unknown = result.solved[1]
        assert unknown.vendor is None
        assert unknown.is_solved is False
        assert result.error == "Unknown vendor for solution 'mystery'"


class TestAcceptedSolutions:

    def test_filters_and_dedupes(self):
        solutions = [
            Solution(id="a", vendor=Vendor.RECAPTCHA, provider="p", text="1"),
            Solution(id=None, vendor=Vendor.RECAPTCHA, provider="p", text="2"),
            Solution(id="b", vendor=Vendor.RECAPTCHA, provider="p", text=""),
            Solution(id="a", vendor=Vendor.RECAPTCHA, provider="p", text="3"),
        ]
        assert [s.text for s in accepted_solutions(solutions)] == ["1"]
