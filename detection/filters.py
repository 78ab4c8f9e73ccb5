"""Filter policy deciding which located widgets are worth solving.

Rules are applied independently to every widget regardless of vendor.  A
matching rule sets ``filtered`` and tags ``filtered_reason`` with the name of
the option responsible; re-applying the policy with the same options
changes nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from core.config import SolverSettings
from core.models import Widget, WidgetType

logger = logging.getLogger(__name__)


@dataclass
class FilterResult:
    captchas: List[Widget] = field(default_factory=list)
    filtered: List[Widget] = field(default_factory=list)


@dataclass
class FilterPolicy:
    """User options controlling the solve set.

    Attributes:
        solve_in_viewport_only: Drop checkboxes outside the viewport.
        solve_score_based: Keep score based (challenge-less) widgets.
        solve_inactive_challenges: Keep invisible widgets without an open
            challenge popup.
    """

    solve_in_viewport_only: bool = False
    solve_score_based: bool = False
    solve_inactive_challenges: bool = False

    @classmethod
    def from_settings(cls, settings: SolverSettings) -> "FilterPolicy":
        return cls(
            solve_in_viewport_only=settings.solve_in_viewport_only,
            solve_score_based=settings.solve_score_based,
            solve_inactive_challenges=settings.solve_inactive_challenges,
        )

    def _reason(self, widget: Widget) -> Optional[str]:
        reason = None
        if (
            widget.type == WidgetType.INVISIBLE
            and not widget.has_active_challenge_popup
            and not self.solve_inactive_challenges
        ):
            reason = "solve_inactive_challenges"
        if widget.type == WidgetType.SCORE and not self.solve_score_based:
            reason = "solve_score_based"
        if (
            widget.type == WidgetType.CHECKBOX
            and not widget.is_in_viewport
            and self.solve_in_viewport_only
        ):
            reason = "solve_in_viewport_only"
        return reason

    def apply(self, widgets: Iterable[Widget]) -> FilterResult:
        """Partition *widgets* into solvable and filtered ones."""
        result = FilterResult()
        for widget in widgets:
            reason = self._reason(widget)
            if reason:
                widget.filtered = True
                widget.filtered_reason = reason
                logger.debug(
                    "Filtered out %s widget %s (%s)",
                    widget.vendor.value, widget.id, reason,
                )
            if widget.filtered:
                result.filtered.append(widget)
            else:
                result.captchas.append(widget)
        if result.filtered:
            logger.info(
                "Filter results: %d of %d widget(s) filtered",
                len(result.filtered),
                len(result.filtered) + len(result.captchas),
            )
        return result
