"""Solution provider contract."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from core.models import SolutionsResult, Widget


class SolutionProvider(ABC):
    """Maps widgets to solved tokens.

    Implementations must return one :class:`~core.models.Solution` per
    widget, in the same order, and report per-widget failures on the
    solution instead of raising.
    """

    provider_id: str = ""

    @abstractmethod
    async def solve(
        self,
        widgets: Sequence[Widget],
        token: Optional[str],
        opts: Optional[Dict[str, Any]] = None,
    ) -> SolutionsResult:
        """Request solutions for *widgets* using credential *token*."""

    async def __call__(
        self,
        widgets: Sequence[Widget],
        token: Optional[str],
        opts: Optional[Dict[str, Any]] = None,
    ) -> SolutionsResult:
        return await self.solve(widgets, token, opts)
