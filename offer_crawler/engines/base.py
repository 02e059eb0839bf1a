from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Protocol
from types import TracebackType
from abc import ABC, abstractmethod

from ..utils.parsing import RenderedPage


@dataclass
class CrawlReport:
    handled: int = 0        # work items that reached a final outcome
    failed: int = 0         # of those, how many ended in a debug record
    emitted: int = 0        # offer records pushed to the sink
    retries: int = 0
    per_state: Dict[str, int] = field(default_factory=dict)  # state label -> handled successfully
    budget_exhausted: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "handled": self.handled,
            "failed": self.failed,
            "emitted": self.emitted,
            "retries": self.retries,
            "per_state": dict(self.per_state),
            "budget_exhausted": self.budget_exhausted,
        }


class Renderer(Protocol):
    """
    Turns a URL into a RenderedPage. Used as an async context manager so the
    browser (or HTTP session) lives exactly as long as the crawl.
    """

    async def __aenter__(self) -> "Renderer":
        ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        ...

    async def render(self, url: str) -> RenderedPage:
        ...


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own the crawl lifecycle.
    """
    @abstractmethod
    async def crawl(self) -> CrawlReport:  # pragma: no cover - interface
        ...
