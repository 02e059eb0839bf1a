from __future__ import annotations

from typing import Any, Optional, Protocol

from ..errors import BlockedPageError, ExtractionError
from ..utils.parsing import Element, RenderedPage

#: Amazon and most storefronts behind the same WAF serve this form as a bot wall.
CAPTCHA_SELECTOR = "form[action*='validateCaptcha']"


class Extractor(Protocol):
    """
    Interface for one stage's page extraction.
    Keep this small and stable: selectors drift, the pipeline should not have to.
    """

    name: str

    def extract(self, page: RenderedPage) -> Any:
        """Read this stage's fields from a rendered page. Must not mutate anything."""
        ...


def ensure_not_blocked(page: RenderedPage, selector: Optional[str] = CAPTCHA_SELECTOR) -> None:
    if selector and page.select_one(selector) is not None:
        raise BlockedPageError("Bot wall served instead of page", url=page.url, selector=selector)


def require_one(page: RenderedPage, selector: str, what: str) -> Element:
    node = page.select_one(selector)
    if node is None:
        raise ExtractionError(f"{what} not found ({selector})", url=page.url, selector=selector)
    return node
