from __future__ import annotations

import logging
import os
from pathlib import Path
from types import TracebackType
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ..config import CrawlConfig
from ..errors import RenderError
from ..utils.parsing import SoupPage

logger = logging.getLogger(__name__)


def app_data_dir() -> Path:
    base = os.getenv("LOCALAPPDATA") or str(Path.home() / ".offer-crawler")
    p = Path(base) / "offer-crawler"
    p.mkdir(parents=True, exist_ok=True)
    return p


def browsers_dir() -> Path:
    return app_data_dir() / "ms-playwright"


class PlaywrightRenderer:
    """
    Headless Chromium renderer. Each render gets a fresh page; the DOM is
    snapshotted once the document has loaded and handed back as a SoupPage.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(browsers_dir()))
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
        self._context = await self._browser.new_context(user_agent=self.config.user_agent)
        self._context.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._context = self._browser = self._playwright = None

    async def render(self, url: str) -> SoupPage:
        if self._context is None:
            raise RuntimeError("PlaywrightRenderer used outside 'async with'")
        page = await self._context.new_page()
        try:
            try:
                response = await page.goto(url, wait_until="domcontentloaded")
            except PlaywrightError as exc:
                raise RenderError(f"Navigation to {url} failed: {exc}", url=url) from exc
            status: Optional[int] = response.status if response is not None else None
            if status is not None and status >= 400:
                raise RenderError(f"{url} answered HTTP {status}", url=url, status=status)
            html = await page.content()
            return SoupPage(html, url=page.url, status=status)
        finally:
            await page.close()
