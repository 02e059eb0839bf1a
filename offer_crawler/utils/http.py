from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from ..config import CrawlConfig
from ..errors import RenderError
from .parsing import SoupPage

logger = logging.getLogger(__name__)


async def fetch_text(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 15.0,
    user_agent: Optional[str] = None,
) -> tuple[str, str, int]:
    """
    Fetch a URL once and return ``(final_url, body, status)``.
    Raises RenderError; retrying is the crawl driver's job.
    """
    headers = {}
    if user_agent:
        headers["User-Agent"] = user_agent

    try:
        async with session.get(url, headers=headers, timeout=ClientTimeout(total=timeout)) as resp:
            if resp.status >= 400:
                raise RenderError(f"{url} answered HTTP {resp.status}", url=url, status=resp.status)
            return str(resp.url), await resp.text(), resp.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.debug("fetch_text failed for %s: %r", url, exc)
        raise RenderError(f"Fetching {url} failed: {exc!r}", url=url) from exc


def create_session() -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit=0)  # unlimited; concurrency managed by the crawl driver
    return aiohttp.ClientSession(connector=connector)


class HttpRenderer:
    """
    Renders without a browser: the server's HTML is the DOM.
    Good enough for pages that do not build their content client-side.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._session: Optional[ClientSession] = None

    async def __aenter__(self) -> "HttpRenderer":
        self._session = create_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def render(self, url: str) -> SoupPage:
        if self._session is None:
            raise RuntimeError("HttpRenderer used outside 'async with'")
        final_url, html, status = await fetch_text(
            self._session,
            url,
            timeout=self.config.navigation_timeout,
            user_agent=self.config.user_agent,
        )
        return SoupPage(html, url=final_url, status=status)
