from __future__ import annotations

from typing import Dict, List, Sequence, Tuple, Union

import pytest

from offer_crawler.config import CrawlConfig
from offer_crawler.utils.parsing import SoupPage

BASE_URL = "https://example"

Outcome = Union[str, Exception]


def result_card(asin: str, title: str, href: str | None = None) -> str:
    href = href if href is not None else f"/d/{asin}"
    # Real cards link to the detail page twice: image and title.
    return (
        f'<div data-asin="{asin}" class="s-result-item">'
        f'<span class="s-image"><a class="a-link-normal" href="{href}?ref=img">'
        f'<img alt="{title} image"></a></span>'
        f'<h2><a class="a-link-normal a-text-normal" href="{href}"><span>{title}</span></a></h2>'
        f"</div>"
    )


def search_html(*cards: str) -> str:
    return f'<html><body><div class="s-main-slot">{"".join(cards)}</div></body></html>'


def description_html(description: str | None) -> str:
    body = f'<div id="productDescription"><p>{description}</p></div>' if description is not None else ""
    return f'<html><body><div id="dp">{body}</div></body></html>'


def offers_html(rows: Sequence[Tuple[str, str, str]]) -> str:
    parts = []
    for seller, price, shipping in rows:
        parts.append(
            '<div class="olpOffer">'
            f'<span class="olpOfferPrice">{price}</span>'
            f'<span class="olpShippingInfo">{shipping}</span>'
            f'<h3 class="olpSellerName"><a href="/shops/x">{seller}</a></h3>'
            "</div>"
        )
    return f'<html><body><div id="olpOfferList">{"".join(parts)}</div></body></html>'


CAPTCHA_HTML = (
    '<html><body><form method="get" action="/errors/validateCaptcha">'
    '<input name="field-keywords"></form></body></html>'
)


def page(html: str, url: str = f"{BASE_URL}/s?k=test") -> SoupPage:
    return SoupPage(html, url=url)


class FakeRenderer:
    """
    Serves canned HTML per URL. A list of outcomes is consumed one per render,
    the last one repeating; an Exception outcome is raised.
    """

    def __init__(self, pages: Dict[str, Union[Outcome, List[Outcome]]]) -> None:
        self.pages = pages
        self.calls: List[str] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self) -> "FakeRenderer":
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.exited = True

    async def render(self, url: str) -> SoupPage:
        self.calls.append(url)
        outcome = self.pages[url]
        if isinstance(outcome, list):
            attempt = self.calls.count(url) - 1
            outcome = outcome[min(attempt, len(outcome) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return SoupPage(outcome, url=url)


@pytest.fixture
def config(tmp_path) -> CrawlConfig:
    return CrawlConfig(
        keyword="asus zenbook",
        base_url=BASE_URL,
        max_requests_per_crawl=50,
        max_request_retries=2,
        retry_backoff=0.0,
        max_concurrency=3,
        output_path=str(tmp_path / "out" / "offers.jsonl"),
    )
