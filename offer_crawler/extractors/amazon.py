from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from ..errors import ExtractionError
from ..pipeline.payload import ExtractedItem, OfferRow
from ..utils.parsing import Element, RenderedPage, text_or_none
from .base import CAPTCHA_SELECTOR, ensure_not_blocked, require_one

logger = logging.getLogger(__name__)

DEFAULT_SHIPPING = "free"


@dataclass(frozen=True)
class SearchSelectors:
    results: str = "div.s-main-slot"
    item: str = "[data-asin]"
    asin_attr: str = "data-asin"
    # A result card links to the detail page from the image and the title.
    # Only the title anchor carries the product name.
    title_anchor: str = "h2 a.a-link-normal"
    blocked: Optional[str] = CAPTCHA_SELECTOR


@dataclass(frozen=True)
class DescriptionSelectors:
    container: str = "div#productDescription"
    blocked: Optional[str] = CAPTCHA_SELECTOR


@dataclass(frozen=True)
class OfferSelectors:
    offer_list: str = "#olpOfferList"
    row: str = ".olpOffer"
    seller: str = ".olpSellerName"
    price: str = ".olpOfferPrice"
    shipping: str = ".olpShippingInfo"
    blocked: Optional[str] = CAPTCHA_SELECTOR


class SearchExtractor:
    """Reads product cards off a keyword search result page."""

    name = "amazon-search"

    def __init__(self, selectors: SearchSelectors | None = None) -> None:
        self.selectors = selectors or SearchSelectors()

    def extract(self, page: RenderedPage) -> List[ExtractedItem]:
        sel = self.selectors
        ensure_not_blocked(page, sel.blocked)
        results = require_one(page, sel.results, "Search results")

        items: List[ExtractedItem] = []
        seen: Set[str] = set()
        for card in results.select(sel.item):
            asin = (card.attr(sel.asin_attr) or "").strip()
            if not asin or asin in seen:
                continue
            anchor = card.select_one(sel.title_anchor)
            url = anchor.href() if anchor else None
            if not anchor or not url:
                logger.debug("Skipping result %s without a title link on %s", asin, page.url)
                continue
            seen.add(asin)
            items.append(ExtractedItem(asin=asin, title=anchor.text(), url=url))
        return items


class DescriptionExtractor:
    """
    Returns the product description markup, or None when the listing has none.
    A missing description is normal for many listings and is not an error.
    """

    name = "amazon-description"

    def __init__(self, selectors: DescriptionSelectors | None = None) -> None:
        self.selectors = selectors or DescriptionSelectors()

    def extract(self, page: RenderedPage) -> Optional[str]:
        ensure_not_blocked(page, self.selectors.blocked)
        node = page.select_one(self.selectors.container)
        if node is None:
            return None
        return node.inner_html() or None


class OfferExtractor:
    """Reads every seller offer from an offer-listing page."""

    name = "amazon-offers"

    def __init__(self, selectors: OfferSelectors | None = None) -> None:
        self.selectors = selectors or OfferSelectors()

    def extract(self, page: RenderedPage) -> List[OfferRow]:
        sel = self.selectors
        ensure_not_blocked(page, sel.blocked)
        offer_list = require_one(page, sel.offer_list, "Offer list")
        return [self._row(page, row) for row in offer_list.select(sel.row)]

    def _row(self, page: RenderedPage, row: Element) -> OfferRow:
        sel = self.selectors
        price = text_or_none(row.select_one(sel.price))
        if price is None:
            raise ExtractionError("Offer row without a price", url=page.url, selector=sel.price)
        return OfferRow(
            seller=self._seller(row),
            price=price,
            shipping=text_or_none(row.select_one(sel.shipping)) or DEFAULT_SHIPPING,
        )

    def _seller(self, row: Element) -> Optional[str]:
        node = row.select_one(self.selectors.seller)
        if node is None:
            return None
        name = node.text()
        if name:
            return name
        # Amazon itself is shown as a logo.
        logo = node.select_one("img[alt]")
        return (logo.attr("alt") or None) if logo else None
