from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional, Sequence
from urllib.parse import quote_plus

from ..config import DEFAULT_BASE_URL
from ..errors import UnroutableWorkItemError
from ..extractors.base import Extractor
from .effects import Effect, Emit, EnqueueMany, EnqueueOne
from .payload import ExtractedItem, OfferRecord, OfferRow, Payload, WorkItem
from ..utils.parsing import RenderedPage
from .states import State


class PipelineController:
    """
    Pure transition function of the crawl.

    - Extractors own page parsing (injected per state).
    - The crawl driver owns rendering, queueing and retries.
    - No I/O and no mutable state: dispatch is safe to call concurrently.
    """

    def __init__(self, extractors: Mapping[State, Extractor], base_url: str = DEFAULT_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")
        self._extractors: Dict[State, Extractor] = dict(extractors)
        self._handlers: Dict[State, Callable[[RenderedPage, Payload], Effect]] = {
            State.SEARCH_KEYWORD: self._search_keyword,
            State.EXTRACT_DESCRIPTION: self._extract_description,
            State.EXTRACT_OFFERS: self._extract_offers,
        }
        unhandled = [s.value for s in State if s not in self._handlers]
        missing = [s.value for s in State if s not in self._extractors]
        if unhandled or missing:
            raise ValueError(
                f"Pipeline not wired for every state (no handler: {unhandled}, no extractor: {missing})"
            )

    # ---- URLs ---------------------------------------------------------------

    def search_url(self, keyword: str) -> str:
        return f"{self.base_url}/s?k={quote_plus(keyword)}"

    def offers_url(self, asin: str) -> str:
        return f"{self.base_url}/gp/offer-listing/{asin}"

    # ---- Transitions --------------------------------------------------------

    def seed(self, keyword: str) -> WorkItem:
        return WorkItem(url=self.search_url(keyword), label=State.SEARCH_KEYWORD, payload=Payload(keyword=keyword))

    def dispatch(self, state: State, page: RenderedPage, payload: Payload) -> Effect:
        handler = self._handlers.get(state)  # type: ignore[arg-type]
        if handler is None:
            raise UnroutableWorkItemError(f"No pipeline stage handles label {state!r}")
        return handler(page, payload)

    def dispatch_item(self, item: WorkItem, page: RenderedPage) -> Effect:
        return self.dispatch(item.label, page, item.payload)

    def _search_keyword(self, page: RenderedPage, payload: Payload) -> EnqueueMany:
        found: Sequence[ExtractedItem] = self._extractors[State.SEARCH_KEYWORD].extract(page)
        return EnqueueMany(items=tuple(self._description_item(found_item, payload) for found_item in found))

    def _description_item(self, found: ExtractedItem, payload: Payload) -> WorkItem:
        return WorkItem(
            url=found.url,
            label=_follow(State.SEARCH_KEYWORD),
            payload=payload.merge(asin=found.asin, itemUrl=found.url, title=found.title),
        )

    def _extract_description(self, page: RenderedPage, payload: Payload) -> EnqueueOne:
        description: Optional[str] = self._extractors[State.EXTRACT_DESCRIPTION].extract(page)
        asin = str(payload["asin"])
        return EnqueueOne(
            item=WorkItem(
                url=self.offers_url(asin),
                label=_follow(State.EXTRACT_DESCRIPTION),
                payload=payload.merge(productDescription=description),
            )
        )

    def _extract_offers(self, page: RenderedPage, payload: Payload) -> Emit:
        offers: Sequence[OfferRow] = self._extractors[State.EXTRACT_OFFERS].extract(page)
        return Emit(records=tuple(OfferRecord(payload=payload, offer=offer) for offer in offers))


def _follow(state: State) -> State:
    nxt = state.next
    if nxt is None:
        raise UnroutableWorkItemError(f"{state.value} is terminal; it emits records instead of enqueueing")
    return nxt
