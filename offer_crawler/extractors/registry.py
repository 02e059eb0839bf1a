from __future__ import annotations

import logging
from importlib import metadata
from typing import Dict, Mapping

from ..pipeline.states import State
from ..utils.loader import load_symbol
from .amazon import DescriptionExtractor, OfferExtractor, SearchExtractor
from .base import Extractor

logger = logging.getLogger(__name__)


class ExtractorRegistry:
    """
    One extractor per pipeline state.
    Supports built-ins, config-defined dotted classes, and entry-point plugins.
    """
    def __init__(self) -> None:
        self._extractors: Dict[State, Extractor] = {
            State.SEARCH_KEYWORD: SearchExtractor(),
            State.EXTRACT_DESCRIPTION: DescriptionExtractor(),
            State.EXTRACT_OFFERS: OfferExtractor(),
        }

    # ---- Introspection / Management ----

    def register(self, state: State | str, extractor: Extractor) -> None:
        state = state if isinstance(state, State) else State.parse(state)
        logger.debug("Extractor for %s: %s", state.value, getattr(extractor, "name", extractor))
        self._extractors[state] = extractor

    def get(self, state: State) -> Extractor:
        return self._extractors[state]

    @property
    def extractors(self) -> Dict[State, Extractor]:
        return dict(self._extractors)

    def load_dotted(self, overrides: Mapping[str, str]) -> None:
        """Register ``{state label: "module:Class"}`` overrides, instantiating each class."""
        for label, dotted in overrides.items():
            self.register(label, load_symbol(dotted)())

    # ---- Discovery ----

    def discover_entry_points(self, group: str = "offer_crawler.extractors") -> int:
        """
        Discover third-party extractors installed as entry points.
        The entry point name is the state label it serves.
        Returns count of newly registered extractors.
        """
        added = 0
        for ep in metadata.entry_points().select(group=group):
            try:
                extractor_cls = ep.load()
                self.register(ep.name, extractor_cls())
            except Exception as exc:
                # A broken plugin should not take the built-ins down with it.
                logger.warning("Failed to load extractor plugin %s: %r", ep.name, exc)
                continue
            added += 1
        return added
