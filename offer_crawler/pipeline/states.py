"""
Pipeline states. The crawl is a small automaton:

    (start) -> amz-search-keyword -> amz-extract-desc -> amz-extract-offers -> (write-out)

``(start)`` is seeding the queue and ``(write-out)`` is pushing records to the
sink; neither is a label a work item can carry.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional

from ..errors import UnknownStateError


class State(str, Enum):
    SEARCH_KEYWORD = "amz-search-keyword"
    EXTRACT_DESCRIPTION = "amz-extract-desc"
    EXTRACT_OFFERS = "amz-extract-offers"

    @classmethod
    def parse(cls, label: str) -> "State":
        try:
            return cls(label)
        except ValueError as exc:
            raise UnknownStateError(f"Unknown state label: {label!r}") from exc

    @property
    def next(self) -> Optional["State"]:
        """The state reached on success, or None for the terminal write-out."""
        return _TRANSITIONS[self]


_TRANSITIONS: Dict[State, Optional[State]] = {
    State.SEARCH_KEYWORD: State.EXTRACT_DESCRIPTION,
    State.EXTRACT_DESCRIPTION: State.EXTRACT_OFFERS,
    State.EXTRACT_OFFERS: None,
}

#: Payload keys every work item in a given state must carry.
REQUIRED_KEYS: Dict[State, FrozenSet[str]] = {
    State.SEARCH_KEYWORD: frozenset({"keyword"}),
    State.EXTRACT_DESCRIPTION: frozenset({"keyword", "asin", "itemUrl"}),
    # productDescription must be present but may be None.
    State.EXTRACT_OFFERS: frozenset({"keyword", "asin", "itemUrl", "productDescription"}),
}
