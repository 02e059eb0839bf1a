from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from ..errors import InputValidationError, PayloadError
from .states import REQUIRED_KEYS, State

Scalar = Union[str, int, float, bool, None]


class Payload(Mapping[str, Scalar]):
    """
    Immutable key/value context threaded through the pipeline.

    Each stage merges its own fields in. A key, once written, keeps its value
    for the rest of the crawl: merging a different value for it raises
    PayloadError.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Scalar]] = None, **fields: Scalar) -> None:
        merged: Dict[str, Scalar] = dict(data or {})
        merged.update(fields)
        for key, value in merged.items():
            if not isinstance(key, str):
                raise TypeError(f"Payload keys must be strings, got {key!r}")
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise TypeError(f"Payload value for {key!r} must be a scalar, got {type(value).__name__}")
        self._data = merged

    def __getitem__(self, key: str) -> Scalar:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Payload({self._data!r})"

    def merge(self, **fields: Scalar) -> "Payload":
        for key, value in fields.items():
            if key in self._data and self._data[key] != value:
                raise PayloadError(
                    f"Payload key {key!r} already set to {self._data[key]!r}; refusing to overwrite with {value!r}"
                )
        return Payload(self._data, **fields)

    def missing_for(self, state: State) -> List[str]:
        return sorted(REQUIRED_KEYS[state] - self._data.keys())

    def to_dict(self) -> Dict[str, Scalar]:
        return dict(self._data)


@dataclass(frozen=True)
class WorkItem:
    """One queued unit of crawl work."""

    url: str
    label: State
    payload: Payload
    unique_key: str = ""
    retry_count: int = 0
    error_messages: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.url:
            raise InputValidationError("WorkItem url cannot be empty")
        if not isinstance(self.label, State):
            object.__setattr__(self, "label", State.parse(self.label))
        if not isinstance(self.payload, Payload):
            object.__setattr__(self, "payload", Payload(self.payload))
        missing = self.payload.missing_for(self.label)
        if missing:
            raise PayloadError(
                f"Payload for {self.label.value} is missing required keys: {', '.join(missing)}"
            )
        if not self.unique_key:
            object.__setattr__(self, "unique_key", self.url)

    def with_error(self, message: str, *, retry: bool = True) -> "WorkItem":
        """Copy of this item after one more failed attempt; ``retry`` counts it towards the retry budget."""
        return WorkItem(
            url=self.url,
            label=self.label,
            payload=self.payload,
            unique_key=self.unique_key,
            retry_count=self.retry_count + (1 if retry else 0),
            error_messages=self.error_messages + (message,),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "uniqueKey": self.unique_key,
            "label": self.label.value,
            "payload": self.payload.to_dict(),
            "retryCount": self.retry_count,
            "errorMessages": list(self.error_messages),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkItem":
        # State.parse raises UnknownStateError for labels no handler owns.
        return cls(
            url=data["url"],
            label=State.parse(data["label"]),
            payload=Payload(data.get("payload") or {}),
            unique_key=data.get("uniqueKey") or "",
            retry_count=int(data.get("retryCount", 0)),
            error_messages=tuple(data.get("errorMessages") or ()),
        )


@dataclass(frozen=True)
class ExtractedItem:
    """One search result."""

    asin: str
    title: str
    url: str


@dataclass(frozen=True)
class OfferRow:
    """One seller offer as read from the offer listing."""

    seller: Optional[str]
    price: str
    shipping: str = "free"


@dataclass(frozen=True)
class OfferRecord:
    """Terminal output: the accumulated payload plus one offer."""

    payload: Payload
    offer: OfferRow

    @property
    def description(self) -> Optional[str]:
        return self.payload.get("productDescription")  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = self.payload.to_dict()
        data["description"] = self.description
        data.setdefault("title", None)
        data["seller"] = self.offer.seller
        data["price"] = self.offer.price
        data["shipping"] = self.offer.shipping
        return data
