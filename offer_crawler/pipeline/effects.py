"""What a single dispatch asks the crawl driver to do next."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from .payload import OfferRecord, WorkItem


@dataclass(frozen=True)
class EnqueueMany:
    items: Tuple[WorkItem, ...]


@dataclass(frozen=True)
class EnqueueOne:
    item: WorkItem


@dataclass(frozen=True)
class Emit:
    records: Tuple[OfferRecord, ...]


Effect = Union[EnqueueMany, EnqueueOne, Emit]
