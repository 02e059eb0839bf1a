from __future__ import annotations

from typing import Any, Dict, Protocol


class Sink(Protocol):
    """Receives terminal records: one per offer and one per failed work item."""

    def push(self, record: Dict[str, Any]) -> None:
        ...

    def close(self) -> None:
        ...
