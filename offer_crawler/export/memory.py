from __future__ import annotations

from typing import Any, Dict, List

from ..pipeline.failures import DEBUG_KEY


class MemorySink:
    """Keeps records in a list. Used by the REST API and in tests."""

    def __init__(self, path: str | None = None) -> None:
        self.records: List[Dict[str, Any]] = []

    def push(self, record: Dict[str, Any]) -> None:
        self.records.append(dict(record))

    def close(self) -> None:
        pass

    @property
    def offers(self) -> List[Dict[str, Any]]:
        return [r for r in self.records if DEBUG_KEY not in r]

    @property
    def failures(self) -> List[Dict[str, Any]]:
        return [r[DEBUG_KEY] for r in self.records if DEBUG_KEY in r]
