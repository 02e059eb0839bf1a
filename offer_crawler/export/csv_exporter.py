from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, IO, Optional

from ..pipeline.failures import DEBUG_KEY


class CSVSink:
    """
    Writes per-offer rows. Debug records land in the ``debug`` column as JSON.
    """

    _headers = [
        "keyword",
        "asin",
        "title",
        "itemUrl",
        "seller",
        "price",
        "shipping",
        "description",
        "debug",
    ]

    def __init__(self, path: str) -> None:
        self.path = path
        self._fh: Optional[IO[str]] = None
        self._writer: Any = None

    def push(self, record: Dict[str, Any]) -> None:
        if self._writer is None:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self.path, "w", encoding="utf-8", newline="")
            self._writer = csv.writer(self._fh)
            self._writer.writerow(self._headers)
        if DEBUG_KEY in record:
            row = [""] * (len(self._headers) - 1) + [json.dumps(record[DEBUG_KEY], ensure_ascii=False)]
        else:
            row = [record.get(h) or "" for h in self._headers[:-1]] + [""]
        self._writer.writerow(row)
        self._fh.flush()  # type: ignore[union-attr]

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            self._writer = None
