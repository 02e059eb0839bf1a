from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, IO, Optional


class JSONLinesSink:
    """
    Writes one JSON object per line. The file is truncated on the first push of
    a run; each push is flushed so a crash mid-run keeps every record written so far.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._fh: Optional[IO[str]] = None

    def push(self, record: Dict[str, Any]) -> None:
        if self._fh is None:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self.path, "w", encoding="utf-8")
        self._fh.write(json.dumps(record, ensure_ascii=False) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
