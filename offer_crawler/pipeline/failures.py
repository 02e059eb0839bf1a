from __future__ import annotations

import logging
from typing import Any, Dict

from ..export.base import Sink
from .payload import WorkItem

logger = logging.getLogger(__name__)

DEBUG_KEY = "#debug"


def request_debug_info(item: WorkItem) -> Dict[str, Any]:
    """Diagnostics for a work item that never made it through its stage."""
    return {
        "url": item.url,
        "uniqueKey": item.unique_key,
        "label": item.label.value,
        "retryCount": item.retry_count,
        "errorMessages": list(item.error_messages),
        "payload": item.payload.to_dict(),
    }


def record_failure(sink: Sink, item: WorkItem) -> Dict[str, Any]:
    """Push one debug record so a failed branch is visible in the output."""
    logger.error("Request %s failed after %s attempt(s): %s", item.url, len(item.error_messages),
                 item.error_messages[-1] if item.error_messages else "no error recorded")
    record = {DEBUG_KEY: request_debug_info(item)}
    sink.push(record)
    return record
