from __future__ import annotations

from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ..config import CrawlConfig
from ..errors import InputValidationError
from ..engines.base import CrawlReport
from ..engines.pipeline_engine import run_pipeline
from ..export.memory import MemorySink
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="offer_crawler API", version=__version__)


class CrawlRequest(BaseModel):
    keyword: str
    max_requests_per_crawl: Optional[int] = None
    max_request_retries: Optional[int] = None
    max_concurrency: Optional[int] = None
    base_url: Optional[str] = None
    renderer: Optional[str] = None


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/crawl")
async def crawl(req: CrawlRequest) -> Dict[str, Any]:
    cfg = CrawlConfig.from_env()
    cfg.keyword = req.keyword
    if req.max_requests_per_crawl is not None:
        cfg.max_requests_per_crawl = req.max_requests_per_crawl
    if req.max_request_retries is not None:
        cfg.max_request_retries = req.max_request_retries
    if req.max_concurrency is not None:
        cfg.max_concurrency = req.max_concurrency
    if req.base_url:
        cfg.base_url = req.base_url
    if req.renderer:
        cfg.renderer = req.renderer

    sink = MemorySink()
    try:
        report: CrawlReport = await run_pipeline(cfg, sink=sink)
    except InputValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return {**report.to_dict(), "items": sink.records}
