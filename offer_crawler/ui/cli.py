from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List

from ..config import CrawlConfig
from ..errors import InputValidationError
from ..utils.logging import setup_logging
from ..engines.base import CrawlReport
from ..engines.pipeline_engine import run_pipeline

logger = logging.getLogger(__name__)

EXIT_INVALID_INPUT = 2


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Crawl product offers for a search keyword")
    p.add_argument("keyword", nargs="?", default=None, help="Search keyword (overrides --input)")
    p.add_argument("--input", type=str, default=None, help='Path to input JSON ({"keyword": "..."})')
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--max-requests", type=int, default=None,
                   help="Max work items handled per crawl (default from config)")
    p.add_argument("--max-retries", type=int, default=None, help="Retries per work item (default from config)")
    p.add_argument("--max-concurrency", type=int, default=None, help="Max concurrency (default from config)")
    p.add_argument("--base-url", type=str, default=None, help="Storefront base URL")
    p.add_argument("--renderer", type=str, default=None, help="Renderer dotted path (module:ClassName)")
    p.add_argument("--sink", type=str, default=None, help="Sink dotted path (module:ClassName)")
    p.add_argument("--output", type=str, default=None, help="Output file path")
    p.add_argument("--no-headless", action="store_true", help="Show the browser window")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of CLI crawl")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config:
        cfg = CrawlConfig.from_file(args.config)
    else:
        cfg = CrawlConfig.from_env()

    if args.input:
        cfg.apply_input(args.input)
    if args.keyword is not None:
        cfg.keyword = args.keyword
    if args.max_requests is not None:
        cfg.max_requests_per_crawl = args.max_requests
    if args.max_retries is not None:
        cfg.max_request_retries = args.max_retries
    if args.max_concurrency is not None:
        cfg.max_concurrency = args.max_concurrency
    if args.base_url:
        cfg.base_url = args.base_url
    if args.renderer:
        cfg.renderer = args.renderer
    if args.sink:
        cfg.sink = args.sink
    if args.output:
        cfg.output_path = args.output
    if args.no_headless:
        cfg.headless = False

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("offer_crawler.apis.app:app", host=host, port=port)


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
    except InputValidationError as exc:
        # Fail fast: nothing has been queued yet.
        logger.error("%s", exc)
        return EXIT_INVALID_INPUT

    report: CrawlReport = asyncio.run(run_pipeline(cfg))

    logger.info("Handled: %s | Failed: %s | Offers: %s | Output: %s",
                report.handled,
                report.failed,
                report.emitted,
                cfg.output_path)
    return 0
