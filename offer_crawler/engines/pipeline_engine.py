from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Optional

from .base import CrawlEngine, CrawlReport, Renderer
from .queue import RequestQueue
from ..config import CrawlConfig
from ..errors import UnroutableError
from ..export.base import Sink
from ..extractors.registry import ExtractorRegistry
from ..pipeline.controller import PipelineController
from ..pipeline.effects import Effect, Emit, EnqueueMany, EnqueueOne
from ..pipeline.failures import record_failure
from ..pipeline.payload import WorkItem
from ..utils.loader import load_symbol

logger = logging.getLogger(__name__)


class PipelineCrawlEngine(CrawlEngine):
    """
    Drives the offer pipeline over a request queue.
    - Controller owns transitions (pure).
    - Engine owns rendering, queueing, retries and the crawl budget.
    - Concurrency capped by the number of worker tasks.
    """

    #: Seconds an idle worker waits for in-flight items to enqueue more work.
    poll_interval = 0.05

    def __init__(
        self,
        config: CrawlConfig,
        *,
        controller: PipelineController,
        renderer: Renderer,
        sink: Sink,
        queue: Optional[RequestQueue] = None,
    ) -> None:
        self.config = config
        self.controller = controller
        self.renderer = renderer
        self.sink = sink
        self.queue = queue or RequestQueue()
        self._started = 0
        self._report = CrawlReport()
        self._per_state: Counter[str] = Counter()

    @classmethod
    def from_config(
        cls,
        config: CrawlConfig,
        *,
        sink: Sink,
        registry: Optional[ExtractorRegistry] = None,
        renderer: Optional[Renderer] = None,
    ) -> "PipelineCrawlEngine":
        if registry is None:
            registry = ExtractorRegistry()
            registry.discover_entry_points()
            registry.load_dotted(config.extra_extractors)
        controller = PipelineController(registry.extractors, base_url=config.base_url)
        if renderer is None:
            renderer = load_symbol(config.renderer)(config)
        return cls(config, controller=controller, renderer=renderer, sink=sink)

    async def crawl(self) -> CrawlReport:
        cfg = self.config
        await self.queue.add(self.controller.seed(cfg.keyword))
        try:
            async with self.renderer:
                workers = [asyncio.create_task(self._worker()) for _ in range(cfg.max_concurrency)]
                try:
                    await asyncio.gather(*workers)
                finally:
                    # A worker that raised must not leave siblings running past renderer close.
                    for worker in workers:
                        worker.cancel()
                    await asyncio.gather(*workers, return_exceptions=True)
        finally:
            logger.info("Crawler finished.")

        self._report.per_state = dict(self._per_state)
        if self._started >= cfg.max_requests_per_crawl and not self.queue.is_empty():
            self._report.budget_exhausted = True
            logger.info(
                "Reached max_requests_per_crawl=%s with %s work items left in the queue",
                cfg.max_requests_per_crawl,
                self.queue.pending_count,
            )
        return self._report

    async def _worker(self) -> None:
        while True:
            if self._started >= self.config.max_requests_per_crawl:
                return
            # Reserve a budget slot before yielding to the queue lock.
            self._started += 1
            item = await self.queue.fetch_next()
            if item is None:
                self._started -= 1
                if self.queue.is_finished():
                    return
                await asyncio.sleep(self.poll_interval)
                continue
            try:
                await self._handle(item)
            finally:
                await self.queue.mark_handled(item)
                self._report.handled += 1

    async def _handle(self, item: WorkItem) -> None:
        """
        Run one work item through its stage, retrying up to max_request_retries times.
        Emitted records reach the sink only after the stage succeeded, and exactly once.
        """
        cfg = self.config
        while True:
            logger.info("Processing %s...", item.url)
            try:
                page = await self.renderer.render(item.url)
                effect = self.controller.dispatch_item(item, page)
                if not isinstance(effect, Emit):
                    await self._enqueue(effect)
            except UnroutableError as exc:
                self._fail(item.with_error(f"{type(exc).__name__}: {exc}", retry=False))
                return
            except Exception as exc:  # every stage failure goes through the retry budget
                if item.retry_count >= cfg.max_request_retries:
                    self._fail(item.with_error(f"{type(exc).__name__}: {exc}", retry=False))
                    return
                item = item.with_error(f"{type(exc).__name__}: {exc}")
                self._report.retries += 1
                logger.warning(
                    "Retrying %s (%s/%s): %r", item.url, item.retry_count, cfg.max_request_retries, exc
                )
                await asyncio.sleep(min(cfg.retry_backoff * 2 ** (item.retry_count - 1), 10.0))
            else:
                break

        if isinstance(effect, Emit):
            try:
                self._emit(effect)
            except Exception as exc:  # sink errors are not retried; pushed records stay pushed
                self._fail(item.with_error(f"{type(exc).__name__}: {exc}", retry=False))
                return
        self._per_state[item.label.value] += 1

    def _fail(self, item: WorkItem) -> None:
        record_failure(self.sink, item)
        self._report.failed += 1

    async def _enqueue(self, effect: Effect) -> None:
        if isinstance(effect, EnqueueMany):
            # Sibling enqueues run concurrently; all are stored before this returns.
            added = await asyncio.gather(*(self.queue.add(i) for i in effect.items))
            logger.info("Enqueued %s of %s search results", sum(added), len(effect.items))
        elif isinstance(effect, EnqueueOne):
            await self.queue.add(effect.item)
        else:  # pragma: no cover - Effect is a closed union
            raise TypeError(f"Unknown effect: {effect!r}")

    def _emit(self, effect: Emit) -> None:
        for record in effect.records:
            self.sink.push(record.to_dict())
            self._report.emitted += 1


async def run_pipeline(
    config: CrawlConfig,
    *,
    sink: Optional[Sink] = None,
    renderer: Optional[Renderer] = None,
) -> CrawlReport:
    """
    Validate config, build the engine and run one crawl.
    A sink built here from ``config.sink`` is closed here; a passed-in sink belongs to the caller.
    """
    config.validate()
    owned = sink is None
    if sink is None:
        sink = load_symbol(config.sink)(config.output_path)
    try:
        engine = PipelineCrawlEngine.from_config(config, sink=sink, renderer=renderer)
        return await engine.crawl()
    finally:
        if owned:
            sink.close()
