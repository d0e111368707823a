"""
Run controller: executes one crawl at a time and owns its output sink.
"""

import asyncio
import logging
import random
import signal
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from .budget import BudgetState
from .fetcher import WebFetcher
from .frontier import FetchTask, FrontierExpander
from .parser import LinkExtractor
from .reactor import CancellationToken, Reactor
from ..storage.sink import OutputRecord, OutputSink
from ..utils.config import Config, CrawlerConfig
from ..utils.monitoring import CrawlMonitor


@dataclass
class CrawlReport:
    """Outcome of a finished crawl run."""
    seed_url: str
    max_depth: int
    budget: BudgetState
    records: List[OutputRecord]
    cancelled: bool
    abandoned: int
    sink_path: Path
    contents: str
    elapsed_time: float

    @property
    def completed(self) -> int:
        return self.budget.completed

    @property
    def failures(self) -> int:
        return sum(1 for record in self.records if record.failed)


class CrawlRun:
    """
    Executes crawls one at a time.

    A process-wide lock serializes :meth:`execute`: a crawl started while
    another is running blocks until the first one finishes. While a crawl
    runs on the main thread, SIGINT requests cancellation instead of raising
    KeyboardInterrupt.
    """

    _run_lock = threading.Lock()

    def __init__(self, config: Config,
                 fetcher_factory: Optional[Callable[[CrawlerConfig], object]] = None,
                 monitor: Optional[CrawlMonitor] = None,
                 error_stream: Optional[TextIO] = None):
        self.config = config
        self.fetcher_factory = fetcher_factory or WebFetcher
        self.monitor = monitor
        self.error_stream = error_stream
        self.cancel_token = CancellationToken()
        self.logger = logging.getLogger(__name__)

    def cancel(self):
        """Request cancellation of the current crawl."""
        self.cancel_token.cancel()

    def execute(self, seed_url: str, max_depth: int) -> CrawlReport:
        """Crawl from ``seed_url`` down to ``max_depth`` and report the result."""
        if max_depth < 0:
            raise ValueError("max_depth must be non-negative")

        with self._run_lock:
            self.cancel_token.reset()
            with self._interrupt_handler():
                return asyncio.run(self.crawl(seed_url, max_depth))

    @contextmanager
    def _interrupt_handler(self):
        """Route SIGINT to the cancellation token for the duration of a run."""
        if threading.current_thread() is not threading.main_thread():
            self.logger.debug("Not on the main thread, SIGINT handler not installed")
            yield
            return

        def handler(signum, frame):
            self.logger.info(f"Received signal {signum}, finishing current drain...")
            self.cancel_token.cancel()

        previous = signal.getsignal(signal.SIGINT)
        signal.signal(signal.SIGINT, handler)
        try:
            yield
        finally:
            # None means the handler was installed outside Python
            signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)

    async def crawl(self, seed_url: str, max_depth: int) -> CrawlReport:
        """
        Run the reactor inside an already running event loop.

        Callers outside :meth:`execute` are responsible for not running two
        crawls at once.
        """
        crawler_config = self.config.crawler
        start_time = time.time()

        if self.monitor is None:
            self.monitor = CrawlMonitor(
                enable_server=self.config.monitoring.metrics_enabled,
                prometheus_port=self.config.monitoring.prometheus_port
            )
            self.monitor.start_server()

        expander = FrontierExpander(
            max_depth,
            max_link_per_page=crawler_config.max_link_per_page,
            min_link_length=crawler_config.min_link_length,
            rng=random.Random(crawler_config.random_seed)
        )

        self.logger.info("=== CRAWL STARTING ===")
        self.logger.info(f"Seed URL: {seed_url}")
        self.logger.info(f"Max depth: {max_depth}")
        self.logger.info(
            f"Budgets: max_total={crawler_config.max_total}, "
            f"max_requests={crawler_config.max_requests}, "
            f"max_connections={crawler_config.max_connections}, "
            f"max_link_per_page={crawler_config.max_link_per_page}"
        )

        with OutputSink(self.config.output.file, error_stream=self.error_stream) as sink:
            async with self.fetcher_factory(crawler_config) as fetcher:
                reactor = Reactor(
                    crawler_config,
                    fetcher,
                    sink,
                    max_depth,
                    cancel_token=self.cancel_token,
                    extractor=LinkExtractor(crawler_config.follow_relative_links),
                    expander=expander,
                    monitor=self.monitor
                )
                budget = await reactor.run(FetchTask(url=seed_url, depth=0))
            records = sink.records

        report = CrawlReport(
            seed_url=seed_url,
            max_depth=max_depth,
            budget=budget,
            records=records,
            cancelled=reactor.cancelled,
            abandoned=reactor.abandoned,
            sink_path=sink.path,
            contents=sink.read_contents(),
            elapsed_time=time.time() - start_time
        )
        self._log_final_stats(report, reactor)
        return report

    def _log_final_stats(self, report: CrawlReport, reactor: Reactor):
        self.logger.info("=== CRAWL CANCELLED ===" if report.cancelled else "=== CRAWL COMPLETED ===")
        self.logger.info(f"Fetches completed: {report.completed}")
        self.logger.info(f"Connection failures: {report.failures}")
        self.logger.info(f"Abandoned in flight: {report.abandoned}")
        self.logger.info(f"Budget: {report.budget.to_dict()}")
        self.logger.info(f"Pages expanded: {reactor.stats.pages_expanded}")
        self.logger.info(f"Links admitted: {reactor.stats.links_admitted}")
        self.logger.info(f"Data downloaded: {reactor.stats.bytes_downloaded / 1024:.1f} KB")
        self.logger.info(f"Total time: {report.elapsed_time:.2f} seconds")
        self.logger.info(f"Results written to: {report.sink_path}")
        if hasattr(reactor.fetcher, 'get_stats'):
            self.logger.info(f"Fetcher stats: {reactor.fetcher.get_stats()}")
        if self.monitor:
            self.logger.info(f"Metrics summary: {self.monitor.get_summary()}")
