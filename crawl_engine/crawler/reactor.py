"""
The crawl run loop.

A single asyncio loop multiplexes every outstanding fetch. Each iteration
waits (bounded) for progress, then drains the fetches that completed since
the previous iteration, in completion order: record, classify, extract,
expand, admit.
"""

import asyncio
import logging
import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional
from dataclasses import dataclass, field

from .budget import BudgetState
from .classifier import Verdict, classify_unit
from .fetcher import FetchUnit
from .frontier import FetchTask, FrontierExpander
from .parser import LinkExtractor
from ..storage.sink import OutputRecord, OutputSink
from ..utils.config import CrawlerConfig
from ..utils.monitoring import CrawlMonitor


STATS_REPORT_INTERVAL = 30.0


class CancellationToken:
    """Cancellation flag observed by the reactor between iterations.

    Safe to set from a signal handler or another thread.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class CrawlStats:
    """Per-run counters beyond the budget itself."""
    start_time: float = field(default_factory=time.time)
    failures: int = 0
    pages_expanded: int = 0
    links_admitted: int = 0
    bytes_downloaded: int = 0
    verdicts: Dict[str, int] = field(default_factory=dict)

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time


class Reactor:
    """
    Drives one crawl from a seed task to exhaustion or cancellation.

    ``fetcher`` is any object with an ``async fetch(unit) -> unit`` method
    that records transport failures on the unit instead of raising. A
    reactor is single-use.
    """

    def __init__(self, config: CrawlerConfig, fetcher, sink: OutputSink, max_depth: int,
                 cancel_token: Optional[CancellationToken] = None,
                 extractor: Optional[LinkExtractor] = None,
                 expander: Optional[FrontierExpander] = None,
                 monitor: Optional[CrawlMonitor] = None):
        self.config = config
        self.fetcher = fetcher
        self.sink = sink
        self.cancel_token = cancel_token or CancellationToken()
        self.extractor = extractor or LinkExtractor(config.follow_relative_links)
        self.expander = expander or FrontierExpander(
            max_depth,
            max_link_per_page=config.max_link_per_page,
            min_link_length=config.min_link_length
        )
        self.monitor = monitor
        self.logger = logging.getLogger(__name__)

        self.budget = BudgetState(max_requests=config.max_requests, max_total=config.max_total)
        self.stats = CrawlStats()
        self.cancelled = False
        self.abandoned = 0

        self._in_flight: Dict[asyncio.Task, FetchUnit] = {}
        self._completed: Deque[asyncio.Task] = deque()
        self._last_report = time.time()

    async def run(self, seed: FetchTask) -> BudgetState:
        """Crawl from ``seed`` until nothing is pending or cancellation is seen."""
        if self.budget.scheduled_total:
            raise RuntimeError("Reactor has already been run")

        self.stats = CrawlStats()
        self._admit([seed])

        try:
            while not self.budget.exhausted:
                if self.cancel_token.is_cancelled:
                    self.cancelled = True
                    self.logger.info(
                        f"Cancellation requested, abandoning {self.budget.pending} pending fetches"
                    )
                    break

                await asyncio.wait(
                    list(self._in_flight),
                    timeout=self.config.poll_interval,
                    return_when=asyncio.FIRST_COMPLETED
                )
                self._drain()
                self._maybe_report()
        finally:
            await self._abandon_in_flight()

        return self.budget

    def _admit(self, tasks: List[FetchTask]):
        """Turn tasks into in-flight fetch units."""
        self.budget.admit(len(tasks))
        for task in tasks:
            unit = FetchUnit(task)
            future = asyncio.ensure_future(self.fetcher.fetch(unit))
            self._in_flight[future] = unit
            future.add_done_callback(self._completed.append)

    def _drain(self):
        """Process every unit that completed since the last iteration, once each."""
        while self._completed:
            future = self._completed.popleft()
            unit = self._in_flight.pop(future, None)
            if unit is None:
                continue
            # Anything the fetcher did not absorb (e.g. MemoryError) is fatal
            future.result()
            try:
                self._process(unit)
            finally:
                unit.release()

        if self.monitor:
            self.monitor.update_budget(self.budget.pending, self.budget.completed)

    def _process(self, unit: FetchUnit):
        ordinal = self.budget.complete()
        self.sink.write(OutputRecord(
            ordinal=ordinal,
            url=unit.effective_url,
            status=unit.status,
            error=unit.error
        ))

        verdict = classify_unit(unit, self.config.min_body_size)
        self.stats.verdicts[verdict.value] = self.stats.verdicts.get(verdict.value, 0) + 1
        self.stats.bytes_downloaded += unit.buffer.size

        admitted: List[FetchTask] = []
        if verdict is Verdict.FAILED:
            self.stats.failures += 1
            self.logger.warning(f"Connection failure for {unit.task.url}: {unit.error}")
        elif verdict.eligible:
            links = self.extractor.extract(unit.buffer.getvalue(), unit.effective_url)
            admitted = self.expander.expand(links, unit.effective_url, unit.task.depth, self.budget)
            if admitted:
                self._admit(admitted)
            self.stats.pages_expanded += 1
            self.stats.links_admitted += len(admitted)
        else:
            self.logger.debug(f"Not expanding {unit.effective_url}: {verdict.value}")

        if self.monitor:
            self.monitor.record_fetch(verdict.value, unit.buffer.size)
            if verdict.eligible:
                self.monitor.record_extraction(len(admitted))

    async def _abandon_in_flight(self):
        """Drop fetches that were still outstanding when the loop stopped."""
        self.abandoned = len(self._in_flight)
        if not self._in_flight:
            return

        futures = list(self._in_flight)
        for future in futures:
            if not future.done():
                future.cancel()
        # Best-effort cleanup so the session can close without dangling tasks
        await asyncio.gather(*futures, return_exceptions=True)

        for unit in self._in_flight.values():
            unit.release()
        self._in_flight.clear()
        self._completed.clear()

    def _maybe_report(self):
        now = time.time()
        if now - self._last_report < STATS_REPORT_INTERVAL:
            return
        self._last_report = now
        self.logger.info(
            f"Crawl Progress: "
            f"Completed={self.budget.completed}, "
            f"Pending={self.budget.pending}, "
            f"Scheduled={self.budget.scheduled_total}, "
            f"Failures={self.stats.failures}, "
            f"Elapsed={self.stats.elapsed_time:.1f}s"
        )
