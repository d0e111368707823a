"""
Metrics collection for a crawl run.
"""

import logging
import time
from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server


class CrawlMonitor:
    """
    Prometheus metrics for one crawl engine.

    Each monitor owns its registry so several runs in one process (tests,
    embedding) never collide on metric names.
    """

    def __init__(self, enable_server: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_server = enable_server
        self.prometheus_port = prometheus_port
        self.start_time = time.time()
        self.registry = CollectorRegistry()

        self.fetches_total = Counter(
            'crawler_fetches_total',
            'Completed fetches by outcome',
            ['outcome'],
            registry=self.registry
        )
        self.links_admitted_total = Counter(
            'crawler_links_admitted_total',
            'Links admitted into the fetch pool',
            registry=self.registry
        )
        self.pages_extracted_total = Counter(
            'crawler_pages_extracted_total',
            'Eligible pages considered for link expansion',
            registry=self.registry
        )
        self.bytes_downloaded_total = Counter(
            'crawler_bytes_downloaded_total',
            'Total response bytes downloaded',
            registry=self.registry
        )
        self.pending = Gauge(
            'crawler_pending_fetches',
            'Fetches admitted but not yet processed',
            registry=self.registry
        )
        self.completed = Gauge(
            'crawler_completed_fetches',
            'Fetches processed so far',
            registry=self.registry
        )

    def start_server(self):
        """Start the Prometheus exposition server if enabled."""
        if not self.enable_server:
            return

        start_http_server(self.prometheus_port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def record_fetch(self, outcome: str, size: int):
        """Record one processed fetch."""
        self.fetches_total.labels(outcome=outcome).inc()
        if size:
            self.bytes_downloaded_total.inc(size)

    def record_extraction(self, admitted: int):
        """Record one page sent through extraction and how many links it yielded."""
        self.pages_extracted_total.inc()
        if admitted:
            self.links_admitted_total.inc(admitted)

    def update_budget(self, pending: int, completed: int):
        self.pending.set(pending)
        self.completed.set(completed)

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read a sample from the registry, 0.0 if it has not been observed."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the run's metrics."""
        runtime = time.time() - self.start_time
        completed = self.get_value('crawler_completed_fetches')

        return {
            'runtime_seconds': runtime,
            'completed': completed,
            'pending': self.get_value('crawler_pending_fetches'),
            'links_admitted': self.get_value('crawler_links_admitted_total'),
            'pages_extracted': self.get_value('crawler_pages_extracted_total'),
            'bytes_downloaded': self.get_value('crawler_bytes_downloaded_total'),
            'fetches_per_second': completed / runtime if runtime > 0 else 0,
        }
