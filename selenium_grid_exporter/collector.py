"""
Scrape-transform-publish cycle driven by Prometheus pulls.
"""
import threading
import time
from typing import Iterable, List, Optional

import structlog
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from .errors import DecodeError, FetchError
from .fetcher import GridFetcher
from .logger import get_logger
from .metrics import GridMetrics
from .snapshot import decode_snapshot


class GridCollector(Collector):
    """
    Refreshes the grid metrics on every collection.

    Register an instance with a ``CollectorRegistry``; each exposition of that
    registry runs one fetch against the grid and emits the resulting state.
    Fetch, decode, publish and read-out all happen under one lock, so
    concurrent scrapes are serialised and never see a half-updated set.
    """

    def __init__(self, fetcher: GridFetcher, metrics: Optional[GridMetrics] = None,
                 logger: Optional[structlog.stdlib.BoundLogger] = None):
        self.fetcher = fetcher
        self.metrics = metrics or GridMetrics()
        self.logger = logger or get_logger("collector")
        self._lock = threading.Lock()

    def refresh(self):
        """Run one fetch-decode-publish cycle. Never raises on upstream failure."""
        with self._lock:
            self._refresh()

    def _refresh(self):
        try:
            self._scrape()
        except Exception as e:
            self._fail("Unexpected error refreshing Selenium Grid metrics", e)

    def _scrape(self):
        start_time = time.monotonic()
        try:
            body = self.fetcher.fetch()
        except FetchError as e:
            self._fail("Error scraping Selenium Grid", e)
            return

        try:
            snapshot = decode_snapshot(body)
        except DecodeError as e:
            self._fail("Error decoding Selenium Grid response", e)
            return

        self.metrics.publish(snapshot)
        self.logger.debug(
            "Successfully scraped Selenium Grid",
            url=self.fetcher.url,
            nodes=len(snapshot.nodes),
            duration_seconds=round(time.monotonic() - start_time, 4),
        )

    def _fail(self, message: str, error: Exception):
        self.metrics.mark_down()
        self.logger.error(
            message,
            url=self.fetcher.url,
            error=str(error),
            error_type=type(error).__name__,
        )

    def collect(self) -> Iterable[Metric]:
        with self._lock:
            self._refresh()
            families: List[Metric] = list(self.metrics.registry.collect())
        return families

    def describe(self) -> Iterable[Metric]:
        # Registration only needs the names; avoid hitting the grid for it.
        return list(self.metrics.registry.collect())
