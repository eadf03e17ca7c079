"""
Stats Poller

Periodically drains the request registries and uploads them. Every
upload asks for response analysis, which is how pending remote
commands are picked up.
"""

import logging
import threading
from typing import Optional

from collector.client import CollectorClient, STATS_PATH
from observability.registry import LatencyRegistry, StatusCounter
from schemas.report import StatsReport


logger = logging.getLogger(__name__)


class StatsPoller:
    """
    Background uploader for recorded outcomes and status counts.
    """

    def __init__(
        self,
        client: CollectorClient,
        latency: LatencyRegistry,
        status_counts: StatusCounter,
        interval: float = 60.0,
    ):
        self._client = client
        self._latency = latency
        self._status_counts = status_counts
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def build_report(self) -> StatsReport:
        """Drain both registries into one report."""
        outcomes = self._latency.drain()
        counts = self._status_counts.drain()
        return StatsReport(
            https=[outcome.to_dict() for outcome in outcomes],
            rpms={str(code): count for code, count in counts.items()},
            threads=threading.active_count(),
        )

    def flush(self) -> Optional[int]:
        """Upload one report. Returns the collector's status code."""
        report = self.build_report()
        return self._client.post(report.to_json(), self._client.url(STATS_PATH), analyse_response=True)

    def start(self) -> None:
        if self.running:
            return
        # Each run owns its stop event; a previous loop that outlived
        # stop()'s join keeps its own (already set) event and exits.
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop,), name="deferwatch-stats", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"[STATS] Poller did not stop within {timeout}s")
            self._thread = None

    def _loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                self.flush()
            except Exception as e:
                logger.warning(f"[STATS] Failed to flush stats: {e}")
