"""
Request Registries

Process-lifetime, thread-safe buffers filled by the interceptor and
emptied by the stats poller.

DESIGN RULES:
- Locks are held for the critical section only
- Readers always get a copy, never the live collection
- No eviction: consumers are expected to drain periodically
"""

from threading import Lock
from typing import Dict, List

from observability.outcome import RequestOutcome


class LatencyRegistry:
    """
    Append-only (until reset) list of reported request outcomes.

    Order reflects whichever caller acquired the lock first.
    """

    def __init__(self):
        self._outcomes: List[RequestOutcome] = []
        self._lock = Lock()

    def add(self, outcome: RequestOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    def list(self) -> List[RequestOutcome]:
        """Return a copy of every recorded outcome."""
        with self._lock:
            return list(self._outcomes)

    def reset(self) -> None:
        with self._lock:
            self._outcomes = []

    def drain(self) -> List[RequestOutcome]:
        """List-then-reset as one atomic step."""
        with self._lock:
            outcomes = self._outcomes
            self._outcomes = []
        return outcomes

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)


class StatusCounter:
    """Per-status-code request counter."""

    def __init__(self):
        self._counts: Dict[int, int] = {}
        self._lock = Lock()

    def inc(self, status_code: int) -> None:
        with self._lock:
            self._counts[status_code] = self._counts.get(status_code, 0) + 1

    def snapshot(self) -> Dict[int, int]:
        with self._lock:
            return dict(self._counts)

    def drain(self) -> Dict[int, int]:
        with self._lock:
            counts = self._counts
            self._counts = {}
        return counts
