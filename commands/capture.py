"""
Capture Primitives

Produce the raw bytes for each remote capture command. The dispatcher
treats these as opaque; tests substitute their own capturer.
"""

import collections
import sys
import threading
import time
import tracemalloc
import traceback
from typing import Dict

# Overlapping mem captures share one tracemalloc session. Tracing that was
# already on before the first capture is left running.
_tracing_lock = threading.Lock()
_tracing_users = 0
_tracing_owned = False


def _acquire_tracing() -> None:
    global _tracing_users, _tracing_owned
    with _tracing_lock:
        if _tracing_users == 0 and not tracemalloc.is_tracing():
            tracemalloc.start()
            _tracing_owned = True
        _tracing_users += 1


def _release_tracing() -> None:
    global _tracing_users, _tracing_owned
    with _tracing_lock:
        _tracing_users -= 1
        if _tracing_users == 0 and _tracing_owned:
            tracemalloc.stop()
            _tracing_owned = False


class ProfileCapturer:
    """
    Default stdlib-backed capture routines.

    - trace():       stack of every live thread
    - cpu_profile(): sampled frame histogram over `duration` seconds
    - mem_profile(): tracemalloc allocation statistics over `duration` seconds
    """

    TOP_ENTRIES = 50

    def __init__(self, duration: float = 30.0, sample_interval: float = 0.01):
        self.duration = duration
        self.sample_interval = sample_interval

    def package(self) -> bytes:
        """Identifies the running program so profiles can be symbolized."""
        return f"{sys.executable} {sys.version.split()[0]} {' '.join(sys.argv)}".encode("utf-8")

    def trace(self) -> bytes:
        names = {thread.ident: thread.name for thread in threading.enumerate()}
        lines = []
        for ident, frame in sys._current_frames().items():
            lines.append(f"thread {names.get(ident, '?')} ({ident}):")
            lines.extend(line.rstrip("\n") for line in traceback.format_stack(frame))
            lines.append("")
        return "\n".join(lines).encode("utf-8")

    def cpu_profile(self) -> bytes:
        own_ident = threading.get_ident()
        samples: Dict[str, int] = collections.Counter()
        total = 0
        deadline = time.monotonic() + self.duration
        while time.monotonic() < deadline:
            for ident, frame in sys._current_frames().items():
                if ident == own_ident:
                    continue
                code = frame.f_code
                samples[f"{code.co_filename}:{frame.f_lineno} {code.co_name}"] += 1
                total += 1
            time.sleep(self.sample_interval)

        lines = [f"samples: {total}"]
        for location, count in samples.most_common(self.TOP_ENTRIES):
            lines.append(f"{count:8d} {location}")
        return "\n".join(lines).encode("utf-8")

    def mem_profile(self) -> bytes:
        _acquire_tracing()
        try:
            time.sleep(self.duration)
            snapshot = tracemalloc.take_snapshot()
        finally:
            _release_tracing()

        stats = snapshot.statistics("lineno")
        lines = [f"allocations: {len(stats)}"]
        lines.extend(str(stat) for stat in stats[: self.TOP_ENTRIES])
        return "\n".join(lines).encode("utf-8")
