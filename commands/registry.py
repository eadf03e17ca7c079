"""
Command Registry

Tracks which remotely-requested command ids have been dispatched.

DESIGN RULES:
- check-and-mark is a single atomic step
- Entries are never removed: a command id runs at most once per process
"""

from threading import Lock
from typing import Dict, List


class CommandRegistry:
    """Thread-safe set of claimed command ids."""

    def __init__(self):
        self._running: Dict[int, bool] = {}
        self._lock = Lock()

    def claim(self, command_id: int) -> bool:
        """
        Mark command_id as running.

        Returns:
            True if this call claimed the id, False if it was already claimed.
        """
        with self._lock:
            if self._running.get(command_id):
                return False
            self._running[command_id] = True
            return True

    def is_running(self, command_id: int) -> bool:
        with self._lock:
            return self._running.get(command_id, False)

    def running(self) -> List[int]:
        """Snapshot of every claimed id."""
        with self._lock:
            return [command_id for command_id, flag in self._running.items() if flag]
