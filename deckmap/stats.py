"""Dispatch counters."""

import logging
import threading
from typing import Dict


class MessageStatistics:
    """Thread-safe named counters.

    Typical counters:
        - messages: Messages passed to handle_incoming
        - unmapped: Messages with no binding
        - script_calls: Script handler invocations
        - script_errors: Script handlers that raised
        - actions: Actions returned to the host

    Examples:
        >>> stats = MessageStatistics()
        >>> stats.increment('messages')
        >>> stats.get('messages')
        1
    """

    def __init__(self):
        self.counters: Dict[str, int] = {}
        self.lock = threading.Lock()

    def increment(self, counter_name: str, amount: int = 1) -> None:
        """Increment a counter, creating it at 0 if needed."""
        with self.lock:
            self.counters[counter_name] = self.counters.get(counter_name, 0) + amount

    def get(self, counter_name: str) -> int:
        """Current value of a counter, 0 if never incremented."""
        with self.lock:
            return self.counters.get(counter_name, 0)

    def snapshot(self) -> Dict[str, int]:
        with self.lock:
            return dict(self.counters)

    def log_stats(self, logger: logging.Logger, title: str = "STATISTICS") -> None:
        """Log all counters in sorted order under a title line."""
        snapshot = self.snapshot()

        logger.info(title)
        for name in sorted(snapshot.keys()):
            display_name = name.replace('_', ' ').title()
            logger.info(f"  {display_name}: {snapshot[name]}")
