"""Timing and counters for one job session run."""

import time
from contextlib import contextmanager
from typing import Dict, Any, Iterator
from collections import defaultdict


class SessionMetrics:
    """
    Collects step durations and counters while a session runs.

    Attached to each SessionResult as a plain summary dict.
    """

    def __init__(self):
        self._start_time = time.monotonic()
        self._durations: Dict[str, float] = {}
        self._counters: Dict[str, int] = defaultdict(int)

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        """Time a session step, recording its duration even when it fails."""
        started = time.monotonic()
        try:
            yield
        finally:
            self._durations[name] = self._durations.get(name, 0.0) + (time.monotonic() - started)

    def increment(self, name: str, amount: int = 1) -> None:
        self._counters[name] += amount

    def counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def duration(self, name: str) -> float:
        return self._durations.get(name, 0.0)

    def elapsed_time(self) -> float:
        return time.monotonic() - self._start_time

    def get_summary(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            f"{name}_duration": round(value, 3)
            for name, value in self._durations.items()
        }
        summary.update(self._counters)
        summary['total_duration'] = round(self.elapsed_time(), 3)
        return summary
