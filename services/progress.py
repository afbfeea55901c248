#!/usr/bin/env python3
"""
ossify/services/progress.py
Throttled byte progress for a single transfer
"""

from typing import Callable, Optional


ProgressSink = Callable[[str], None]


class ProgressReporter:
    """
    Tracks bytes moved for one transfer and reports a percentage through
    the sink each time the count crosses another multiple of step_bytes.
    Nothing is reported when the total size is unknown.
    """

    def __init__(self, label: str, total_bytes: Optional[int], step_bytes: int,
                 sink: Optional[ProgressSink] = None):
        self.label = label
        self.total_bytes = total_bytes
        self.step_bytes = max(1, int(step_bytes))
        self.sink = sink
        self.transferred_bytes = 0
        self._last_step = 0

    @property
    def percent(self) -> int:
        if not self.total_bytes:
            return 0
        return min(100, int(self.transferred_bytes * 100 / self.total_bytes))

    def update(self, transferred_bytes: int) -> bool:
        """Record the cumulative byte count; returns True when a report went out"""
        self.transferred_bytes = transferred_bytes
        step = transferred_bytes // self.step_bytes
        if step <= self._last_step:
            return False
        self._last_step = step
        if self.sink is None or not self.total_bytes:
            return False
        self.sink(f"{self.label}: {self.percent}%")
        return True
