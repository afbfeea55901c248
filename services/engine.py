#!/usr/bin/env python3
"""
ossify/services/engine.py
Shared plumbing for the tree operation engines
"""

import threading
from typing import Callable, Optional

from services.operator import StorageOperator
from services.paths import PathResolver
from services.progress import ProgressReporter, ProgressSink
from services.transfer import (
    DEFAULT_BUFFER_SIZE, DEFAULT_CHUNK_SIZE, DEFAULT_CONCURRENCY, PROGRESS_UPDATE_INTERVAL,
)


class BaseEngine:
    """Holds the operator handle, output sinks and tuning knobs for one operation"""

    def __init__(
        self,
        operator: StorageOperator,
        out: Optional[Callable[[str], None]] = None,
        progress_sink: Optional[ProgressSink] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        progress_interval: int = PROGRESS_UPDATE_INTERVAL,
        max_concurrency: int = DEFAULT_CONCURRENCY,
        show_progress: bool = False,
        debug: bool = False,
    ):
        self.operator = operator
        self.resolver = PathResolver(operator)
        self._out = out or print
        self.progress_sink = progress_sink
        self.chunk_size = chunk_size
        self.buffer_size = buffer_size
        self.progress_interval = progress_interval
        self.max_concurrency = max_concurrency
        self.show_progress = show_progress
        self.debug = debug
        self._out_lock = threading.Lock()

    def out(self, message: str) -> None:
        with self._out_lock:
            self._out(message)

    def _log(self, message: str) -> None:
        """Debug logging"""
        if self.debug:
            self.out(f"🔍 [DEBUG] {message}")

    def _warn(self, message: str) -> None:
        self.out(f"⚠️  {message}")

    def _reporter(self, label: str, total_bytes: Optional[int], chunk_size: int) -> ProgressReporter:
        return ProgressReporter(label, total_bytes, chunk_size * self.progress_interval, self.progress_sink)

    def _progress_bar_disabled(self) -> Optional[bool]:
        # None lets tqdm switch itself off when stderr is not a terminal
        return None if self.show_progress else True
