#!/usr/bin/env python3
"""
ossify/services/transfer.py
Chunked transfers with bounded memory, plus the worker pool tree
operations run their file transfers on
"""

import os
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterable, Iterator, List, Optional, Set, Tuple

from services.operator import StorageOperator, Writer
from services.progress import ProgressReporter


DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_BUFFER_SIZE = 8192
PROGRESS_UPDATE_INTERVAL = 100
DEFAULT_CONCURRENCY = 10


# ============================================================================
# READERS
# ============================================================================

def iter_remote_chunks(operator: StorageOperator, key: str, size_hint: Optional[int] = None,
                       chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Ranged reads of at most chunk_size bytes until the object is exhausted"""
    offset = 0
    while True:
        if size_hint is not None:
            if offset >= size_hint:
                return
            length = min(chunk_size, size_hint - offset)
        else:
            length = chunk_size

        data = operator.read(key, offset, length)
        if not data:
            return
        yield data
        offset += len(data)

        if size_hint is None and len(data) < length:
            return


def iter_local_chunks(path: str, buffer_size: int = DEFAULT_BUFFER_SIZE) -> Iterator[memoryview]:
    """
    Read a local file through one reusable buffer.

    Each yielded view is only valid until the next iteration.
    """
    buffer = bytearray(buffer_size)
    view = memoryview(buffer)
    with open(path, 'rb') as f:
        while True:
            n = f.readinto(buffer)
            if not n:
                return
            yield view[:n]


# ============================================================================
# LOCAL WRITERS
# ============================================================================

class LocalFileWriter(Writer):
    """Writes a local file through a staging file renamed into place on close"""

    def __init__(self, path: str):
        self.path = Path(path)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix='.part', dir=str(self.path.parent))
        self._tmp_path = Path(tmp_name)
        self._handle = os.fdopen(fd, 'wb')
        self._closed = False

    def write(self, chunk) -> None:
        self._handle.write(chunk)

    def close(self) -> None:
        if self._closed:
            return
        self._handle.close()
        os.replace(self._tmp_path, self.path)
        self._closed = True

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._handle.close()
        if self._tmp_path.exists():
            self._tmp_path.unlink()


class StreamWriter(Writer):
    """Writes straight into an open binary stream such as stdout"""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def write(self, chunk) -> None:
        self.stream.write(chunk)

    def close(self) -> None:
        self.stream.flush()

    def abort(self) -> None:
        self.stream.flush()


# ============================================================================
# TRANSFER
# ============================================================================

def transfer(chunks: Iterable, writer: Writer, reporter: Optional[ProgressReporter] = None) -> int:
    """
    Drive chunks into writer and return the number of bytes written.

    The writer is closed only after every chunk went through; on any
    failure it is aborted and the error propagates.
    """
    total = 0
    try:
        for chunk in chunks:
            if not len(chunk):
                break
            writer.write(chunk)
            total += len(chunk)
            if reporter is not None:
                reporter.update(total)
        writer.close()
    except BaseException:
        writer.abort()
        raise
    return total


@dataclass(frozen=True)
class TransferTask:
    source: str
    destination: str
    size_hint: Optional[int] = None


@dataclass
class TransferSummary:
    """Counts shared by the workers of one tree operation"""
    files: int = 0
    bytes: int = 0
    directories: int = 0
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    _lock: Any = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, nbytes: int) -> None:
        with self._lock:
            self.files += 1
            self.bytes += nbytes

    def record_directory(self) -> None:
        with self._lock:
            self.directories += 1

    def skip(self, key: str, reason: str) -> None:
        with self._lock:
            self.skipped.append((key, reason))


# ============================================================================
# WORKER POOL
# ============================================================================

class TransferPool:
    """
    Runs transfers on at most max_workers threads.

    submit() blocks while every worker is busy, so a lazy listing is only
    consumed as fast as transfers complete. After the first failure no
    new work is accepted and the error is re-raised from submit() or
    join().
    """

    def __init__(self, max_workers: int = DEFAULT_CONCURRENCY):
        self.max_workers = max(1, int(max_workers))
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='ossify-transfer')
        self._slots = threading.BoundedSemaphore(self.max_workers)
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None

    def _raise_if_failed(self) -> None:
        with self._lock:
            error = self._error
        if error is not None:
            raise error

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        self._raise_if_failed()
        self._slots.acquire()
        try:
            self._raise_if_failed()
            future = self._executor.submit(fn, *args, **kwargs)
        except BaseException:
            self._slots.release()
            raise

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
            if not future.cancelled():
                error = future.exception()
                if error is not None and self._error is None:
                    self._error = error
        self._slots.release()

    def join(self) -> None:
        """Wait for every submitted transfer, then raise the first failure if any"""
        with self._lock:
            pending = list(self._pending)
        wait(pending)
        self._raise_if_failed()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.join()
        finally:
            self.shutdown()
        return False
