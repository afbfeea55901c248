"""
Tests for the chunked transfer primitive, progress reporting and the
bounded worker pool.
"""

import threading
import time

import pytest
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.formatting import format_size
from services.operator import Writer
from services.progress import ProgressReporter
from services.transfer import (
    TransferPool,
    TransferSummary,
    iter_local_chunks,
    iter_remote_chunks,
    transfer,
)
from conftest import put_object


class RecordingWriter(Writer):
    """Writer keeping everything in memory and remembering how it ended."""

    def __init__(self):
        self.data = bytearray()
        self.closed = 0
        self.aborted = 0

    def write(self, chunk):
        self.data.extend(chunk)

    def close(self):
        self.closed += 1

    def abort(self):
        self.aborted += 1


class TestTransfer:
    """Test transfer()."""

    def test_copies_all_chunks_and_closes_once(self):
        writer = RecordingWriter()
        total = transfer([b'ab', b'cd', b'e'], writer)
        assert total == 5
        assert bytes(writer.data) == b'abcde'
        assert writer.closed == 1
        assert writer.aborted == 0

    def test_zero_length_chunk_terminates(self):
        writer = RecordingWriter()
        total = transfer([b'ab', b'', b'never'], writer)
        assert total == 2
        assert bytes(writer.data) == b'ab'

    def test_failure_aborts_writer_and_propagates(self):
        def chunks():
            yield b'partial'
            raise IOError("connection reset")

        writer = RecordingWriter()
        with pytest.raises(IOError):
            transfer(chunks(), writer)
        assert writer.closed == 0
        assert writer.aborted == 1

    def test_reports_cumulative_bytes(self):
        seen = []
        reporter = ProgressReporter('copy', total_bytes=4, step_bytes=1, sink=seen.append)
        transfer([b'a', b'b', b'c', b'd'], RecordingWriter(), reporter)
        assert seen == ['copy: 25%', 'copy: 50%', 'copy: 75%', 'copy: 100%']


class TestReaders:
    """Test chunk readers."""

    def test_remote_reads_are_bounded_by_chunk_size(self, store):
        put_object(store, 'big.bin', b'x' * 10)
        chunks = list(iter_remote_chunks(store, 'big.bin', size_hint=10, chunk_size=3))
        assert [len(c) for c in chunks] == [3, 3, 3, 1]

    def test_remote_read_without_size_hint(self, store):
        put_object(store, 'big.bin', b'0123456789')
        data = b''.join(iter_remote_chunks(store, 'big.bin', size_hint=None, chunk_size=4))
        assert data == b'0123456789'

    def test_empty_object_yields_nothing(self, store):
        put_object(store, 'empty.bin', b'')
        assert list(iter_remote_chunks(store, 'empty.bin', size_hint=0)) == []

    def test_local_chunks_reuse_one_buffer(self, tmp_path):
        path = tmp_path / 'data.bin'
        path.write_bytes(b'abcdefgh')
        writer = RecordingWriter()
        transfer(iter_local_chunks(str(path), buffer_size=3), writer)
        assert bytes(writer.data) == b'abcdefgh'


class TestProgressReporter:
    """Test throttled progress output."""

    def test_reports_only_when_crossing_a_step(self):
        seen = []
        reporter = ProgressReporter('upload', total_bytes=1000, step_bytes=300, sink=seen.append)
        for n in (100, 200, 299, 300, 450, 610, 1000):
            reporter.update(n)
        assert seen == ['upload: 30%', 'upload: 61%', 'upload: 100%']

    def test_silent_without_total(self):
        seen = []
        reporter = ProgressReporter('upload', total_bytes=0, step_bytes=1, sink=seen.append)
        reporter.update(10)
        assert seen == []


class TestFormatSize:
    """Test format_size."""

    @pytest.mark.parametrize('size,expected', [
        (0, '0B'),
        (1023, '1023B'),
        (1024, '1.0K'),
        (1536, '1.5K'),
        (1024 * 1024, '1.0M'),
        (5 * 1024 ** 3, '5.0G'),
        (3 * 1024 ** 4, '3.0T'),
    ])
    def test_examples(self, size, expected):
        assert format_size(size) == expected


class TestTransferPool:
    """Test the bounded worker pool."""

    def test_never_exceeds_max_workers(self):
        lock = threading.Lock()
        state = {'active': 0, 'peak': 0}

        def work():
            with lock:
                state['active'] += 1
                state['peak'] = max(state['peak'], state['active'])
            time.sleep(0.01)
            with lock:
                state['active'] -= 1

        with TransferPool(max_workers=2) as pool:
            for _ in range(10):
                pool.submit(work)

        assert state['peak'] <= 2

    def test_first_failure_is_raised(self):
        def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            with TransferPool(max_workers=1) as pool:
                pool.submit(fail)

    def test_no_new_work_after_failure(self):
        ran = []

        def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            with TransferPool(max_workers=1) as pool:
                pool.submit(fail)
                for i in range(5):
                    time.sleep(0.01)
                    pool.submit(ran.append, i)

        assert len(ran) < 5

    def test_summary_counts(self):
        summary = TransferSummary()
        with TransferPool(max_workers=3) as pool:
            for _ in range(6):
                pool.submit(summary.record, 10)
        assert summary.files == 6
        assert summary.bytes == 60
