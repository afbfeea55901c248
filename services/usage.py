#!/usr/bin/env python3
"""
ossify/services/usage.py
Disk usage (du) over a prefix
"""

from dataclasses import dataclass

from services.engine import BaseEngine
from services.errors import DiskUsageFailed, NotFoundError, OperatorError
from services.formatting import format_size
from services.paths import is_directory_hint, normalize, to_key


@dataclass(frozen=True)
class UsageSummary:
    total_size: int = 0
    file_count: int = 0

    def add(self, size: int) -> 'UsageSummary':
        return UsageSummary(self.total_size + size, self.file_count + 1)


class UsageAggregator(BaseEngine):
    """Sums object sizes below a path; directories contribute nothing"""

    def disk_usage(self, path: str, summary: bool = False) -> UsageSummary:
        key = to_key(path)
        usage = UsageSummary()
        try:
            single = None
            if normalize(key) and not is_directory_hint(key):
                try:
                    single = self.operator.stat(key)
                except NotFoundError:
                    single = None

            if single is not None and single.is_file:
                entries = iter([single])
            else:
                entries = self.operator.list(key, recursive=True)

            for entry in entries:
                if entry.is_directory:
                    if not summary:
                        self.out(f"{'-':>8} {entry.key}")
                    continue
                usage = usage.add(entry.size)
                if not summary:
                    self.out(f"{format_size(entry.size):>8} {entry.key}")
        except OperatorError as e:
            raise DiskUsageFailed(path, e) from e

        if summary:
            self.out(f"{format_size(usage.total_size)} {path}")
            self.out(f"Total files: {usage.file_count}")
        return usage
