#!/usr/bin/env python3
"""
ossify/services/lister.py
Directory listing over the flat key space
"""

from typing import Iterator

from services.engine import BaseEngine
from services.errors import ListDirectoryFailed, NotFoundError, OperatorError
from services.formatting import format_date
from services.operator import StorageEntry
from services.paths import is_directory_hint, to_key


class Lister(BaseEngine):
    """Prints the entries under a path, one per line"""

    def walk(self, path: str, recursive: bool = False) -> Iterator[StorageEntry]:
        """Lazy sequence of entries under path; a file path yields just that file"""
        key = to_key(path)
        if key and not is_directory_hint(key):
            try:
                entry = self.operator.stat(key)
            except NotFoundError:
                entry = None
            if entry is not None and entry.is_file:
                yield entry
                return
        yield from self.operator.list(key, recursive=recursive)

    def list(self, path: str, long: bool = False, recursive: bool = False) -> int:
        """Print entries under path and return how many were printed"""
        self._log(f"Listing '{path}' (long={long}, recursive={recursive})")
        count = 0
        try:
            for entry in self.walk(path, recursive):
                self.out(self.format_entry(entry, long))
                count += 1
        except OperatorError as e:
            raise ListDirectoryFailed(path, e) from e
        self._log(f"Listed {count} entries")
        return count

    @staticmethod
    def format_entry(entry: StorageEntry, long: bool = False) -> str:
        if not long:
            return entry.key
        entry_type = 'DIR' if entry.is_directory else 'FILE'
        size = '-' if entry.is_directory else str(entry.size)
        return f"{entry_type:<6} {size:>10} {format_date(entry.last_modified)} {entry.key}"
