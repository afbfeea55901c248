#!/usr/bin/env python3
"""
ossify/services/reader.py
Stream an object's content to a binary sink (cat)
"""

import sys
from typing import BinaryIO, Callable, Optional

from services.engine import BaseEngine
from services.errors import CatFailed, InvalidPath, NotFoundError, OperatorError, PathNotFound
from services.paths import to_key
from services.transfer import StreamWriter, iter_remote_chunks, transfer


DEFAULT_SIZE_LIMIT_MB = 10


class ContentReader(BaseEngine):

    def cat(
        self,
        path: str,
        force: bool = False,
        size_limit_mb: int = DEFAULT_SIZE_LIMIT_MB,
        confirm: Optional[Callable[[int], bool]] = None,
        stream: Optional[BinaryIO] = None,
    ) -> int:
        """
        Write the object at path to stream (stdout by default).

        Objects over size_limit_mb need force=True or a True answer from
        confirm(size_bytes); otherwise nothing is written and 0 is returned.
        """
        key = to_key(path)
        try:
            entry = self.operator.stat(key)
        except NotFoundError as e:
            raise PathNotFound(path) from e
        except OperatorError as e:
            raise CatFailed(path, e) from e

        if entry.is_directory:
            raise InvalidPath(path, "is a directory")

        limit_bytes = size_limit_mb * 1024 * 1024
        if entry.size > limit_bytes and not force:
            if confirm is None or not confirm(entry.size):
                self._log(f"Skipped display of {path} ({entry.size} bytes)")
                return 0

        if stream is None:
            stream = sys.stdout.buffer
        try:
            return transfer(iter_remote_chunks(self.operator, entry.key, entry.size, self.chunk_size),
                            StreamWriter(stream))
        except (OperatorError, OSError) as e:
            raise CatFailed(path, e) from e
