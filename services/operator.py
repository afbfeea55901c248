#!/usr/bin/env python3
"""
ossify/services/operator.py
Storage operator interface: the small set of object store calls the
tree engines are built on
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterator, Optional

from services.errors import NotFoundError, UnsupportedProvider


DELIMITER = '/'


class EntryMode(Enum):
    FILE = 'file'
    DIR = 'dir'
    OTHER = 'other'


@dataclass(frozen=True)
class StorageEntry:
    """One listed or stat'ed key. Directory keys end with the delimiter."""
    key: str
    mode: EntryMode
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_directory(self) -> bool:
        return self.mode is EntryMode.DIR

    @property
    def is_file(self) -> bool:
        return self.mode is EntryMode.FILE

    @property
    def name(self) -> str:
        return self.key.strip(DELIMITER).rsplit(DELIMITER, 1)[-1]


class Writer:
    """
    Streaming writer for one key.

    write() must consume the chunk before returning; callers reuse their
    buffers. Nothing is visible at the key until close() returns.
    """

    def write(self, chunk) -> None:
        raise NotImplementedError()

    def close(self) -> None:
        raise NotImplementedError()

    def abort(self) -> None:
        raise NotImplementedError()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
        else:
            self.abort()
        return False


class StorageOperator:
    """Base class for storage backends"""

    name = 'base'

    def stat(self, key: str) -> StorageEntry:
        raise NotImplementedError()

    def list(self, path: str, recursive: bool = False, limit: Optional[int] = None) -> Iterator[StorageEntry]:
        """Lazily yield the entries below path (never path itself)"""
        raise NotImplementedError()

    def read(self, key: str, offset: int = 0, length: Optional[int] = None) -> bytes:
        raise NotImplementedError()

    def writer(self, key: str) -> Writer:
        raise NotImplementedError()

    def create_dir(self, key: str) -> None:
        raise NotImplementedError()

    def delete(self, key: str) -> None:
        raise NotImplementedError()

    def remove_all(self, key: str) -> None:
        raise NotImplementedError()

    def exists(self, key: str) -> bool:
        try:
            self.stat(key)
            return True
        except NotFoundError:
            return False

    def describe(self) -> str:
        return self.name


def build_operator(storage_config) -> StorageOperator:
    """Create the operator matching a StorageConfig"""
    provider = storage_config.provider
    if provider == 'fs':
        from services.fs_operator import FsOperator
        return FsOperator(storage_config.root_path)
    if provider in ('oss', 's3', 'minio'):
        from services.s3_operator import S3Operator
        return S3Operator.from_config(storage_config)
    raise UnsupportedProvider(provider)
