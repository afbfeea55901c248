#!/usr/bin/env python3
"""
ossify/services/fs_operator.py
Local filesystem backend presenting a directory as a flat key space
"""

import mimetypes
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from services.errors import NotFoundError, OperatorError
from services.operator import DELIMITER, EntryMode, StorageEntry, StorageOperator, Writer


PART_SUFFIX = '.part'


def fs_error_wrap(func):
    """Map OS errors raised by filesystem calls onto operator errors"""
    def inner(self, key, *args, **kwargs):
        try:
            return func(self, key, *args, **kwargs)
        except (NotFoundError, OperatorError):
            raise
        except FileNotFoundError as ex:
            raise NotFoundError(key, ex) from ex
        except NotADirectoryError as ex:
            raise NotFoundError(key, ex) from ex
        except OSError as ex:
            raise OperatorError(f"{func.__name__} failed for '{key}': {ex}", key, ex) from ex
    inner.__name__ = func.__name__
    inner.__doc__ = func.__doc__
    return inner


class FsWriter(Writer):
    """Writes into a hidden staging file and renames it into place on close"""

    def __init__(self, target: Path):
        self.target = target
        self.target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=PART_SUFFIX, dir=str(target.parent))
        self._tmp_path = Path(tmp_name)
        self._handle = os.fdopen(fd, 'wb')
        self._closed = False

    def write(self, chunk) -> None:
        self._handle.write(chunk)

    def close(self) -> None:
        if self._closed:
            return
        self._handle.close()
        os.replace(self._tmp_path, self.target)
        self._closed = True

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._handle.close()
        if self._tmp_path.exists():
            self._tmp_path.unlink()


class FsOperator(StorageOperator):
    """Stores every key as a file below a root directory"""

    name = 'fs'

    def __init__(self, root: str):
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def describe(self) -> str:
        return f"fs:{self.root}"

    def _path(self, key: str) -> Path:
        relative = key.strip(DELIMITER)
        target = (self.root / relative).resolve() if relative else self.root
        if target != self.root and self.root not in target.parents:
            raise OperatorError(f"Key escapes storage root: {key}", key)
        return target

    def _key(self, path: Path, is_dir: bool) -> str:
        key = path.relative_to(self.root).as_posix()
        return key + DELIMITER if is_dir else key

    def _entry(self, path: Path, key: str) -> StorageEntry:
        st = path.stat()
        modified = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
        if path.is_dir():
            return StorageEntry(key=key, mode=EntryMode.DIR, size=0, last_modified=modified)
        if path.is_file():
            content_type, _ = mimetypes.guess_type(path.name)
            return StorageEntry(key=key, mode=EntryMode.FILE, size=st.st_size, last_modified=modified,
                                content_type=content_type or 'application/octet-stream')
        return StorageEntry(key=key, mode=EntryMode.OTHER, size=st.st_size, last_modified=modified)

    # ============================================================================
    # METADATA
    # ============================================================================

    @fs_error_wrap
    def stat(self, key: str) -> StorageEntry:
        path = self._path(key)
        if not path.exists():
            raise NotFoundError(key)
        if key.endswith(DELIMITER) and not path.is_dir():
            raise NotFoundError(key)
        return self._entry(path, self._key(path, path.is_dir()) if path != self.root else '')

    # ============================================================================
    # LISTING
    # ============================================================================

    def list(self, path: str, recursive: bool = False, limit: Optional[int] = None) -> Iterator[StorageEntry]:
        try:
            base = self._path(path)
        except OperatorError:
            return
        if not base.is_dir():
            return

        count = 0
        for entry in self._walk(base, recursive):
            yield entry
            count += 1
            if limit is not None and count >= limit:
                return

    def _walk(self, directory: Path, recursive: bool) -> Iterator[StorageEntry]:
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except FileNotFoundError:
            return
        except OSError as ex:
            raise OperatorError(f"list failed for '{directory}': {ex}", str(directory), ex) from ex

        for child in children:
            if child.name.endswith(PART_SUFFIX) and child.name.startswith('.'):
                continue
            is_dir = child.is_dir()
            try:
                yield self._entry(child, self._key(child, is_dir))
            except FileNotFoundError:
                # removed while listing
                continue
            if recursive and is_dir:
                yield from self._walk(child, recursive)

    # ============================================================================
    # READ / WRITE
    # ============================================================================

    @fs_error_wrap
    def read(self, key: str, offset: int = 0, length: Optional[int] = None) -> bytes:
        path = self._path(key)
        if path.is_dir():
            raise NotFoundError(key)
        with open(path, 'rb') as f:
            f.seek(offset)
            if length is None:
                return f.read()
            return f.read(length)

    @fs_error_wrap
    def writer(self, key: str) -> Writer:
        if key.endswith(DELIMITER) or not key.strip(DELIMITER):
            raise OperatorError(f"Cannot write to directory key '{key}'", key)
        return FsWriter(self._path(key))

    @fs_error_wrap
    def create_dir(self, key: str) -> None:
        self._path(key).mkdir(parents=True, exist_ok=True)

    # ============================================================================
    # DELETE
    # ============================================================================

    @fs_error_wrap
    def delete(self, key: str) -> None:
        path = self._path(key)
        if path == self.root:
            return
        if path.is_dir():
            path.rmdir()
        elif path.exists():
            path.unlink()

    @fs_error_wrap
    def remove_all(self, key: str) -> None:
        path = self._path(key)
        if path.is_dir():
            if path == self.root:
                for child in path.iterdir():
                    if child.is_dir():
                        shutil.rmtree(child)
                    else:
                        child.unlink()
            else:
                shutil.rmtree(path)
        elif path.exists():
            path.unlink()
