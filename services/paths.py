#!/usr/bin/env python3
"""
ossify/services/paths.py
Path resolution over a flat key space with '/' as pseudo-directory delimiter.

Keys never start with the delimiter; the bucket root is the empty key.
Directory markers are keys ending with the delimiter.
"""

from dataclasses import dataclass
from typing import Optional

from services.errors import NotFoundError
from services.operator import DELIMITER, EntryMode, StorageOperator


def normalize(path: str, leading: bool = True, trailing: bool = True) -> str:
    """Strip leading and/or trailing delimiters"""
    if leading:
        path = path.lstrip(DELIMITER)
    if trailing:
        path = path.rstrip(DELIMITER)
    return path


def to_key(path: str) -> str:
    """Turn a user supplied remote path into a key ('/' means the bucket root)"""
    return normalize(path.strip(), leading=True, trailing=False)


def is_directory_hint(path: str) -> bool:
    return path.endswith(DELIMITER)


def ensure_trailing_slash(path: str) -> str:
    if not path or path.endswith(DELIMITER):
        return path
    return path + DELIMITER


def base_name(path: str) -> str:
    """Final segment of a path, ignoring trailing delimiters"""
    return normalize(path).rsplit(DELIMITER, 1)[-1]


def join_key(base: str, name: str) -> str:
    """Join two key fragments with exactly one delimiter between them"""
    base = normalize(base, leading=False, trailing=True)
    name = normalize(name, leading=True, trailing=False)
    if not base:
        return name
    if not name:
        return base + DELIMITER
    return f"{base}{DELIMITER}{name}"


def relative_to(full_key: str, base_key: str) -> str:
    """
    Path of full_key relative to base_key.

    When the two name the same object, or full_key is not under base_key,
    the final segment of full_key is returned instead, so the result can
    always be joined onto a destination.
    """
    full = normalize(full_key)
    base = normalize(base_key)

    if not base:
        return full if full else base_name(full_key)
    if full == base:
        return base_name(full)
    prefix = base + DELIMITER
    if full.startswith(prefix):
        return full[len(prefix):]
    return base_name(full)


@dataclass(frozen=True)
class PathSpec:
    """A user supplied path and what it says about itself"""
    raw: str
    normalized: str
    directory_hint: bool

    @classmethod
    def parse(cls, raw: str) -> 'PathSpec':
        return cls(raw=raw, normalized=normalize(raw.strip()), directory_hint=is_directory_hint(raw.strip()))

    @property
    def is_root(self) -> bool:
        return self.normalized == ''


class PathResolver:
    """Decides whether a key names a file, a directory, or nothing"""

    def __init__(self, operator: StorageOperator):
        self.operator = operator

    def kind(self, path: str) -> Optional[EntryMode]:
        """
        Stat the key first; if nothing is stored there, look for any key
        under it as a prefix. Object stores only have "directories" where
        keys share a prefix, so the prefix listing is what finds them.
        """
        key = to_key(path)
        if normalize(key) == '':
            return EntryMode.DIR

        try:
            return self.operator.stat(key).mode
        except NotFoundError:
            pass

        prefix = ensure_trailing_slash(normalize(key))
        for _ in self.operator.list(prefix, recursive=False, limit=1):
            return EntryMode.DIR

        if not is_directory_hint(key):
            # A marker may exist even when the plain key does not
            try:
                return self.operator.stat(prefix).mode
            except NotFoundError:
                return None
        return None

    def is_directory(self, path: str) -> bool:
        return self.kind(path) is EntryMode.DIR

    def exists(self, path: str) -> bool:
        return self.kind(path) is not None
