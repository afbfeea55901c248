#!/usr/bin/env python3
"""
ossify/services/metadata.py
Object metadata lookup (stat) and its output formats
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from services.engine import BaseEngine
from services.errors import NotFoundError, PathNotFound
from services.operator import EntryMode, StorageEntry
from services.paths import ensure_trailing_slash, normalize, to_key


@dataclass(frozen=True)
class ObjectMeta:
    path: str
    entry_type: str
    size: int
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None

    @classmethod
    def from_entry(cls, path: str, entry: StorageEntry) -> 'ObjectMeta':
        return cls(
            path=path,
            entry_type=entry.mode.value,
            size=entry.size,
            last_modified=entry.last_modified,
            etag=entry.etag,
            content_type=entry.content_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'entry_type': self.entry_type,
            'size': self.size,
            'last_modified': self.last_modified.isoformat() if self.last_modified else None,
            'etag': self.etag,
            'content_type': self.content_type,
        }

    def _pairs(self):
        data = self.to_dict()
        yield 'path', data['path']
        yield 'type', data['entry_type']
        yield 'size', data['size']
        for name in ('last_modified', 'etag', 'content_type'):
            if data[name] is not None:
                yield name, data[name]

    def format_human(self) -> str:
        return ' '.join(f"{k}={v}" for k, v in self._pairs())

    def format_raw(self) -> str:
        return '\n'.join(f"{k}={v}" for k, v in self._pairs())

    def format_json(self) -> str:
        return json.dumps(self.to_dict())

    def render(self, output_format: str = 'human') -> str:
        if output_format == 'json':
            return self.format_json()
        if output_format == 'raw':
            return self.format_raw()
        return self.format_human()


class MetadataInspector(BaseEngine):

    def stat(self, path: str) -> ObjectMeta:
        key = to_key(path)
        if not normalize(key):
            return ObjectMeta(path=path, entry_type=EntryMode.DIR.value, size=0)

        try:
            return ObjectMeta.from_entry(path, self.operator.stat(key))
        except NotFoundError:
            pass

        # virtual directory: keys under the prefix but no marker object
        if self.resolver.kind(key) is EntryMode.DIR:
            try:
                return ObjectMeta.from_entry(path, self.operator.stat(ensure_trailing_slash(normalize(key))))
            except NotFoundError:
                return ObjectMeta(path=path, entry_type=EntryMode.DIR.value, size=0)

        raise PathNotFound(path)
