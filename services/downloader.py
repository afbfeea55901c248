#!/usr/bin/env python3
"""
ossify/services/downloader.py
Remote-to-local downloads of single objects and whole prefixes
"""

import itertools
import os
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from services.engine import BaseEngine
from services.errors import DownloadFailed, NotFoundError, OperatorError, PathNotFound
from services.operator import StorageEntry
from services.paths import ensure_trailing_slash, is_directory_hint, normalize, relative_to, to_key
from services.transfer import LocalFileWriter, TransferPool, TransferSummary, iter_remote_chunks, transfer


class Downloader(BaseEngine):
    """Downloads objects into a local directory"""

    def download(self, remote_path: str, local_path: str) -> TransferSummary:
        key = to_key(remote_path)
        local_root = Path(local_path)
        summary = TransferSummary()
        self._log(f"Download: '{remote_path}' -> '{local_path}'")

        try:
            entry = self._stat(key)
        except OperatorError as e:
            raise DownloadFailed(remote_path, local_path, e) from e

        if entry is not None and not entry.is_directory:
            local_root.mkdir(parents=True, exist_ok=True)
            self._download_one(entry, local_root / entry.name, summary)
            return summary

        try:
            entries = iter(self.operator.list(key, recursive=True))
            first = next(entries, None)
        except OperatorError as e:
            raise DownloadFailed(remote_path, local_path, e) from e

        if first is None and entry is None and normalize(key):
            raise PathNotFound(remote_path)

        local_root.mkdir(parents=True, exist_ok=True)
        resolved_root = Path(os.path.abspath(local_root))
        entries = itertools.chain([first], entries) if first is not None else entries

        with tqdm(unit="file", desc="Downloading", disable=self._progress_bar_disabled()) as pbar:
            with TransferPool(self.max_concurrency) as pool:
                try:
                    for item in entries:
                        if '//' in item.key:
                            self._warn(f"Skipping key with empty path segment: {item.key}")
                            summary.skip(item.key, 'empty path segment')
                            continue

                        target = local_root / relative_to(item.key, key)
                        if not self._inside(resolved_root, target):
                            self._warn(f"Skipping key outside the destination: {item.key}")
                            summary.skip(item.key, 'outside destination')
                            continue

                        if item.is_directory:
                            target.mkdir(parents=True, exist_ok=True)
                            summary.record_directory()
                        else:
                            target.parent.mkdir(parents=True, exist_ok=True)
                            pool.submit(self._download_one, item, target, summary, pbar)
                except (OperatorError, OSError) as e:
                    raise DownloadFailed(remote_path, local_path, e) from e

        self.out(f"📊 Summary: ✅ {summary.files} files, {summary.bytes} bytes downloaded"
                 + (f" | ⏭️  {len(summary.skipped)} skipped" if summary.skipped else ""))
        return summary

    def _stat(self, key: str) -> Optional[StorageEntry]:
        """Stat key, then its directory marker; None when neither exists"""
        if not normalize(key):
            return None
        candidates = [key]
        if not is_directory_hint(key):
            candidates.append(ensure_trailing_slash(normalize(key)))
        for candidate in candidates:
            try:
                return self.operator.stat(candidate)
            except NotFoundError:
                continue
        return None

    @staticmethod
    def _inside(root: Path, target: Path) -> bool:
        resolved = Path(os.path.abspath(target))
        return resolved == root or root in resolved.parents

    def _download_one(self, entry: StorageEntry, target: Path, summary: TransferSummary,
                      pbar: Optional[tqdm] = None) -> None:
        try:
            chunks = iter_remote_chunks(self.operator, entry.key, entry.size, self.chunk_size)
            reporter = self._reporter(f"Downloading {entry.key}", entry.size, self.chunk_size)
            nbytes = transfer(chunks, LocalFileWriter(str(target)), reporter)
        except NotFoundError:
            # removed between listing and reading
            self._warn(f"Object disappeared before download, skipping: {entry.key}")
            summary.skip(entry.key, 'not found')
            return
        except Exception as e:
            raise DownloadFailed(entry.key, str(target), e) from e

        summary.record(nbytes)
        if pbar is not None:
            pbar.update(1)
        self.out(f"✅ Downloaded: {entry.key} → {target} ({nbytes} bytes)")
