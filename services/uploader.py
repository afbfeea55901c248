#!/usr/bin/env python3
"""
ossify/services/uploader.py
Local-to-remote uploads of single files and directory trees
"""

import os
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from services.engine import BaseEngine
from services.errors import DirectoryUploadNotRecursive, OperatorError, PathNotFound, UploadFailed
from services.paths import ensure_trailing_slash, join_key, normalize, to_key
from services.transfer import TransferPool, TransferSummary, iter_local_chunks, transfer


class Uploader(BaseEngine):
    """Uploads local files into the store"""

    def upload(self, local_path: str, remote_path: str, recursive: bool = False) -> TransferSummary:
        local = Path(local_path)
        remote = to_key(remote_path)
        self._log(f"Upload: '{local_path}' -> '{remote_path}' (recursive={recursive})")

        if not local.exists():
            raise PathNotFound(local_path)

        summary = TransferSummary()
        if local.is_dir():
            if not recursive:
                raise DirectoryUploadNotRecursive(local_path)
            self._upload_tree(local, remote, summary)
            self.out(f"📊 Summary: ✅ {summary.files} files, {summary.bytes} bytes uploaded")
        else:
            self._upload_one(local, join_key(remote, local.name), summary)
        return summary

    def _upload_tree(self, local: Path, remote: str, summary: TransferSummary) -> None:
        root = normalize(remote)
        try:
            if root:
                self.operator.create_dir(ensure_trailing_slash(root))
        except OperatorError as e:
            raise UploadFailed(str(local), root, e) from e

        with tqdm(unit="file", desc="Uploading", disable=self._progress_bar_disabled()) as pbar:
            with TransferPool(self.max_concurrency) as pool:
                # topdown walk: every directory is created before its files are queued
                for dirpath, dirnames, filenames in os.walk(local):
                    dirnames.sort()
                    current = Path(dirpath)
                    rel_dir = current.relative_to(local).as_posix()
                    remote_dir = root if rel_dir == '.' else join_key(root, rel_dir)

                    if rel_dir != '.':
                        try:
                            self.operator.create_dir(ensure_trailing_slash(remote_dir))
                        except OperatorError as e:
                            raise UploadFailed(str(current), remote_dir, e) from e
                        summary.record_directory()

                    for filename in sorted(filenames):
                        pool.submit(self._upload_one, current / filename, join_key(remote_dir, filename), summary, pbar)

    def _upload_one(self, local: Path, remote: str, summary: TransferSummary, pbar: Optional[tqdm] = None) -> None:
        try:
            size = local.stat().st_size
            reporter = self._reporter(f"Uploading {local.name}", size, self.buffer_size)
            nbytes = transfer(iter_local_chunks(str(local), self.buffer_size), self.operator.writer(remote), reporter)
        except Exception as e:
            raise UploadFailed(str(local), remote, e) from e

        summary.record(nbytes)
        if pbar is not None:
            pbar.update(1)
        self.out(f"✅ Uploaded: {local} → {remote} ({nbytes} bytes)")
