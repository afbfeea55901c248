#!/usr/bin/env python3
"""
ossify/services/copier.py
Remote-to-remote copy and move of files and directory trees.

Nothing here is atomic: a failure part way through leaves whatever was
already copied (or, for moves, already deleted at the source) in place.
"""

from typing import List, Optional

from tqdm import tqdm

from services.engine import BaseEngine
from services.errors import CopyFailed, InvalidPath, MoveFailed, OperatorError
from services.operator import EntryMode, StorageEntry
from services.paths import (
    base_name, ensure_trailing_slash, is_directory_hint, join_key, normalize, relative_to, to_key,
)
from services.transfer import TransferPool, TransferSummary, iter_remote_chunks, transfer


class TreeCopier(BaseEngine):
    """Copies (or, with move=True, moves) a key or a whole prefix"""

    def __init__(self, operator, move: bool = False, **kwargs):
        super().__init__(operator, **kwargs)
        self.move = move

    @property
    def verb(self) -> str:
        return 'Moved' if self.move else 'Copied'

    @property
    def action(self) -> str:
        return 'Moving' if self.move else 'Copying'

    def _failure(self, source: str, destination: str, error: BaseException):
        error_cls = MoveFailed if self.move else CopyFailed
        return error_cls(source, destination, error)

    def run(self, src_path: str, dest_path: str) -> TransferSummary:
        src = normalize(to_key(src_path))
        dest = to_key(dest_path)
        self._log(f"{'Move' if self.move else 'Copy'}: '{src_path}' -> '{dest_path}'")

        try:
            src_kind = self.resolver.kind(src)
        except OperatorError as e:
            raise self._failure(src_path, dest_path, e) from e
        if src_kind is None:
            raise InvalidPath(src_path, "source does not exist")
        if not src:
            raise InvalidPath(src_path, "cannot copy the bucket root")

        if src_kind is EntryMode.DIR:
            return self._copy_tree(src, dest)
        return self._copy_single(src, dest, dest_path)

    # ============================================================================
    # SINGLE FILE
    # ============================================================================

    def _copy_single(self, src: str, dest: str, dest_path: str) -> TransferSummary:
        dest_is_dir = self.resolver.is_directory(dest)
        if is_directory_hint(dest_path.strip()) and not dest_is_dir:
            raise InvalidPath(dest_path, "destination directory does not exist")

        target = join_key(dest, base_name(src)) if dest_is_dir else normalize(dest)
        if target == src:
            raise InvalidPath(dest_path, "source and destination are the same")

        summary = TransferSummary()
        try:
            entry = self.operator.stat(src)
        except OperatorError as e:
            raise self._failure(src, target, e) from e
        self._transfer_one(entry, target, summary)
        return summary

    # ============================================================================
    # DIRECTORY TREE
    # ============================================================================

    def _copy_tree(self, src: str, dest: str) -> TransferSummary:
        if self.resolver.is_directory(dest):
            target_root = join_key(dest, base_name(src))
        else:
            target_root = normalize(dest)

        if target_root == src:
            raise InvalidPath(dest, "source and destination are the same")
        if target_root.startswith(src + '/'):
            raise InvalidPath(dest, "destination is inside the source directory")

        summary = TransferSummary()
        moved_dirs: List[str] = []
        self._log(f"Target root: '{target_root}'")

        try:
            if target_root:
                self.operator.create_dir(ensure_trailing_slash(target_root))
        except OperatorError as e:
            raise self._failure(src, target_root, e) from e

        with tqdm(unit="file", desc=self.action, disable=self._progress_bar_disabled()) as pbar:
            with TransferPool(self.max_concurrency) as pool:
                try:
                    for entry in self.operator.list(src, recursive=True):
                        if normalize(entry.key) == src:
                            continue
                        destination = join_key(target_root, relative_to(entry.key, src))
                        if entry.is_directory:
                            self.operator.create_dir(ensure_trailing_slash(destination))
                            summary.record_directory()
                            moved_dirs.append(entry.key)
                        else:
                            pool.submit(self._transfer_one, entry, destination, summary, pbar)
                except OperatorError as e:
                    raise self._failure(src, target_root, e) from e

        if self.move:
            self._remove_source_dirs(src, moved_dirs)

        self.out(f"📊 Summary: ✅ {summary.files} files, {summary.bytes} bytes {self.verb.lower()}")
        return summary

    def _remove_source_dirs(self, src: str, dirs: List[str]) -> None:
        """Drop the emptied source directory markers, deepest first"""
        for key in sorted(dirs, key=lambda k: k.count('/'), reverse=True) + [ensure_trailing_slash(src)]:
            try:
                self.operator.delete(key)
            except OperatorError as e:
                self._warn(f"Could not remove source directory {key}: {e}")

    # ============================================================================
    # ONE FILE
    # ============================================================================

    def _transfer_one(self, entry: StorageEntry, destination: str, summary: TransferSummary,
                      pbar: Optional[tqdm] = None) -> None:
        try:
            chunks = iter_remote_chunks(self.operator, entry.key, entry.size, self.chunk_size)
            reporter = self._reporter(f"{self.action} {entry.key}", entry.size, self.chunk_size)
            nbytes = transfer(chunks, self.operator.writer(destination), reporter)
            if self.move:
                self.operator.delete(entry.key)
        except Exception as e:
            raise self._failure(entry.key, destination, e) from e

        summary.record(nbytes)
        if pbar is not None:
            pbar.update(1)
        self.out(f"✅ {self.verb}: {entry.key} → {destination} ({nbytes} bytes)")
