#!/usr/bin/env python3
"""
ossify/services/storage.py
Storage service: one entry point per filesystem-style operation
"""

from typing import Any, BinaryIO, Callable, Dict, List, Optional

from config.config import StorageConfig, config_service, load_storage_config
from services.copier import TreeCopier
from services.deleter import Deleter
from services.directories import DirectoryMaker
from services.downloader import Downloader
from services.lister import Lister
from services.metadata import MetadataInspector, ObjectMeta
from services.operator import StorageOperator, build_operator
from services.progress import ProgressSink
from services.reader import ContentReader
from services.transfer import TransferSummary
from services.uploader import Uploader
from services.usage import UsageAggregator, UsageSummary


class StorageService:
    """
    Handles all storage operations.

    The service only keeps the operator handle and read-only settings;
    every call runs on a fresh engine, so nothing carries over between
    operations.
    """

    def __init__(self):
        self.operator: Optional[StorageOperator] = None
        self.storage_config: Optional[StorageConfig] = None
        self.settings: Dict[str, int] = {}
        self.out: Optional[Callable[[str], None]] = None
        self.progress_sink: Optional[ProgressSink] = None
        self.show_progress = False
        self.debug = False

    def configure(
        self,
        storage_config: Optional[StorageConfig] = None,
        operator: Optional[StorageOperator] = None,
        settings: Optional[Dict[str, int]] = None,
    ) -> None:
        """Connect to the store described by storage_config (or the environment)"""
        self.settings = dict(settings) if settings is not None else config_service.read_settings()
        if operator is not None:
            self.operator = operator
            return
        self.storage_config = storage_config or load_storage_config()
        self.operator = build_operator(self.storage_config)
        self._log(f"Connected to {self.operator.describe()}")

    def _log(self, message: str) -> None:
        """Debug logging"""
        if self.debug:
            (self.out or print)(f"🔍 [DEBUG] {message}")

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            'out': self.out,
            'progress_sink': self.progress_sink,
            'show_progress': self.show_progress,
            'debug': self.debug,
        }
        for name in ('chunk_size', 'buffer_size', 'progress_interval', 'max_concurrency'):
            if name in self.settings:
                options[name] = self.settings[name]
        return options

    def _require_operator(self) -> StorageOperator:
        if self.operator is None:
            self.configure()
        return self.operator

    # ============================================================================
    # OPERATIONS
    # ============================================================================

    def list(self, path: str, long: bool = False, recursive: bool = False) -> int:
        return Lister(self._require_operator(), **self._engine_options()).list(path, long, recursive)

    def copy(self, src_path: str, dest_path: str) -> TransferSummary:
        return TreeCopier(self._require_operator(), move=False, **self._engine_options()).run(src_path, dest_path)

    def move(self, src_path: str, dest_path: str) -> TransferSummary:
        return TreeCopier(self._require_operator(), move=True, **self._engine_options()).run(src_path, dest_path)

    def upload(self, local_path: str, remote_path: str, recursive: bool = False) -> TransferSummary:
        return Uploader(self._require_operator(), **self._engine_options()).upload(local_path, remote_path, recursive)

    def download(self, remote_path: str, local_path: str) -> TransferSummary:
        return Downloader(self._require_operator(), **self._engine_options()).download(remote_path, local_path)

    def delete(self, paths: List[str], recursive: bool = False) -> Dict[str, bool]:
        return Deleter(self._require_operator(), **self._engine_options()).delete(paths, recursive)

    def disk_usage(self, path: str, summary: bool = False) -> UsageSummary:
        return UsageAggregator(self._require_operator(), **self._engine_options()).disk_usage(path, summary)

    def stat(self, path: str) -> ObjectMeta:
        return MetadataInspector(self._require_operator(), **self._engine_options()).stat(path)

    def cat(self, path: str, force: bool = False, size_limit_mb: Optional[int] = None,
            confirm: Optional[Callable[[int], bool]] = None, stream: Optional[BinaryIO] = None) -> int:
        if size_limit_mb is None:
            size_limit_mb = self.settings.get('cat_size_limit_mb', 10)
        reader = ContentReader(self._require_operator(), **self._engine_options())
        return reader.cat(path, force=force, size_limit_mb=size_limit_mb, confirm=confirm, stream=stream)

    def mkdir(self, path: str, parents: bool = False) -> List[str]:
        return DirectoryMaker(self._require_operator(), **self._engine_options()).mkdir(path, parents)


# Global instance
storage_service = StorageService()
