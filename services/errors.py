#!/usr/bin/env python3
"""
ossify/services/errors.py
Exception hierarchy shared by the storage operators, engines and CLI
"""

from typing import Dict, List, Optional


class OssifyError(Exception):
    """Base class for every error raised by ossify"""
    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


# ============================================================================
# OPERATOR ERRORS
# ============================================================================

class OperatorError(OssifyError):
    """A storage backend call failed"""
    def __init__(self, message: str, key: str = "", original_error: Optional[BaseException] = None):
        self.key = key
        super().__init__(message, original_error)


class NotFoundError(OperatorError):
    """The key does not exist in the backend"""
    def __init__(self, key: str, original_error: Optional[BaseException] = None):
        super().__init__(f"Not found: {key}", key, original_error)


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class MissingEnvVar(OssifyError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Missing environment variable: {key}")


class UnsupportedProvider(OssifyError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported storage provider: {provider}")


# ============================================================================
# USAGE ERRORS
# ============================================================================

class InvalidPath(OssifyError):
    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Invalid path: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class PathNotFound(OssifyError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path not found: {path}")


class DirectoryDeletionNotRecursive(OssifyError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Cannot delete directory '{path}' without the recursive flag")


class DirectoryUploadNotRecursive(OssifyError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Cannot upload directory '{path}' without the recursive flag")


class PartialDeletion(OssifyError):
    """Some of the requested deletions failed; the rest went through"""
    def __init__(self, failed_paths: List[str], outcome: Optional[Dict[str, bool]] = None):
        self.failed_paths = list(failed_paths)
        self.outcome = dict(outcome or {})
        super().__init__(f"Failed to delete {len(self.failed_paths)} path(s): {', '.join(self.failed_paths)}")


# ============================================================================
# TRANSFER ERRORS
# ============================================================================

class TransferFailed(OssifyError):
    """A single file transfer failed; carries both ends of the transfer"""
    action = "transfer"

    def __init__(self, source: str, destination: str, original_error: Optional[BaseException] = None):
        self.source = source
        self.destination = destination
        message = f"Failed to {self.action} {source} to {destination}"
        if original_error is not None:
            message = f"{message}: {original_error}"
        super().__init__(message, original_error)


class CopyFailed(TransferFailed):
    action = "copy"


class MoveFailed(TransferFailed):
    action = "move"


class UploadFailed(TransferFailed):
    action = "upload"


class DownloadFailed(TransferFailed):
    action = "download"


# ============================================================================
# OPERATION ERRORS
# ============================================================================

class OperationFailed(OssifyError):
    """A whole-path operation failed; carries the path it was run against"""
    action = "process"

    def __init__(self, path: str, original_error: Optional[BaseException] = None):
        self.path = path
        message = f"Failed to {self.action} {path}"
        if original_error is not None:
            message = f"{message}: {original_error}"
        super().__init__(message, original_error)


class ListDirectoryFailed(OperationFailed):
    action = "list"


class DiskUsageFailed(OperationFailed):
    action = "calculate disk usage of"


class DirectoryCreationFailed(OperationFailed):
    action = "create directory"


class CatFailed(OperationFailed):
    action = "read"


class DeleteFailed(OperationFailed):
    action = "delete"
