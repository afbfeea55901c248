#!/usr/bin/env python3
"""
ossify/services/s3_operator.py
S3-compatible backend (AWS S3, MinIO, Alibaba OSS) built on boto3
"""

import functools
from typing import Any, Dict, Iterator, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from services.errors import NotFoundError, OperatorError
from services.operator import DELIMITER, EntryMode, StorageEntry, StorageOperator, Writer


NOT_FOUND_CODES = {'404', 'NoSuchKey', 'NotFound'}
INVALID_RANGE_CODES = {'416', 'InvalidRange'}

# S3 requires every part but the last to be at least 5 MiB
MULTIPART_PART_SIZE = 8 * 1024 * 1024
DELETE_BATCH_SIZE = 1000


def _error_code(error: ClientError) -> str:
    return str(error.response.get('Error', {}).get('Code', ''))


def wrap_s3_errors(func):
    """Translate botocore failures into operator errors"""
    @functools.wraps(func)
    def inner(self, key, *args, **kwargs):
        try:
            return func(self, key, *args, **kwargs)
        except ClientError as ex:
            if _error_code(ex) in NOT_FOUND_CODES:
                raise NotFoundError(key, ex) from ex
            raise OperatorError(f"{func.__name__} failed for '{key}': {ex}", key, ex) from ex
        except BotoCoreError as ex:
            raise OperatorError(f"{func.__name__} failed for '{key}': {ex}", key, ex) from ex
    return inner


class S3Writer(Writer):
    """
    Buffers one part in memory. Small objects go out with a single
    put_object on close; larger ones switch to a multipart upload.
    """

    def __init__(self, client, bucket: str, key: str, part_size: int = MULTIPART_PART_SIZE):
        self.client = client
        self.bucket = bucket
        self.key = key
        self.part_size = part_size
        self._buffer = bytearray()
        self._upload_id: Optional[str] = None
        self._parts: List[Dict[str, Any]] = []
        self._closed = False

    def write(self, chunk) -> None:
        self._buffer.extend(chunk)
        while len(self._buffer) >= self.part_size:
            part = bytes(self._buffer[:self.part_size])
            del self._buffer[:self.part_size]
            self._upload_part(part)

    def _upload_part(self, data: bytes) -> None:
        if self._upload_id is None:
            response = self.client.create_multipart_upload(Bucket=self.bucket, Key=self.key)
            self._upload_id = response['UploadId']
        part_number = len(self._parts) + 1
        response = self.client.upload_part(
            Bucket=self.bucket, Key=self.key, UploadId=self._upload_id,
            PartNumber=part_number, Body=data,
        )
        self._parts.append({'PartNumber': part_number, 'ETag': response['ETag']})

    def close(self) -> None:
        if self._closed:
            return
        if self._upload_id is None:
            self.client.put_object(Bucket=self.bucket, Key=self.key, Body=bytes(self._buffer))
        else:
            if self._buffer:
                self._upload_part(bytes(self._buffer))
            self.client.complete_multipart_upload(
                Bucket=self.bucket, Key=self.key, UploadId=self._upload_id,
                MultipartUpload={'Parts': self._parts},
            )
        self._buffer = bytearray()
        self._closed = True

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer = bytearray()
        if self._upload_id is not None:
            self.client.abort_multipart_upload(Bucket=self.bucket, Key=self.key, UploadId=self._upload_id)


class S3Operator(StorageOperator):
    """Object store backend speaking the S3 API"""

    name = 's3'

    def __init__(self, bucket: str, client, provider: str = 's3'):
        bucket = (bucket or '').strip()
        if not bucket:
            raise OperatorError("A bucket name is required for S3 storage")
        self.bucket = bucket
        self.client = client
        self.provider = provider

    @classmethod
    def from_config(cls, storage_config) -> 'S3Operator':
        cfg = Config(
            retries={'max_attempts': 8, 'mode': 'standard'},
            region_name=storage_config.region or None,
            connect_timeout=10,
            read_timeout=60,
            s3={'addressing_style': 'path' if storage_config.provider == 'minio' else 'virtual'},
        )
        client = boto3.client(
            's3',
            endpoint_url=storage_config.endpoint or None,
            aws_access_key_id=storage_config.access_key_id,
            aws_secret_access_key=storage_config.access_key_secret,
            config=cfg,
        )
        return cls(storage_config.bucket, client, provider=storage_config.provider)

    def describe(self) -> str:
        return f"{self.provider}://{self.bucket}"

    @staticmethod
    def _prefix(path: str) -> str:
        key = path.strip(DELIMITER)
        return key + DELIMITER if key else ''

    def _entry_from_object(self, obj: Dict[str, Any]) -> StorageEntry:
        key = obj['Key']
        is_dir = key.endswith(DELIMITER)
        return StorageEntry(
            key=key,
            mode=EntryMode.DIR if is_dir else EntryMode.FILE,
            size=0 if is_dir else int(obj.get('Size', 0)),
            last_modified=obj.get('LastModified'),
            etag=(obj.get('ETag') or '').strip('"') or None,
        )

    # ============================================================================
    # METADATA
    # ============================================================================

    @wrap_s3_errors
    def stat(self, key: str) -> StorageEntry:
        key = key.lstrip(DELIMITER)
        if not key.strip(DELIMITER):
            return StorageEntry(key='', mode=EntryMode.DIR)

        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as ex:
            if _error_code(ex) in NOT_FOUND_CODES and key.endswith(DELIMITER):
                # no marker object, but the prefix may still hold keys
                for _ in self.list(key, limit=1):
                    return StorageEntry(key=key, mode=EntryMode.DIR)
            raise

        is_dir = key.endswith(DELIMITER)
        return StorageEntry(
            key=key,
            mode=EntryMode.DIR if is_dir else EntryMode.FILE,
            size=0 if is_dir else int(response.get('ContentLength', 0)),
            last_modified=response.get('LastModified'),
            etag=(response.get('ETag') or '').strip('"') or None,
            content_type=response.get('ContentType'),
        )

    # ============================================================================
    # LISTING
    # ============================================================================

    def _pages(self, prefix: str, delimiter: Optional[str], page_size: Optional[int]) -> Iterator[Dict[str, Any]]:
        params: Dict[str, Any] = {'Bucket': self.bucket, 'Prefix': prefix}
        if delimiter:
            params['Delimiter'] = delimiter
        if page_size:
            params['MaxKeys'] = page_size

        while True:
            try:
                response = self.client.list_objects_v2(**params)
            except ClientError as ex:
                if _error_code(ex) in NOT_FOUND_CODES:
                    raise NotFoundError(prefix, ex) from ex
                raise OperatorError(f"list failed for '{prefix}': {ex}", prefix, ex) from ex
            except BotoCoreError as ex:
                raise OperatorError(f"list failed for '{prefix}': {ex}", prefix, ex) from ex

            yield response

            if not response.get('IsTruncated'):
                return
            params['ContinuationToken'] = response['NextContinuationToken']

    def list(self, path: str, recursive: bool = False, limit: Optional[int] = None) -> Iterator[StorageEntry]:
        prefix = self._prefix(path)
        delimiter = None if recursive else DELIMITER
        page_size = min(limit, 1000) if limit else None

        count = 0
        for page in self._pages(prefix, delimiter, page_size):
            entries = [self._entry_from_object(obj) for obj in page.get('Contents', []) if obj['Key'] != prefix]
            entries.extend(
                StorageEntry(key=cp['Prefix'], mode=EntryMode.DIR)
                for cp in page.get('CommonPrefixes', [])
            )
            if not recursive:
                entries.sort(key=lambda e: e.key)
            for entry in entries:
                yield entry
                count += 1
                if limit is not None and count >= limit:
                    return

    def _iter_keys(self, prefix: str) -> Iterator[str]:
        for page in self._pages(prefix, None, None):
            for obj in page.get('Contents', []):
                yield obj['Key']

    # ============================================================================
    # READ / WRITE
    # ============================================================================

    @wrap_s3_errors
    def read(self, key: str, offset: int = 0, length: Optional[int] = None) -> bytes:
        if length == 0:
            return b''
        params: Dict[str, Any] = {'Bucket': self.bucket, 'Key': key.lstrip(DELIMITER)}
        if offset or length is not None:
            end = '' if length is None else str(offset + length - 1)
            params['Range'] = f"bytes={offset}-{end}"
        try:
            response = self.client.get_object(**params)
        except ClientError as ex:
            if _error_code(ex) in INVALID_RANGE_CODES:
                return b''
            raise
        return response['Body'].read()

    def writer(self, key: str) -> Writer:
        key = key.lstrip(DELIMITER)
        if not key or key.endswith(DELIMITER):
            raise OperatorError(f"Cannot write to directory key '{key}'", key)
        return S3Writer(self.client, self.bucket, key)

    @wrap_s3_errors
    def create_dir(self, key: str) -> None:
        marker = self._prefix(key)
        if not marker:
            return
        self.client.put_object(Bucket=self.bucket, Key=marker, Body=b'')

    # ============================================================================
    # DELETE
    # ============================================================================

    @wrap_s3_errors
    def delete(self, key: str) -> None:
        key = key.lstrip(DELIMITER)
        if not key:
            return
        self.client.delete_object(Bucket=self.bucket, Key=key)

    @wrap_s3_errors
    def remove_all(self, key: str) -> None:
        base = key.strip(DELIMITER)
        batch: List[str] = []
        if base:
            batch.append(base)

        for object_key in self._iter_keys(self._prefix(base)):
            batch.append(object_key)
            if len(batch) >= DELETE_BATCH_SIZE:
                self._delete_batch(batch)
                batch = []
        if batch:
            self._delete_batch(batch)

    def _delete_batch(self, keys: List[str]) -> None:
        response = self.client.delete_objects(
            Bucket=self.bucket,
            Delete={'Objects': [{'Key': k} for k in keys], 'Quiet': True},
        )
        errors = response.get('Errors') or []
        if errors:
            first = errors[0]
            raise OperatorError(
                f"Failed to delete {len(errors)} object(s), first: {first.get('Key')} ({first.get('Code')})",
                first.get('Key', ''),
            )
