"""
Shared fixtures: a local-disk store in a temporary directory, an S3
store over an in-memory client, and a captured output sink.
"""

import io
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

sys.path.insert(0, str(Path(__file__).parent.parent))

from services.fs_operator import FsOperator
from services.s3_operator import S3Operator


def client_error(code, operation='HeadObject'):
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


class FakeS3Client:
    """Just enough of the boto3 S3 client, kept in a dict."""

    def __init__(self):
        self.objects = {}
        self.multipart = {}

    def put_object(self, Bucket, Key, Body=b''):
        self.objects[Key] = bytes(Body)
        return {'ETag': '"etag"'}

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise client_error('404')
        return {
            'ContentLength': len(self.objects[Key]),
            'LastModified': datetime(2024, 1, 1, tzinfo=timezone.utc),
            'ETag': '"abc"',
            'ContentType': 'text/plain',
        }

    def get_object(self, Bucket, Key, Range=None):
        if Key not in self.objects:
            raise client_error('NoSuchKey', 'GetObject')
        data = self.objects[Key]
        if Range:
            start, _, end = Range[len('bytes='):].partition('-')
            start = int(start)
            if start >= len(data):
                raise client_error('InvalidRange', 'GetObject')
            data = data[start:int(end) + 1] if end else data[start:]
        return {'Body': io.BytesIO(data)}

    def list_objects_v2(self, Bucket, Prefix='', Delimiter=None, MaxKeys=1000, ContinuationToken=None):
        keys = sorted(k for k in self.objects if k.startswith(Prefix))
        start = int(ContinuationToken or 0)
        contents, prefixes = [], []
        for key in keys:
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                common = Prefix + rest.split(Delimiter, 1)[0] + Delimiter
                if common not in prefixes:
                    prefixes.append(common)
            else:
                contents.append({'Key': key, 'Size': len(self.objects[key])})
        page = contents[start:start + MaxKeys]
        response = {'Contents': page, 'CommonPrefixes': [{'Prefix': p} for p in prefixes]}
        if start + MaxKeys < len(contents):
            response['IsTruncated'] = True
            response['NextContinuationToken'] = str(start + MaxKeys)
        return response

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def delete_objects(self, Bucket, Delete):
        for obj in Delete['Objects']:
            self.objects.pop(obj['Key'], None)
        return {}

    def create_multipart_upload(self, Bucket, Key):
        self.multipart['up-1'] = []
        return {'UploadId': 'up-1'}

    def upload_part(self, Bucket, Key, UploadId, PartNumber, Body):
        self.multipart[UploadId].append(Body)
        return {'ETag': f'"part-{PartNumber}"'}

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        self.objects[Key] = b''.join(self.multipart.pop(UploadId))

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        self.multipart.pop(UploadId, None)


def put_object(store, key, data=b''):
    """Write data at key"""
    with store.writer(key) as writer:
        writer.write(data)


def file_keys(store, path=''):
    """Every file key under path"""
    return {e.key for e in store.list(path, recursive=True) if not e.is_directory}


@pytest.fixture
def store(tmp_path):
    return FsOperator(str(tmp_path / 'store'))


@pytest.fixture
def lines():
    return []


@pytest.fixture
def engine_options(lines):
    return {'out': lines.append, 'max_concurrency': 4}


@pytest.fixture
def sample_tree(store):
    """a/x.txt, a/sub/y.txt and an unrelated top-level file"""
    put_object(store, 'a/x.txt', b'hello')
    put_object(store, 'a/sub/y.txt', b'world!')
    put_object(store, 'other.txt', b'elsewhere')
    return store


@pytest.fixture
def s3_store():
    """Build an S3Operator whose bucket holds exactly the given objects"""
    def build(objects):
        client = FakeS3Client()
        client.objects.update(objects)
        return S3Operator('bucket', client)
    return build
