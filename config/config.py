#!/usr/bin/env python3
"""
ossify/config/config.py
Configuration for ossify: storage connection from the environment,
tuning settings from ~/.ossify/settings.json
"""

import os
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any, Mapping, Sequence

from services.errors import MissingEnvVar, UnsupportedProvider


SUPPORTED_PROVIDERS = ('oss', 's3', 'minio', 'fs')

DEFAULT_OSS_ENDPOINT = 'https://oss-cn-hangzhou.aliyuncs.com'
DEFAULT_MINIO_ENDPOINT = 'http://localhost:9000'
DEFAULT_FS_ROOT = './storage'

DEFAULT_SETTINGS: Dict[str, int] = {
    'chunk_size': 1024 * 1024,
    'buffer_size': 8192,
    'progress_interval': 100,
    'max_concurrency': 10,
    'cat_size_limit_mb': 10,
}

# Provider specific fallbacks for the generic STORAGE_* variables
PROVIDER_ENV_KEYS: Dict[str, Dict[str, str]] = {
    'oss': {
        'bucket': 'OSS_BUCKET',
        'access_key_id': 'OSS_ACCESS_KEY_ID',
        'access_key_secret': 'OSS_ACCESS_KEY_SECRET',
        'region': 'OSS_REGION',
        'endpoint': 'OSS_ENDPOINT',
    },
    's3': {
        'bucket': 'AWS_S3_BUCKET',
        'access_key_id': 'AWS_ACCESS_KEY_ID',
        'access_key_secret': 'AWS_SECRET_ACCESS_KEY',
        'region': 'AWS_DEFAULT_REGION',
        'endpoint': 'AWS_ENDPOINT_URL',
    },
    'minio': {
        'bucket': 'MINIO_BUCKET',
        'access_key_id': 'MINIO_ACCESS_KEY',
        'access_key_secret': 'MINIO_SECRET_KEY',
        'region': 'MINIO_DEFAULT_REGION',
        'endpoint': 'MINIO_ENDPOINT',
    },
}

GENERIC_ENV_KEYS = {
    'bucket': 'STORAGE_BUCKET',
    'access_key_id': 'STORAGE_ACCESS_KEY_ID',
    'access_key_secret': 'STORAGE_ACCESS_KEY_SECRET',
    'region': 'STORAGE_REGION',
    'endpoint': 'STORAGE_ENDPOINT',
}


@dataclass(frozen=True)
class StorageConfig:
    """Where and how to reach the store"""
    provider: str
    bucket: str = ''
    access_key_id: Optional[str] = None
    access_key_secret: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    root_path: str = DEFAULT_FS_ROOT

    def describe(self) -> str:
        if self.provider == 'fs':
            return f"fs (root: {self.root_path})"
        parts = [f"{self.provider} (bucket: {self.bucket}"]
        if self.region:
            parts.append(f", region: {self.region}")
        if self.endpoint:
            parts.append(f", endpoint: {self.endpoint}")
        return ''.join(parts) + ')'


def _env(env: Mapping[str, str], names: Sequence[str]) -> Optional[str]:
    """First non-empty value among names"""
    for name in names:
        value = (env.get(name) or '').strip()
        if value:
            return value
    return None


def load_storage_config(env: Optional[Mapping[str, str]] = None) -> StorageConfig:
    """Build a StorageConfig from STORAGE_* variables and provider-specific fallbacks"""
    env = os.environ if env is None else env
    provider = (_env(env, ['STORAGE_PROVIDER']) or 'oss').lower()

    if provider not in SUPPORTED_PROVIDERS:
        raise UnsupportedProvider(provider)

    if provider == 'fs':
        return StorageConfig(provider='fs', root_path=_env(env, ['STORAGE_ROOT_PATH']) or DEFAULT_FS_ROOT)

    keys = PROVIDER_ENV_KEYS[provider]

    def lookup(field: str, required: bool = False) -> Optional[str]:
        names = [GENERIC_ENV_KEYS[field], keys[field]]
        value = _env(env, names)
        if value is None and required:
            raise MissingEnvVar(' or '.join(names))
        return value

    endpoint = lookup('endpoint')
    if endpoint is None and provider == 'oss':
        endpoint = DEFAULT_OSS_ENDPOINT
    elif endpoint is None and provider == 'minio':
        endpoint = DEFAULT_MINIO_ENDPOINT

    region = lookup('region')
    if region is None and provider == 'minio':
        region = 'us-east-1'

    return StorageConfig(
        provider=provider,
        bucket=lookup('bucket', required=True),
        access_key_id=lookup('access_key_id', required=True),
        access_key_secret=lookup('access_key_secret', required=True),
        region=region,
        endpoint=endpoint,
    )


class ConfigService:
    """Manages the local data directory and tuning settings"""

    def __init__(self, data_dir: Optional[Path] = None):
        self.home_dir = Path.home()
        self.ossify_data_dir = Path(data_dir) if data_dir else self.home_dir / '.ossify'
        self.settings_file = self.ossify_data_dir / 'settings.json'

    def _ensure_directories(self) -> None:
        """Ensure all necessary directories exist"""
        self.ossify_data_dir.mkdir(parents=True, exist_ok=True)

    def save_settings(self, settings: Dict[str, Any]) -> None:
        """Save tuning settings to file"""
        self._ensure_directories()
        with open(self.settings_file, 'w') as f:
            json.dump(settings, f, indent=2)

    def read_settings(self, env: Optional[Mapping[str, str]] = None) -> Dict[str, int]:
        """
        Read tuning settings: defaults, then settings.json, then
        OSSIFY_<NAME> environment variables. Non-positive or malformed
        values are ignored.
        """
        env = os.environ if env is None else env
        settings = dict(DEFAULT_SETTINGS)

        if self.settings_file.exists():
            with open(self.settings_file, 'r') as f:
                try:
                    stored = json.load(f)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Invalid settings file {self.settings_file}: {e}") from e
            for name, value in stored.items():
                if name in settings and isinstance(value, int) and value > 0:
                    settings[name] = value

        for name in settings:
            raw = (env.get(f"OSSIFY_{name.upper()}") or '').strip()
            if raw.isdigit() and int(raw) > 0:
                settings[name] = int(raw)

        return settings


# Global instance
config_service = ConfigService()
