"""
cloud_utils.py – Read access to exported tenant records.

Record exports are JSON documents stored as ``<tenant_id>/<entity>.json``,
either in an S3-compatible bucket or under a local directory. A bucket read
that fails falls back to the local copy.

Usage:
  from src.record_store.cloud_utils import StorageHandler

  storage = StorageHandler.from_env(local_base="data/records")
  invoices = storage.download_json("acme/invoices.json")

Requirements:
  • boto3 and botocore
  • FEATURES_STORAGE_ENDPOINT / _ACCESS_KEY / _SECRET_KEY / _BUCKET for the
    bucket; without a bucket name only the local directory is used
"""
import os
import json
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = 'https://s3.filebase.com'


def _s3_client(endpoint_url, access_key, secret_key):
    cfg = Config(signature_version="s3v4", s3={"addressing_style": "path"})
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        config=cfg,
        region_name='us-east-1'
    )


class StorageHandler:
    """Bucket-first, local-fallback reader; last_mode tells where the last read came from."""

    def __init__(self, endpoint_url, access_key, secret_key, bucket_name, local_base="data"):
        """
        Args:
            endpoint_url: S3-compatible endpoint URL
            access_key: Bucket access key
            secret_key: Bucket secret key
            bucket_name: Bucket holding the exports; None/empty for local-only mode
            local_base: Directory holding the local copies
        """
        self.bucket = bucket_name
        self.local_base = local_base.rstrip(os.sep)
        self.last_mode = None
        self.s3 = _s3_client(endpoint_url, access_key, secret_key) if bucket_name else None

    @classmethod
    def from_env(cls, local_base="data"):
        """Build a handler from FEATURES_STORAGE_* environment variables."""
        return cls(
            os.getenv('FEATURES_STORAGE_ENDPOINT', DEFAULT_ENDPOINT),
            os.getenv('FEATURES_STORAGE_ACCESS_KEY'),
            os.getenv('FEATURES_STORAGE_SECRET_KEY'),
            os.getenv('FEATURES_STORAGE_BUCKET'),
            local_base=local_base,
        )

    @property
    def uses_bucket(self):
        return bool(self.s3 and self.bucket)

    def _local_path(self, key):
        return os.path.join(self.local_base, *key.split('/'))

    def list_prefix(self, prefix):
        """Keys of the exports under a prefix (one tenant directory, for example)."""
        if self.uses_bucket:
            keys = []
            for page in self.s3.get_paginator('list_objects_v2').paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj['Key'] for obj in page.get('Contents', []))
            return keys

        local_dir = self._local_path(prefix)
        if not os.path.isdir(local_dir):
            return []
        return sorted(
            f"{prefix.rstrip('/')}/{name}"
            for name in os.listdir(local_dir)
            if os.path.isfile(os.path.join(local_dir, name))
        )

    def download(self, key):
        """
        Read an export as bytes.

        Raises:
            FileNotFoundError: if the key is in neither the bucket nor the local directory
        """
        if self.uses_bucket:
            try:
                body = self.s3.get_object(Bucket=self.bucket, Key=key)['Body'].read()
            except (ClientError, BotoCoreError) as e:
                logger.warning(f"Bucket read of {key} failed, trying local copy: {e}")
            else:
                self.last_mode = 'cloud'
                logger.debug(f"Read {key} from s3://{self.bucket}")
                return body

        local_path = self._local_path(key)
        if not os.path.isfile(local_path):
            logger.error(f"{key} not found in bucket or at {local_path}")
            raise FileNotFoundError(local_path)
        with open(local_path, 'rb') as f:
            body = f.read()
        self.last_mode = 'local'
        logger.debug(f"Read {key} from {local_path}")
        return body

    def download_json(self, key):
        """Read a JSON export; a top-level ``{"data": ...}`` envelope is unwrapped, other documents are returned as is."""
        payload = json.loads(self.download(key))
        return payload.get('data', payload) if isinstance(payload, dict) else payload

    def exists(self, key):
        if self.uses_bucket:
            try:
                self.s3.head_object(Bucket=self.bucket, Key=key)
                return True
            except (ClientError, BotoCoreError):
                pass
        return os.path.isfile(self._local_path(key))

    def get_last_mode(self):
        """'cloud' or 'local', for the most recent successful read."""
        return self.last_mode
