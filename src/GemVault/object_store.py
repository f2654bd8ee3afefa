# === NAVMAP v1 ===
# {
#   "module": "GemVault.object_store",
#   "purpose": "Remote object store contract and its boto3 implementation.",
#   "sections": [
#     {"id": "objectstore", "name": "ObjectStore", "anchor": "class-objectstore", "kind": "class"},
#     {"id": "s3objectstore", "name": "S3ObjectStore", "anchor": "class-s3objectstore", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Remote object store contract and its S3 implementation.

Every operation is synchronous and attempted exactly once. A missing key
surfaces as :class:`~GemVault.errors.AbsentRemoteObject` where the contract
calls for it; every other failure surfaces as
:class:`~GemVault.errors.RemoteTransportError`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from GemVault.errors import AbsentRemoteObject, translate_client_error
from GemVault.layout import RemoteObject

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1 << 20


class ObjectStore:
    """Protocol-like base class for remote object stores.

    Implementations must never retry internally; callers rely on a single
    attempt per invocation.
    """

    def exists(self, key: str) -> bool:
        """Return True if ``key`` exists remotely."""
        raise NotImplementedError

    def read(self, key: str, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        """Open ``key`` and return an iterator over its content in chunks.

        The request is issued before this method returns, so a missing key
        raises here rather than on first iteration.
        """
        raise NotImplementedError

    def read_all(self, key: str) -> bytes:
        """Return the full content of ``key`` in memory."""
        return b"".join(self.read(key))

    def write(self, key: str, data: bytes) -> None:
        """Overwrite ``key`` with ``data`` (no conditional put)."""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def last_modified(self, key: str) -> datetime:
        """Return the timezone-aware last-modified time of ``key``.

        Raises:
            AbsentRemoteObject: If ``key`` does not exist.
        """
        raise NotImplementedError

    def list(self, prefix: str) -> Iterator[RemoteObject]:
        """Lazily yield every object under ``prefix``."""
        raise NotImplementedError


class S3ObjectStore(ObjectStore):
    """S3 (or S3-compatible) object store backed by a boto3 client."""

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        client: Any = None,
    ):
        """Initialize the store.

        Args:
            bucket: Bucket holding the ``artifacts/``, ``metadata/`` and ``cache/`` namespaces
            region: AWS region (default 'us-east-1')
            endpoint_url: Endpoint override for MinIO, SeaweedFS and friends
            access_key_id: Explicit credentials (falls back to the boto3 chain)
            secret_access_key: Explicit credentials
            session_token: Optional STS session token
            chunk_size: Default streaming chunk size in bytes
            client: Pre-built boto3 S3 client (skips client construction)
        """
        self.bucket = bucket
        self.chunk_size = chunk_size
        if client is None:
            client = self._build_client(
                region=region,
                endpoint_url=endpoint_url,
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
                session_token=session_token,
            )
        self._client = client
        logger.info(f"Initialized S3ObjectStore: s3://{bucket}")

    @staticmethod
    def _build_client(
        *,
        region: str,
        endpoint_url: Optional[str],
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        session_token: Optional[str],
    ) -> Any:
        kwargs: dict = {
            "config": Config(
                region_name=region,
                signature_version="s3v4",
                # A single attempt per call; retries belong to the caller.
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        }
        if access_key_id and secret_access_key:
            kwargs["aws_access_key_id"] = access_key_id
            kwargs["aws_secret_access_key"] = secret_access_key
        if session_token:
            kwargs["aws_session_token"] = session_token
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        return boto3.client("s3", **kwargs)

    def _head(self, key: str) -> dict:
        try:
            return self._client.head_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise translate_client_error(e, key=key, operation="head") from e

    def exists(self, key: str) -> bool:
        try:
            self._head(key)
        except AbsentRemoteObject:
            return False
        return True

    def read(self, key: str, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise translate_client_error(e, key=key, operation="read") from e
        return self._iter_body(key, response["Body"], chunk_size or self.chunk_size)

    def _iter_body(self, key: str, body: Any, chunk_size: int) -> Iterator[bytes]:
        try:
            for chunk in body.iter_chunks(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        except (ClientError, BotoCoreError) as e:
            raise translate_client_error(e, key=key, operation="read") from e
        finally:
            body.close()

    def write(self, key: str, data: bytes) -> None:
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise translate_client_error(e, key=key, operation="write") from e
        logger.debug(f"Wrote {len(data)} bytes to s3://{self.bucket}/{key}")

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise translate_client_error(e, key=key, operation="delete") from e

    def last_modified(self, key: str) -> datetime:
        stamp = self._head(key)["LastModified"]
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp

    def list(self, prefix: str) -> Iterator[RemoteObject]:
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield RemoteObject(key=obj["Key"], content_length=int(obj["Size"]))
        except (ClientError, BotoCoreError) as e:
            raise translate_client_error(e, key=prefix, operation="list") from e
