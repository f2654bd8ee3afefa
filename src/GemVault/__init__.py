"""
GemVault: remote sync and locking for multi-instance private gem repositories.

Each repository instance keeps a local on-disk cache while one S3 bucket
stays authoritative. This package provides:
  - Freshness detection and bulk pull/push of gem index files
  - A named distributed lock around uploads (filelock or Redis)
  - Lazy fetch-on-miss of gems and ephemeral cache entries
"""

from __future__ import annotations

from GemVault.cache import RemoteCache
from GemVault.errors import (
    AbsentRemoteObject,
    ArtifactExistsError,
    GemVaultError,
    LocalFilesystemError,
    LockLeaseLostError,
    LockTimeoutError,
    RemoteTransportError,
)
from GemVault.layout import PackageArtifact, RemoteObject
from GemVault.local_store import FileSystemGemStore, LocalStore
from GemVault.locks import DistributedLock, FileDistributedLock, RedisDistributedLock
from GemVault.metadata_sync import MetadataSyncEngine
from GemVault.object_store import ObjectStore, S3ObjectStore
from GemVault.registry import GemRegistry

__version__ = "0.1.0"
__all__ = [
    "AbsentRemoteObject",
    "ArtifactExistsError",
    "DistributedLock",
    "FileDistributedLock",
    "FileSystemGemStore",
    "GemRegistry",
    "GemVaultError",
    "LocalFilesystemError",
    "LocalStore",
    "LockLeaseLostError",
    "LockTimeoutError",
    "MetadataSyncEngine",
    "ObjectStore",
    "PackageArtifact",
    "RedisDistributedLock",
    "RemoteCache",
    "RemoteObject",
    "RemoteTransportError",
    "S3ObjectStore",
]
