"""Factory functions wiring GemVault collaborators from configuration."""

from __future__ import annotations

import logging
from typing import Any, Optional

from GemVault.cache import RemoteCache
from GemVault.config.models import GemVaultConfig
from GemVault.local_store import FileSystemGemStore
from GemVault.locks import DistributedLock, FileDistributedLock, RedisDistributedLock
from GemVault.logging_config import get_logger
from GemVault.object_store import S3ObjectStore
from GemVault.registry import GemRegistry

logger = logging.getLogger(__name__)


def build_object_store(config: GemVaultConfig, *, client: Any = None) -> S3ObjectStore:
    store = config.object_store
    return S3ObjectStore(
        store.bucket,
        region=store.region,
        endpoint_url=store.endpoint_url,
        access_key_id=store.access_key_id,
        secret_access_key=store.secret_access_key,
        session_token=store.session_token,
        chunk_size=store.read_chunk_size,
        client=client,
    )


def build_lock(config: GemVaultConfig, *, redis_client: Any = None) -> DistributedLock:
    """Build the distributed lock backend named by ``config.lock.backend``."""
    lock = config.lock
    if lock.backend == "redis":
        if redis_client is not None:
            return RedisDistributedLock(
                redis_client,
                timeout=lock.timeout_s,
                lease=lock.lease_s,
                poll_interval=lock.poll_interval_s,
            )
        return RedisDistributedLock.from_url(
            lock.redis_url,
            timeout=lock.timeout_s,
            lease=lock.lease_s,
            poll_interval=lock.poll_interval_s,
        )
    return FileDistributedLock(lock.lock_dir, timeout=lock.timeout_s, poll_interval=lock.poll_interval_s)


def build_registry(
    config: GemVaultConfig,
    *,
    client: Any = None,
    redis_client: Any = None,
    sync_on_start: Optional[bool] = None,
) -> GemRegistry:
    """Build a :class:`GemRegistry` backed by S3 and the local filesystem.

    Args:
        config: Validated configuration
        client: Pre-built boto3 S3 client (optional)
        redis_client: Pre-built Redis client for the redis lock backend (optional)
        sync_on_start: Override ``config.sync_on_start``
    """
    logger.debug(f"Building registry for bucket {config.object_store.bucket}")
    return GemRegistry(
        build_object_store(config, client=client),
        FileSystemGemStore(config.local_store.data_dir),
        build_lock(config, redis_client=redis_client),
        get_logger("registry"),
        lock_name=config.lock.name,
        sync_on_start=config.sync_on_start if sync_on_start is None else sync_on_start,
    )


def build_cache(config: GemVaultConfig, *, client: Any = None) -> RemoteCache:
    return RemoteCache(build_object_store(config, client=client), get_logger("cache"))
