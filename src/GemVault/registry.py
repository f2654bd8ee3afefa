# === NAVMAP v1 ===
# {
#   "module": "GemVault.registry",
#   "purpose": "Gem registry operations that keep the local cache and remote store in step.",
#   "sections": [
#     {"id": "gemregistry", "name": "GemRegistry", "anchor": "class-gemregistry", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Gem registry operations over a local store and a shared remote store.

Responsibilities
----------------
- :meth:`GemRegistry.create` uploads a new artifact and republishes the index
  files while holding the process-local mutex and the named distributed lock,
  in that order.
- :meth:`GemRegistry.update_local_file` and :meth:`GemRegistry.reindex` pull
  artifacts lazily or in bulk without the distributed lock; they converge
  under repetition.
- :meth:`GemRegistry.access_metadata` refreshes index files before reads.

Design Notes
------------
- Deletes are not propagated to peer instances. Other instances keep serving
  their cached copy until their own refresh cycle notices the new index files.
- :meth:`GemRegistry.reindex` compares sizes only; same-size content drift is
  not detected.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from GemVault.layout import (
    ARTIFACT_DIR,
    ARTIFACT_PREFIX,
    PackageArtifact,
    artifact_key,
    path_ref_for_artifact_key,
)
from GemVault.local_store import LocalStore, ProgressCallback
from GemVault.locks import DistributedLock
from GemVault.metadata_sync import MetadataSyncEngine
from GemVault.object_store import ObjectStore

DEFAULT_LOCK_NAME = "gemvault-upload"


class GemRegistry:
    """Coordinates artifact mutations between one instance and the shared store.

    Args:
        object_store: Shared remote store
        local_store: This instance's on-disk store
        lock: Distributed lock serializing uploads across instances
        logger: Logger receiving progress messages
        lock_name: Name of the distributed upload lock
        sync_on_start: Refresh local metadata once during construction
    """

    def __init__(
        self,
        object_store: ObjectStore,
        local_store: LocalStore,
        lock: DistributedLock,
        logger: logging.Logger,
        *,
        lock_name: str = DEFAULT_LOCK_NAME,
        sync_on_start: bool = True,
    ):
        self.object_store = object_store
        self.local_store = local_store
        self.lock = lock
        self.logger = logger
        self.lock_name = lock_name
        self.metadata = MetadataSyncEngine(object_store, local_store, logger)
        self._create_lock = threading.Lock()

        if sync_on_start:
            self.metadata.update_local_metadata()

    def create(self, artifact: PackageArtifact, overwrite: bool = False) -> None:
        """Store ``artifact`` locally and remotely, then republish the index files."""
        with self._create_lock:
            self.lock.with_lock(self.lock_name, lambda: self._create_locked(artifact, overwrite))

    def _create_locked(self, artifact: PackageArtifact, overwrite: bool) -> None:
        # Pull first so a push cannot clobber index files another instance wrote.
        self.metadata.update_local_metadata()
        self.local_store.create(artifact, overwrite)

        key = artifact_key(artifact.path_ref)
        self.logger.info(f"Gem: local -> remote {key}")
        self.object_store.write(key, artifact.data)
        self.metadata.push_metadata()

    def delete(self, path_ref: str) -> None:
        """Delete an artifact locally and remotely.

        Other instances keep serving their cached copy; consider disabling
        deletes when running more than one instance.
        """
        self.local_store.delete(path_ref)
        self.object_store.delete(artifact_key(path_ref))

    def update_local_file(self, path_ref: str) -> None:
        """Fetch ``path_ref`` from the remote store if it is missing locally."""
        gem_file = self.local_store.local_path(path_ref)
        if not gem_file.exists():
            key = artifact_key(path_ref)
            if self.object_store.exists(key):
                # Whole artifact is held in memory; no streaming to disk here.
                payload = self.object_store.read_all(key)
                self.local_store.create(PackageArtifact.from_path_ref(path_ref, payload))
                self.metadata.push_metadata()

        self.local_store.update_local_file(path_ref)

    def reindex(self, progress_callback: Optional[ProgressCallback] = None) -> List[str]:
        """Download missing or resized artifacts, then rebuild local indexes.

        Returns:
            Path references that were re-downloaded.
        """
        self.local_store.local_path(ARTIFACT_DIR).mkdir(parents=True, exist_ok=True)
        fetched: List[str] = []
        for remote in self.object_store.list(ARTIFACT_PREFIX):
            if remote.key == ARTIFACT_PREFIX:
                continue
            path_ref = path_ref_for_artifact_key(remote.key)
            local_file = self.local_store.local_path(path_ref)

            local_size = local_file.stat().st_size if local_file.exists() else None
            if local_size is None or local_size != remote.content_length:
                self.logger.info(f"Gem: remote -> local {local_file}")
                local_file.parent.mkdir(parents=True, exist_ok=True)
                local_file.write_bytes(self.object_store.read_all(remote.key))
                fetched.append(path_ref)

        self.local_store.reindex(progress_callback)
        return fetched

    def access_metadata(self) -> bool:
        """Refresh local index files before serving a read.

        Returns:
            True if a pull cycle ran.
        """
        self.logger.info("access_metadata hook")
        refreshed = self.metadata.update_local_metadata()
        self.logger.info("access_metadata hook completed")
        return refreshed

    def check_remote_changed(self) -> bool:
        return self.metadata.check_remote_changed()

    def push_metadata(self) -> None:
        """Republish local index files under the distributed upload lock."""
        with self._create_lock:
            self.lock.with_lock(self.lock_name, self.metadata.push_metadata)
