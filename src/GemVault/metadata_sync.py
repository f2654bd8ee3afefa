# === NAVMAP v1 ===
# {
#   "module": "GemVault.metadata_sync",
#   "purpose": "Freshness detection and bulk pull/push of gem index files.",
#   "sections": [
#     {"id": "metadatasyncengine", "name": "MetadataSyncEngine", "anchor": "class-metadatasyncengine", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Freshness detection and bulk pull/push of gem index files.

Only one file, the freshness probe, is compared between local and remote. A
stale probe triggers a full re-pull of every tracked index file; there is no
per-file diffing. Pushes are a sequence of independent whole-object writes
and a failure part-way through leaves remote metadata mixed until the next
successful push.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path

from GemVault.errors import AbsentRemoteObject
from GemVault.layout import FRESHNESS_PROBE, METADATA_FILES, metadata_key
from GemVault.local_store import LocalStore
from GemVault.object_store import ObjectStore


class MetadataSyncEngine:
    """Keeps the local index files in step with the ``metadata/`` namespace."""

    def __init__(self, object_store: ObjectStore, local_store: LocalStore, logger: logging.Logger):
        self.object_store = object_store
        self.local_store = local_store
        self.logger = logger
        self._local_metadata_lock = threading.Lock()

    def check_remote_changed(self) -> bool:
        """Return True if the remote freshness probe is newer than the local copy.

        An absent remote probe means local state (if any) is authoritative.
        Any other probe failure propagates.
        """
        try:
            remote_last_modified = self.object_store.last_modified(metadata_key(FRESHNESS_PROBE))
        except AbsentRemoteObject:
            self.logger.info("No metadata exists on remote store, skipping retrieval.")
            return False

        local_file = self.local_store.local_path(FRESHNESS_PROBE)
        if not local_file.exists():
            return True
        local_mtime = datetime.fromtimestamp(local_file.stat().st_mtime, tz=timezone.utc)
        return local_mtime < remote_last_modified

    def update_local_metadata(self) -> bool:
        """Re-pull every index file if the remote probe is newer.

        Returns:
            True if a pull cycle ran.
        """
        with self._local_metadata_lock:
            if not self.check_remote_changed():
                return False
            self.logger.info("Local metadata is out of date, repopulating from remote store.")
            if not self.local_store.data_dir.is_dir():
                self.logger.info("Local data directory does not exist, creating it.")
                self.local_store.prepare_data_folders()
            for file_name in METADATA_FILES:
                try:
                    self.pull_file(file_name)
                except AbsentRemoteObject:
                    self.logger.info(f"{file_name} does not exist on remote store, keeping local copy.")
            return True

    def push_metadata(self) -> None:
        """Upload every index file, binary before text; absent files become empty objects."""
        for file_name in METADATA_FILES:
            self.push_file(file_name)

    def pull_file(self, file_name: str) -> Path:
        self.logger.info(f"Pull: remote -> local {file_name}")
        file_path = self.local_store.local_path(file_name)
        # A broken transfer must leave the current copy and its mtime untouched.
        fd, tmp_name = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                for chunk in self.object_store.read(metadata_key(file_name)):
                    handle.write(chunk)
            os.replace(tmp_name, file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return file_path

    def push_file(self, file_name: str) -> None:
        self.logger.info(f"Push: local -> remote {file_name}")
        file_path = self.local_store.local_path(file_name)
        if file_path.exists():
            payload = file_path.read_bytes()
        else:
            self.logger.info(f"File '{file_path}' does not exist. Pushing an empty object instead.")
            payload = b""
        self.object_store.write(metadata_key(file_name), payload)
