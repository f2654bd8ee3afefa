"""Fetch-on-miss retrieval of ephemeral cache entries under ``cache/``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from GemVault.layout import cache_key
from GemVault.object_store import ObjectStore


class RemoteCache:
    """Mirrors a local cache directory into the remote ``cache/`` namespace.

    Remote keys keep only the file's basename, so two local directories that
    share basenames share remote entries.
    """

    def __init__(self, object_store: ObjectStore, logger: logging.Logger):
        self.object_store = object_store
        self.logger = logger

    def pre_read(self, file_name: Union[str, Path]) -> None:
        """Materialize ``file_name`` from the remote cache if it is missing locally."""
        path = Path(file_name)
        key = cache_key(str(file_name))
        if path.exists():
            self.logger.info(f"{path.name} exists locally, not retrieving from remote store.")
            return
        if not self.object_store.exists(key):
            self.logger.info(f"{key} does not exist on remote store, not retrieving.")
            return

        try:
            handle = open(path, "xb")
        except FileExistsError:
            # Another writer materialized it first.
            return
        try:
            with handle:
                for chunk in self.object_store.read(key):
                    handle.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        self.logger.info(f"{key} found on remote store, written out to {path}")

    def post_write(self, file_name: Union[str, Path]) -> None:
        """Overwrite the remote entry with the full local content (last writer wins)."""
        path = Path(file_name)
        key = cache_key(str(file_name))
        self.object_store.write(key, path.read_bytes())
        self.logger.info(f"{path} written out to remote key {key}")
