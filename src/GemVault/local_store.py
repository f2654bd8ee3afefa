"""Local artifact store contract and a plain filesystem implementation.

The sync layer only moves bytes in and out of the local store; the on-disk
index format is the store's business. :class:`FileSystemGemStore` keeps
artifacts under ``<data_dir>/gems/`` and index files at the top of
``<data_dir>``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

from GemVault.errors import ArtifactExistsError, LocalFilesystemError
from GemVault.layout import ARTIFACT_DIR, PackageArtifact

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class LocalStore:
    """Protocol-like base class for the local artifact store.

    Path references are strings relative to the data directory, with or
    without a leading slash (``/gems/rack-3.0.0.gem``, ``specs.4.8``).
    """

    @property
    def data_dir(self) -> Path:
        raise NotImplementedError

    def create(self, artifact: PackageArtifact, overwrite: bool = False) -> None:
        """Persist ``artifact`` locally."""
        raise NotImplementedError

    def delete(self, path_ref: str) -> None:
        raise NotImplementedError

    def local_path(self, path_ref: str) -> Path:
        raise NotImplementedError

    def update_local_file(self, path_ref: str) -> None:
        """Bookkeeping hook run after a lazy fetch attempt."""
        raise NotImplementedError

    def prepare_data_folders(self) -> None:
        raise NotImplementedError

    def reindex(self, callback: Optional[ProgressCallback] = None) -> None:
        raise NotImplementedError


class FileSystemGemStore(LocalStore):
    """Stores artifacts as plain files under a data directory."""

    def __init__(self, data_dir: str | Path):
        self._data_dir = Path(data_dir).expanduser()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def artifact_dir(self) -> Path:
        return self._data_dir / ARTIFACT_DIR

    def local_path(self, path_ref: str) -> Path:
        relative = str(path_ref).lstrip("/")
        path = (self._data_dir / relative).resolve(strict=False)
        root = self._data_dir.resolve(strict=False)
        if path != root and root not in path.parents:
            raise ValueError(f"Path reference escapes data directory: {path_ref!r}")
        return path

    def prepare_data_folders(self) -> None:
        try:
            self.artifact_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalFilesystemError(f"Cannot prepare data directory {self._data_dir}: {e}") from e
        logger.debug(f"Prepared data folders under {self._data_dir}")

    def create(self, artifact: PackageArtifact, overwrite: bool = False) -> None:
        target = self.local_path(artifact.path_ref)
        if target.exists() and not overwrite:
            raise ArtifactExistsError(artifact.path_ref)
        self.prepare_data_folders()
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(artifact.data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info(f"Stored {artifact.name} ({artifact.size} bytes) at {target}")

    def delete(self, path_ref: str) -> None:
        target = self.local_path(path_ref)
        target.unlink(missing_ok=True)
        logger.info(f"Deleted local copy {target}")

    def update_local_file(self, path_ref: str) -> None:
        target = self.local_path(path_ref)
        if target.exists():
            target.touch()

    def reindex(self, callback: Optional[ProgressCallback] = None) -> None:
        if not self.artifact_dir.is_dir():
            return
        artifacts = sorted(
            p for p in self.artifact_dir.iterdir() if p.is_file() and not p.name.startswith(".")
        )
        total = len(artifacts)
        for done, path in enumerate(artifacts, start=1):
            if callback is not None:
                callback(done, total, path.name)
        logger.info(f"Reindexed {total} artifacts under {self.artifact_dir}")
