"""Remote key namespaces and the fixed set of gem index files.

Remote keys are derived from local path references by namespace prefix:

    /gems/rack-3.0.0.gem      <->  artifacts/rack-3.0.0.gem
    specs.4.8.gz               ->  metadata/specs.4.8.gz
    /tmp/spec_cache/foo.gemspec ->  cache/foo.gemspec

Artifact mapping is reversible; cache mapping keeps only the basename.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Final, Tuple

__all__ = [
    "ARTIFACT_DIR",
    "ARTIFACT_PREFIX",
    "METADATA_PREFIX",
    "CACHE_PREFIX",
    "BINARY_METADATA_FILES",
    "TEXT_METADATA_FILES",
    "METADATA_FILES",
    "FRESHNESS_PROBE",
    "PackageArtifact",
    "RemoteObject",
    "artifact_key",
    "path_ref_for_artifact_key",
    "metadata_key",
    "cache_key",
]

ARTIFACT_DIR: Final[str] = "gems"
ARTIFACT_PREFIX: Final[str] = "artifacts/"
METADATA_PREFIX: Final[str] = "metadata/"
CACHE_PREFIX: Final[str] = "cache/"

# Compressed catalog indexes.
BINARY_METADATA_FILES: Final[Tuple[str, ...]] = (
    "specs.4.8.gz",
    "latest_specs.4.8.gz",
    "prerelease_specs.4.8.gz",
)
# Legacy and current uncompressed catalog indexes. The last entry is written
# last by a push, so it doubles as the freshness probe.
TEXT_METADATA_FILES: Final[Tuple[str, ...]] = (
    "yaml",
    "Marshal.4.8",
    "specs.4.8",
    "latest_specs.4.8",
    "prerelease_specs.4.8",
)
METADATA_FILES: Final[Tuple[str, ...]] = BINARY_METADATA_FILES + TEXT_METADATA_FILES
FRESHNESS_PROBE: Final[str] = TEXT_METADATA_FILES[-1]

_ARTIFACT_REF_PREFIX = f"/{ARTIFACT_DIR}/"


@dataclass(frozen=True)
class PackageArtifact:
    """An installable package payload plus the file name it is stored under."""

    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def path_ref(self) -> str:
        return _ARTIFACT_REF_PREFIX + self.name

    @classmethod
    def from_path_ref(cls, path_ref: str, payload: bytes) -> "PackageArtifact":
        """Build an artifact named after the basename of ``path_ref``."""
        return cls(name=posixpath.basename(path_ref), data=payload)


@dataclass(frozen=True)
class RemoteObject:
    """A listed remote object and its reported size in bytes."""

    key: str
    content_length: int


def _artifact_name(path_ref: str) -> str:
    ref = "/" + path_ref.lstrip("/")
    if not ref.startswith(_ARTIFACT_REF_PREFIX) or len(ref) == len(_ARTIFACT_REF_PREFIX):
        raise ValueError(f"Not an artifact path reference: {path_ref!r}")
    return ref[len(_ARTIFACT_REF_PREFIX) :]


def artifact_key(path_ref: str) -> str:
    """Return the remote key for an artifact path reference (``/gems/<name>``)."""
    return ARTIFACT_PREFIX + _artifact_name(path_ref)


def path_ref_for_artifact_key(key: str) -> str:
    """Inverse of :func:`artifact_key`."""
    if not key.startswith(ARTIFACT_PREFIX) or key == ARTIFACT_PREFIX:
        raise ValueError(f"Not an artifact key: {key!r}")
    return _ARTIFACT_REF_PREFIX + key[len(ARTIFACT_PREFIX) :]


def metadata_key(file_name: str) -> str:
    return METADATA_PREFIX + file_name.lstrip("/")


def cache_key(file_name: str) -> str:
    return CACHE_PREFIX + posixpath.basename(str(file_name).replace("\\", "/"))
