"""
Pytest Configuration

Puts ``src`` on ``sys.path`` and provides the shared fixtures used across the
GemVault suites: an in-memory remote store, a filesystem gem store rooted in
``tmp_path``, a recording upload lock, and a registry wired from all three.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from GemVault.local_store import FileSystemGemStore  # noqa: E402
from GemVault.registry import GemRegistry  # noqa: E402
from tests.helpers.fake_remote import InMemoryObjectStore, RecordingLock  # noqa: E402


@pytest.fixture
def remote() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def local_store(tmp_path: Path) -> FileSystemGemStore:
    return FileSystemGemStore(tmp_path / "data")


@pytest.fixture
def upload_lock() -> RecordingLock:
    return RecordingLock()


@pytest.fixture
def test_logger() -> logging.Logger:
    return logging.getLogger("GemVault.tests")


@pytest.fixture
def registry(remote, local_store, upload_lock, test_logger) -> GemRegistry:
    return GemRegistry(remote, local_store, upload_lock, test_logger, sync_on_start=False)


@pytest.fixture
def make_registry(remote, upload_lock, test_logger, tmp_path: Path):
    """Build an extra registry instance with its own data dir sharing ``remote``."""

    def _make(name: str, **kwargs) -> GemRegistry:
        kwargs.setdefault("sync_on_start", False)
        store = FileSystemGemStore(tmp_path / name)
        return GemRegistry(remote, store, upload_lock, test_logger, **kwargs)

    return _make
