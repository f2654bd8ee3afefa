# === NAVMAP v1 ===
# {
#   "module": "GemVault.locks",
#   "purpose": "Named cross-process locks guarding the upload critical section",
#   "sections": [
#     {"id": "distributedlock", "name": "DistributedLock", "anchor": "class-distributedlock", "kind": "class"},
#     {"id": "filedistributedlock", "name": "FileDistributedLock", "anchor": "class-filedistributedlock", "kind": "class"},
#     {"id": "redisdistributedlock", "name": "RedisDistributedLock", "anchor": "class-redisdistributedlock", "kind": "class"},
#     {"id": "lock-metrics-snapshot", "name": "lock_metrics_snapshot", "anchor": "function-lock-metrics-snapshot", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Named cross-process locks for GemVault.

Responsibilities
----------------
- Define the :class:`DistributedLock` contract: one blocking entry point,
  :meth:`DistributedLock.with_lock`, that runs a critical section while a
  name-keyed lock is held and releases it on every exit path.
- Provide a :mod:`filelock` backend for instances sharing a host or a shared
  filesystem, and a Redis backend for instances on separate hosts.
- Capture acquisition/hold timing via :func:`lock_metrics_snapshot` to
  troubleshoot contention between instances.

Design Notes
------------
- The registry always takes its process-local mutex before calling
  :meth:`DistributedLock.with_lock`; backends must not call back into the
  registry while holding their lock.
- Lock acquisition failures raise :class:`~GemVault.errors.LockTimeoutError`
  and never enter the critical section.
"""

from __future__ import annotations

import hashlib
import logging
import re
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, TypeVar, Union

import redis
from filelock import FileLock, Timeout

from GemVault.errors import LockLeaseLostError, LockTimeoutError

__all__ = [
    "DistributedLock",
    "FileDistributedLock",
    "RedisDistributedLock",
    "lock_metrics_snapshot",
]

LOGGER = logging.getLogger("GemVault.locks")
logging.getLogger("filelock").setLevel(logging.INFO)

T = TypeVar("T")

_DEFAULT_TIMEOUT = 60.0
_DEFAULT_POLL_INTERVAL = 0.1  # seconds
_DEFAULT_LEASE = 120.0
_DEFAULT_LOCK_MODE = 0o640
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class _LockMetrics:
    acquire_total: int = 0
    timeout_total: int = 0
    wait_ms_sum: float = 0.0
    wait_ms_samples: List[float] = field(default_factory=list)
    hold_ms_sum: float = 0.0
    hold_ms_samples: List[float] = field(default_factory=list)


_metrics_guard = threading.RLock()
_metrics: Dict[str, _LockMetrics] = {}


def _record_timeout(name: str, wait_ms: float) -> None:
    with _metrics_guard:
        metrics = _metrics.setdefault(name, _LockMetrics())
        metrics.timeout_total += 1
        metrics.wait_ms_sum += wait_ms
        metrics.wait_ms_samples.append(wait_ms)


def _record_success(name: str, wait_ms: float, hold_ms: float) -> None:
    with _metrics_guard:
        metrics = _metrics.setdefault(name, _LockMetrics())
        metrics.acquire_total += 1
        metrics.wait_ms_sum += wait_ms
        metrics.wait_ms_samples.append(wait_ms)
        metrics.hold_ms_sum += hold_ms
        metrics.hold_ms_samples.append(hold_ms)


def _p95(samples: List[float]) -> float:
    ordered = sorted(float(value) for value in samples if value >= 0)
    if not ordered:
        return 0.0
    index = int(max(len(ordered) - 1, 0) * 0.95)
    return ordered[index]


def lock_metrics_snapshot(*, reset: bool = False) -> Dict[str, Dict[str, Union[int, float]]]:
    """Return a snapshot of collected lock metrics, optionally clearing them."""

    with _metrics_guard:
        snapshot: Dict[str, Dict[str, Union[int, float]]] = {}
        for name, metrics in _metrics.items():
            summary: Dict[str, Union[int, float]] = {
                "acquire_total": metrics.acquire_total,
                "timeout_total": metrics.timeout_total,
                "wait_ms_sum": metrics.wait_ms_sum,
                "wait_ms_p95": _p95(metrics.wait_ms_samples),
            }
            if metrics.hold_ms_samples:
                summary["hold_ms_sum"] = metrics.hold_ms_sum
                summary["hold_ms_p95"] = _p95(metrics.hold_ms_samples)
            snapshot[name] = summary
        if reset:
            _metrics.clear()
        return snapshot


class DistributedLock:
    """Protocol-like base class for name-keyed cross-process locks."""

    def with_lock(self, name: str, critical_section: Callable[[], T]) -> T:
        """Run ``critical_section`` while holding the lock called ``name``.

        Returns:
            Whatever ``critical_section`` returns.

        Raises:
            LockTimeoutError: If the lock could not be acquired.
        """
        raise NotImplementedError

    def _run_held(
        self,
        name: str,
        wait_started: float,
        release: Callable[[], None],
        critical_section: Callable[[], T],
    ) -> T:
        wait_ms = max((time.monotonic() - wait_started) * 1000.0, 0.0)
        LOGGER.debug("lock-acquired name=%s wait_ms=%.3f", name, wait_ms)
        acquired_at = time.monotonic()
        try:
            return critical_section()
        finally:
            try:
                release()
            finally:
                hold_ms = max((time.monotonic() - acquired_at) * 1000.0, 0.0)
                _record_success(name, wait_ms, hold_ms)
                LOGGER.debug("lock-release name=%s hold_ms=%.3f wait_ms=%.3f", name, hold_ms, wait_ms)

    def _timed_out(self, name: str, wait_started: float, timeout: float) -> LockTimeoutError:
        wait_ms = max((time.monotonic() - wait_started) * 1000.0, 0.0)
        LOGGER.info("lock-timeout name=%s wait_ms=%.3f", name, wait_ms)
        _record_timeout(name, wait_ms)
        return LockTimeoutError(name, timeout)


class FileDistributedLock(DistributedLock):
    """Lock backed by :class:`filelock.FileLock` files under ``lock_dir``.

    Processes on one host, or on hosts sharing ``lock_dir`` over a filesystem
    with working ``flock`` semantics, exclude each other.
    """

    def __init__(
        self,
        lock_dir: Union[str, Path],
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        poll_interval: float = _DEFAULT_POLL_INTERVAL,
        mode: int = _DEFAULT_LOCK_MODE,
    ):
        self.lock_dir = Path(lock_dir).expanduser().resolve(strict=False)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.mode = mode

    def lock_file_for(self, name: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", name)
        if safe != name:
            digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:12]
            safe = f"{safe}.{digest}"
        return self.lock_dir / f"{safe}.lock"

    def with_lock(self, name: str, critical_section: Callable[[], T]) -> T:
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_file = self.lock_file_for(name)
        # thread_local=False lets a sibling thread block on the file lock too,
        # instead of silently re-entering it.
        lock = FileLock(str(lock_file), timeout=self.timeout, mode=self.mode, thread_local=False)
        start = time.monotonic()
        try:
            lock.acquire(timeout=self.timeout, poll_interval=self.poll_interval)
        except Timeout as e:
            raise self._timed_out(name, start, self.timeout) from e
        return self._run_held(name, start, lock.release, critical_section)


class RedisDistributedLock(DistributedLock):
    """Lock backed by a Redis key (``redis.lock.Lock``) with a lease.

    The lease bounds how long a crashed holder can block other instances; it
    must exceed the longest expected upload critical section.
    """

    def __init__(
        self,
        client: Any,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        lease: float = _DEFAULT_LEASE,
        poll_interval: float = _DEFAULT_POLL_INTERVAL,
        key_prefix: str = "gemvault:lock:",
    ):
        self._client = client
        self.timeout = timeout
        self.lease = lease
        self.poll_interval = poll_interval
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisDistributedLock":
        return cls(redis.Redis.from_url(url), **kwargs)

    def with_lock(self, name: str, critical_section: Callable[[], T]) -> T:
        lock = self._client.lock(
            self.key_prefix + name,
            timeout=self.lease,
            sleep=self.poll_interval,
            blocking_timeout=self.timeout,
        )
        start = time.monotonic()
        if not lock.acquire(blocking=True):
            raise self._timed_out(name, start, self.timeout)

        completed = False

        def run() -> T:
            nonlocal completed
            result = critical_section()
            completed = True
            return result

        def release() -> None:
            try:
                lock.release()
            except redis.exceptions.LockError as e:
                LOGGER.warning("lock-lease-lost name=%s error=%s", name, e)
                # A failure inside the critical section takes precedence.
                if completed:
                    raise LockLeaseLostError(name) from e

        return self._run_held(name, start, release, run)
