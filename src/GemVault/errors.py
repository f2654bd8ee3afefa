# === NAVMAP v1 ===
# {
#   "module": "GemVault.errors",
#   "purpose": "Error taxonomy for remote sync, local storage, and locking.",
#   "sections": [
#     {"id": "gemvaulterror", "name": "GemVaultError", "anchor": "class-gemvaulterror", "kind": "class"},
#     {"id": "absentremoteobject", "name": "AbsentRemoteObject", "anchor": "class-absentremoteobject", "kind": "class"},
#     {"id": "remotetransporterror", "name": "RemoteTransportError", "anchor": "class-remotetransporterror", "kind": "class"},
#     {"id": "localfilesystemerror", "name": "LocalFilesystemError", "anchor": "class-localfilesystemerror", "kind": "class"},
#     {"id": "translate-client-error", "name": "translate_client_error", "anchor": "function-translate-client-error", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy for the GemVault sync layer.

Responsibilities
----------------
- Distinguish a missing remote object (:class:`AbsentRemoteObject`), which is
  an ordinary branch condition, from every other remote failure
  (:class:`RemoteTransportError`), which aborts the triggering operation.
- Translate botocore exceptions into that taxonomy via
  :func:`translate_client_error` so callers never import botocore.

Design Notes
------------
- Nothing in this package retries. Each remote call is attempted exactly once
  and the translated error carries the key and operation that failed.
"""

from __future__ import annotations

from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

__all__ = (
    "GemVaultError",
    "AbsentRemoteObject",
    "RemoteTransportError",
    "LocalFilesystemError",
    "ArtifactExistsError",
    "LockTimeoutError",
    "LockLeaseLostError",
    "translate_client_error",
)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class GemVaultError(Exception):
    """Base class for all GemVault errors."""


class AbsentRemoteObject(GemVaultError):
    """Raised when a remote key does not exist."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Remote object not found: {key}")
        self.key = key


class RemoteTransportError(GemVaultError):
    """Raised for any remote failure other than absence (auth, network, backend)."""

    def __init__(self, message: str, *, key: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.key = key
        self.operation = operation


class LocalFilesystemError(GemVaultError, OSError):
    """Raised when the local data directory cannot be prepared or written."""


class ArtifactExistsError(GemVaultError):
    """Raised when creating an artifact that already exists without ``overwrite``."""

    def __init__(self, path_ref: str) -> None:
        super().__init__(f"Artifact already exists: {path_ref}")
        self.path_ref = path_ref


class LockTimeoutError(GemVaultError):
    """Raised when a distributed lock cannot be acquired in time."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:.1f}s waiting for lock '{name}'")
        self.name = name
        self.timeout = timeout


class LockLeaseLostError(GemVaultError):
    """Raised when a lock lease expired before the holder released it."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Lease on lock '{name}' expired before release")
        self.name = name


def _error_code(exc: ClientError) -> str:
    error = exc.response.get("Error", {}) if isinstance(exc.response, dict) else {}
    code = error.get("Code")
    if code:
        return str(code)
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return str(status) if status is not None else ""


def translate_client_error(exc: Exception, *, key: str, operation: str) -> GemVaultError:
    """Map a botocore exception onto :class:`AbsentRemoteObject` or :class:`RemoteTransportError`.

    Args:
        exc: Exception raised by the boto3 client.
        key: Remote key the operation targeted.
        operation: Short name of the adapter operation (``read``, ``write``...).

    Returns:
        The translated exception; callers ``raise ... from exc``.
    """
    if isinstance(exc, ClientError) and _error_code(exc) in _NOT_FOUND_CODES:
        return AbsentRemoteObject(key)
    if isinstance(exc, (ClientError, BotoCoreError)):
        return RemoteTransportError(f"{operation} failed for {key}: {exc}", key=key, operation=operation)
    return RemoteTransportError(
        f"{operation} failed for {key}: {type(exc).__name__}: {exc}", key=key, operation=operation
    )
