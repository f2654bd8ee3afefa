"""
GemVault Configuration Package

Example:
    from GemVault.config import load_config

    config = load_config(
        path="gemvault.yaml",
        cli_overrides={"lock": {"backend": "redis", "redis_url": "redis://cache:6379/0"}},
    )
"""

from .loader import (
    export_config_schema,
    load_config,
    validate_config_file,
)
from .models import (
    GemVaultConfig,
    LocalStoreConfig,
    LockConfig,
    LoggingConfig,
    ObjectStoreConfig,
)

__all__ = [
    # Models
    "GemVaultConfig",
    "ObjectStoreConfig",
    "LocalStoreConfig",
    "LockConfig",
    "LoggingConfig",
    # Loading/validation
    "load_config",
    "validate_config_file",
    "export_config_schema",
]
