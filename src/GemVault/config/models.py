"""
Pydantic v2 Configuration Models for GemVault

Provides strict, typed configuration for each collaborator:
- Remote object store (bucket, endpoint, credentials, streaming chunk size)
- Local data directory
- Distributed upload lock (file or Redis backend)
- Logging
- Top-level GemVaultConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

import hashlib
import json
from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_SECRET_FIELDS = frozenset({"secret_access_key", "session_token"})


class ObjectStoreConfig(BaseModel):
    """Configuration for the shared S3-compatible bucket."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    bucket: str = Field(default="gemvault", description="Bucket holding all namespaces")
    region: str = Field(default="us-east-1", description="AWS region")
    endpoint_url: Optional[str] = Field(
        default=None, description="Endpoint override for S3-compatible services"
    )
    access_key_id: Optional[str] = Field(default=None, description="Access key (optional)")
    secret_access_key: Optional[str] = Field(default=None, description="Secret key (optional)")
    session_token: Optional[str] = Field(default=None, description="STS session token")
    read_chunk_size: int = Field(default=1 << 20, description="Streaming read chunk size")

    @field_validator("bucket")
    @classmethod
    def validate_bucket(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("bucket must not be empty")
        return v

    @field_validator("read_chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("read_chunk_size must be > 0")
        return v


class LocalStoreConfig(BaseModel):
    """Configuration for this instance's on-disk store."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    data_dir: str = Field(default="./data", description="Local data directory")


class LockConfig(BaseModel):
    """Configuration for the distributed upload lock."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    backend: Literal["file", "redis"] = Field(default="file", description="Lock backend")
    name: str = Field(default="gemvault-upload", description="Upload lock name")
    lock_dir: str = Field(default="./locks", description="Lock file directory (file backend)")
    timeout_s: float = Field(default=60.0, description="Acquisition timeout in seconds")
    poll_interval_s: float = Field(default=0.1, description="Acquisition poll interval")
    redis_url: Optional[str] = Field(default=None, description="Redis URL (redis backend)")
    lease_s: float = Field(default=120.0, description="Lock lease in seconds (redis backend)")

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("timeout_s must be >= 0")
        return v

    @field_validator("poll_interval_s", "lease_s")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Must be > 0")
        return v

    @model_validator(mode="after")
    def validate_backend(self) -> "LockConfig":
        if self.backend == "redis" and not self.redis_url:
            raise ValueError("redis_url is required when lock backend is 'redis'")
        return self


class LoggingConfig(BaseModel):
    """Configuration for console and JSON file logging."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", description="Log level")
    json_log_dir: Optional[str] = Field(default=None, description="Directory for JSON-lines logs")
    max_log_size_mb: float = Field(default=10.0, description="Rotate JSON logs at this size")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("max_log_size_mb")
    @classmethod
    def validate_size(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_log_size_mb must be > 0")
        return v


class GemVaultConfig(BaseModel):
    """Top-level GemVault configuration."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    object_store: ObjectStoreConfig = Field(default_factory=ObjectStoreConfig)
    local_store: LocalStoreConfig = Field(default_factory=LocalStoreConfig)
    lock: LockConfig = Field(default_factory=LockConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sync_on_start: bool = Field(
        default=True, description="Refresh local metadata when the registry is built"
    )

    def masked_dump(self) -> dict:
        """Return a plain dict with credentials replaced by ``***masked***``."""
        data = self.model_dump()
        store = data["object_store"]
        for key in _SECRET_FIELDS:
            if store.get(key):
                store[key] = "***masked***"
        return data

    def config_hash(self) -> str:
        payload = json.dumps(self.model_dump(), sort_keys=True, default=str)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
