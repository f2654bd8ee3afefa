"""
Logging Setup

Configures the ``GemVault`` logger hierarchy with a console handler and,
optionally, a size-rotated JSON-lines file handler. Credentials that end up
in structured fields are masked before they reach disk.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from GemVault.config.models import LoggingConfig

ROOT_LOGGER_NAME = "GemVault"
_SENSITIVE_KEYS = {"authorization", "access_key_id", "secret_access_key", "session_token", "password", "token"}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Return a copy of ``payload`` with credential fields masked.

    Examples:
        >>> mask_sensitive_data({"secret_access_key": "abc", "key": "metadata/yaml"})
        {'secret_access_key': '***masked***', 'key': 'metadata/yaml'}
    """
    return {
        key: "***masked***" if key.lower() in _SENSITIVE_KEYS else value
        for key, value in payload.items()
    }


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            log_obj.update(record.extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj))


def get_logger(component: str) -> logging.Logger:
    """Return the logger for a GemVault component (``GemVault.<component>``)."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")


def setup_logging(config: LoggingConfig, log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure handlers on the ``GemVault`` logger.

    Handlers installed by a previous call are removed first, so calling this
    repeatedly (tests, CLI re-entry) does not duplicate output.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_gemvault_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    stream_handler._gemvault_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    target_dir = log_dir or (Path(config.json_log_dir) if config.json_log_dir else None)
    if target_dir is not None:
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            target_dir / "gemvault.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._gemvault_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


__all__ = ["setup_logging", "get_logger", "mask_sensitive_data", "JSONFormatter"]
