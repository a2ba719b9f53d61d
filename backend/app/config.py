"""Upload service configuration.

Loads settings from ``uploader.settings.yaml``:

    server:
      host: 0.0.0.0
      port: 8000
    logging:
      level: info
    sessions:
      ttl_seconds: 300
      max_payload_bytes: 52428800
      sweep_enabled: true
      sweep_interval_seconds: 60

Every key is optional. A missing file yields the defaults.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from app.sessions.schemas import DEFAULT_MAX_PAYLOAD_BYTES, DEFAULT_TTL_SECONDS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("uploader.settings.yaml")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000


class LoggingSettings(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"

    @field_validator("level", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class SessionSettings(BaseModel):
    """Upload session lifetime and limits."""
    ttl_seconds:            int  = Field(DEFAULT_TTL_SECONDS, gt=0)
    max_payload_bytes:      int  = Field(DEFAULT_MAX_PAYLOAD_BYTES, gt=0)
    sweep_enabled:          bool = True
    sweep_interval_seconds: int  = Field(60, gt=0)


class AppConfig(BaseModel):
    server:   ServerSettings  = Field(default_factory=ServerSettings)
    logging:  LoggingSettings = Field(default_factory=LoggingSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

_config: Optional[AppConfig] = None


def load_config(settings_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load settings from *settings_path* (default: ``uploader.settings.yaml``)."""
    path = Path(settings_path) if settings_path else SETTINGS_FILE
    config = AppConfig(**_load_yaml(path))
    logger.info(
        "Settings loaded (server=%s:%s, session ttl=%ss, max payload=%d bytes, sweep=%s)",
        config.server.host,
        config.server.port,
        config.sessions.ttl_seconds,
        config.sessions.max_payload_bytes,
        config.sessions.sweep_enabled,
    )
    return config


def get_config() -> AppConfig:
    """Return the cached config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config (for testing)."""
    global _config
    _config = None
