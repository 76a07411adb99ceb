# === NAVMAP v1 ===
# {
#   "module": "DocStyles.ComponentDownload.settings",
#   "purpose": "Environment-driven settings for the component downloader",
#   "sections": [
#     {"id": "settings", "name": "ComponentSettings", "anchor": "class-componentsettings", "kind": "class"},
#     {"id": "accessors", "name": "get_settings / reset_settings", "anchor": "ACC", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Runtime settings for the component downloader.

Settings are read from ``DOCSTYLES_*`` environment variables (and an optional
``.env`` file) through Pydantic v2 ``BaseSettings``.  The cache root is only a
default here; the archive cache and the component collections take it as an
explicit argument so tests can point every collection at a temporary directory.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Optional

import platformdirs
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "DEFAULT_CACHE_ROOT",
    "ComponentSettings",
    "get_settings",
    "reset_settings",
]

DEFAULT_CACHE_ROOT = Path("build") / "cloud-archives"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ComponentSettings(BaseSettings):
    """Settings controlling cache placement, HTTP behaviour, and logging."""

    cache_root: Path = Field(
        default=DEFAULT_CACHE_ROOT,
        description="Directory holding extracted remote archives, one subdirectory per cache key",
    )
    connect_timeout: float = Field(default=10.0, gt=0, description="HTTP connect timeout (s)")
    read_timeout: float = Field(default=60.0, gt=0, description="HTTP read timeout (s)")
    lock_timeout: float = Field(
        default=600.0,
        gt=0,
        description="Maximum time to wait for another process extracting the same archive (s)",
    )
    user_agent: str = Field(default="DocStyles-ComponentDownload/0.1")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_dir: Optional[Path] = Field(
        default=None,
        description="Directory for JSONL log files; defaults to the platform log directory",
    )

    model_config = SettingsConfigDict(
        env_prefix="DOCSTYLES_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        upper = value.strip().upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return upper

    def resolved_log_dir(self) -> Path:
        """Return the log directory, falling back to the platform default."""

        if self.log_dir is not None:
            return self.log_dir
        return Path(platformdirs.user_log_dir("docstyles"))

    def config_hash(self) -> str:
        """Return a short deterministic digest of the effective settings."""

        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


_settings: Optional[ComponentSettings] = None
_settings_lock = threading.Lock()


def get_settings() -> ComponentSettings:
    """Return the process-wide settings, loading them on first use."""

    global _settings
    if _settings is not None:
        return _settings
    with _settings_lock:
        if _settings is None:
            _settings = ComponentSettings()
            logging.getLogger("DocStyles.ComponentDownload").debug(
                "settings loaded",
                extra={"stage": "config", "config_hash": _settings.config_hash()},
            )
        return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment.

    Intended for tests.
    """

    global _settings
    with _settings_lock:
        _settings = None
