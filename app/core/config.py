"""
Purpose: App settings (session defaults, storage location, history limit,
logging). Loaded once per process; validation is performed by Pydantic.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

CONFIG_ENV = "KVWEB_CONFIG"
STORAGE_DIR_ENV = "KVWEB_STORAGE_DIR"


class SessionDefaults(BaseModel):
    """Values pre-filled in the connect form. Passed through unparsed."""

    server_address: str = Field(default="10.31.17.1")
    transport_port: str = Field(default="18515")
    secondary_port: str = Field(default="1")


class StorageSettings(BaseModel):
    prefix: str = Field(default="kv_store_")
    directory: Optional[str] = Field(
        default=None,
        description="Directory for file-backed storage; in-memory when omitted.",
    )


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO")
    file: Optional[str] = Field(default=None, description="Optional rotating log file.")
    max_size_mb: int = Field(
        default=10, ge=1, description="Max size of a log file in MB before rolling."
    )
    backup_count: int = Field(default=5, ge=1, description="Number of log archives to keep.")


class AppConfig(BaseModel):
    defaults: SessionDefaults = Field(default_factory=SessionDefaults)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    history_limit: int = Field(default=10, ge=1, le=1000)
    sync_refresh_seconds: float = Field(default=2.0, gt=0)


def _read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_app_config(
    path: Optional[Path] = None, environ: Optional[dict[str, str]] = None
) -> AppConfig:
    """Load config from `path`, else from $KVWEB_CONFIG.

    - If neither is set or the file is missing: defaults.
    - $KVWEB_STORAGE_DIR overrides storage.directory.
    """
    env = os.environ if environ is None else environ

    if path is None:
        raw_path = (env.get(CONFIG_ENV) or "").strip()
        path = Path(raw_path).expanduser() if raw_path else None

    if path is not None and path.exists():
        config = AppConfig.model_validate(_read_json(path))
    else:
        config = AppConfig()

    storage_dir = (env.get(STORAGE_DIR_ENV) or "").strip()
    if storage_dir:
        storage = config.storage.model_copy(update={"directory": storage_dir})
        config = config.model_copy(update={"storage": storage})

    return config
