from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import AppConfig, LoggingSettings, load_app_config
from core.logging_setup import configure_logging


def test_load_app_config_defaults_when_missing(tmp_path: Path) -> None:
    cfg = load_app_config(tmp_path / "missing.json", environ={})
    assert isinstance(cfg, AppConfig)
    assert cfg.storage.prefix == "kv_store_"
    assert cfg.storage.directory is None
    assert cfg.history_limit == 10
    assert cfg.defaults.server_address == "10.31.17.1"
    assert cfg.defaults.transport_port == "18515"
    assert cfg.defaults.secondary_port == "1"


def test_load_app_config_from_env_path(tmp_path: Path) -> None:
    path = tmp_path / "kvweb.json"
    path.write_text(
        json.dumps({"history_limit": 5, "storage": {"prefix": "custom_"}}),
        encoding="utf-8",
    )

    cfg = load_app_config(environ={"KVWEB_CONFIG": str(path)})
    assert cfg.history_limit == 5
    assert cfg.storage.prefix == "custom_"


def test_storage_dir_env_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "kvweb.json"
    path.write_text(json.dumps({"storage": {"directory": "/elsewhere"}}), encoding="utf-8")

    cfg = load_app_config(path, environ={"KVWEB_STORAGE_DIR": str(tmp_path)})
    assert cfg.storage.directory == str(tmp_path)


def test_load_app_config_validation_error(tmp_path: Path) -> None:
    path = tmp_path / "kvweb.json"
    path.write_text(json.dumps({"history_limit": 0}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_app_config(path, environ={})


def test_configure_logging_adds_handlers_once(tmp_path: Path) -> None:
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    settings = LoggingSettings(level="debug", file=str(tmp_path / "logs" / "kvweb.log"))
    try:
        configure_logging(settings)
        configure_logging(settings)

        added = [h for h in root.handlers if h not in before]
        assert len([h for h in added if isinstance(h, RotatingFileHandler)]) == 1
        assert len(added) == 2
        assert root.level == logging.DEBUG
        assert (tmp_path / "logs").is_dir()
    finally:
        root.setLevel(level)
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
                h.close()
