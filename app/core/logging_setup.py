from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: LoggingSettings) -> None:
    """Configure the root logger once; safe to call on every Streamlit rerun."""
    root = logging.getLogger()
    root.setLevel(settings.level.upper())
    formatter = logging.Formatter(LOG_FORMAT)

    # Avoid adding duplicate handlers on reruns
    if not any(getattr(h, "_kvweb", False) for h in root.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        stream._kvweb = True
        root.addHandler(stream)

    if settings.file and not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
