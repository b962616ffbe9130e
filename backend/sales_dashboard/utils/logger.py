from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from ..config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _logs_dir() -> Path:
    if settings.LOG_DIR:
        return Path(settings.LOG_DIR)
    return Path(__file__).resolve().parents[2] / "logs"  # backend/logs


def setup_logging(log_file: Optional[Path] = None) -> None:
    """Send every logger to the console and a rotating dashboard.log, at LOG_LEVEL."""
    if log_file is None:
        logs_dir = _logs_dir()
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / "dashboard.log"

    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    # avoid duplicate handlers if reloaded
    for h in list(root.handlers):
        root.removeHandler(h)

    handlers = [
        RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=5, encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # uvicorn installs its own handlers; route its loggers through ours
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).handlers = root.handlers


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"sales_dashboard.{name}")
