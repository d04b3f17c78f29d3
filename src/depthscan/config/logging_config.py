"""Logging setup shared by the GUI entry point."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILENAME = "depthscan.log"


def setup_logging(level: str | int = "INFO", log_dir: Path | None = None) -> None:
    """Configure console logging and, when ``log_dir`` is given, a log file."""
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            numeric = logging.INFO
    else:
        numeric = int(level)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8"))

    logging.basicConfig(level=numeric, format=LOG_FORMAT, handlers=handlers, force=True)
