"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers kept at WARNING unless running at DEBUG
NOISY_LOGGERS = ("uvicorn.access", "ultralytics")


def setup_logging(log_path: Optional[str], log_level: str, quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """
    Configure the root logger once for the process.

    Args:
        log_path: File to append to; None logs to the console only.
        log_level: Level name, e.g. "INFO".
        quiet: Logger names held at WARNING unless log_level is DEBUG.
    """
    level = getattr(logging, str(log_level).upper())

    handlers = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.insert(0, logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    if level > logging.DEBUG:
        for name in quiet:
            logging.getLogger(name).setLevel(logging.WARNING)
