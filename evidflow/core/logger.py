from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .profiles import _work_dir

LOGGER_NAME = "evidflow"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
MAX_LOG_BYTES = 2 * 1024 * 1024
LOG_BACKUPS = 3

_LOGGER: logging.Logger | None = None


def _handlers(log_path: Path) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    file_handler = RotatingFileHandler(log_path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    console = logging.StreamHandler(sys.stdout)
    for handler in (file_handler, console):
        handler.setFormatter(formatter)
    return [file_handler, console]


def get_logger(log_dir: Path | None = None) -> logging.Logger:
    """Return the ``evidflow`` logger, wiring its handlers on first use.

    Records go to ``<work>/logs/app.log`` (rotated) and to stdout. Modules
    log through ``logging.getLogger(__name__)`` and reach these handlers as
    children of ``evidflow``. ``EVIDFLOW_LOG_LEVEL`` sets the initial level.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    directory = Path(log_dir) if log_dir is not None else _work_dir() / "logs"
    directory.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(os.getenv("EVIDFLOW_LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    for handler in _handlers(directory / "app.log"):
        logger.addHandler(handler)

    _LOGGER = logger
    return logger
