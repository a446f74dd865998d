from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Union

LOGGER_NAME = "tempsudo"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(message)s"


def setup_logging(
    log_dir: str = "logs",
    *,
    level: Union[int, str] = logging.INFO,
    filename: str = "tempsudo.log",
    max_bytes: int = 1_000_000,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the `tempsudo` logger: a rotating file under `log_dir` plus stderr.

    Calling it again points the file handler at the new location instead of
    stacking a second one.
    """
    os.makedirs(log_dir, exist_ok=True)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    path = os.path.abspath(os.path.join(log_dir, filename))
    for h in list(logger.handlers):
        if isinstance(h, RotatingFileHandler) and h.baseFilename != path:
            logger.removeHandler(h)
            h.close()
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        fh = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(fh)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        logger.addHandler(logging.StreamHandler())

    return logger
