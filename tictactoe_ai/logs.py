import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from .persistence import DATA_DIR

LOG_DIR = os.path.join(DATA_DIR, "logs")
LOGGER_NAME = "tictactoe_ai"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def init_logger(log_dir: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """Attach a rotating file handler to the package logger (idempotent)."""
    log_dir = log_dir or LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    # Fresh handler each launch; closed handlers can block writes.
    shutdown_logger()
    log_path = os.path.join(log_dir, "app.log")
    handler = RotatingFileHandler(log_path, maxBytes=200_000, backupCount=3, encoding="utf-8", delay=True)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def shutdown_logger() -> None:
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        try:
            h.flush()
            h.close()
        except OSError:
            pass
