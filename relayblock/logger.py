import logging
import sys
from pathlib import Path

from .config import LOG_FORMAT, LOGGER_NAME


def setup_logger(name: str = LOGGER_NAME, log_file: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """Console (stderr) handler plus an optional file handler, installed once."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT)

    # prevent duplicate handlers if setup_logger() is called twice
    if not logger.handlers:
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(fmt)
        logger.addHandler(ch)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_file)
            fh.setFormatter(fmt)
            logger.addHandler(fh)

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
