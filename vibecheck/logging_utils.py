"""Logging helpers."""

import logging
import os
from logging.handlers import RotatingFileHandler

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str | int = logging.INFO, log_dir: str | None = None) -> logging.Logger:
    """Attach handlers to the ``vibecheck`` logger once.

    Always logs to stderr; also writes ``vibecheck.log`` (rotated at 2 MB)
    when *log_dir* is given.
    """
    logger = logging.getLogger("vibecheck")
    logger.setLevel(level)

    if not logger.handlers:
        fmt = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        logger.addHandler(stream)

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            handler = RotatingFileHandler(
                os.path.join(log_dir, "vibecheck.log"),
                maxBytes=2_000_000,
                backupCount=3,
            )
            handler.setFormatter(fmt)
            logger.addHandler(handler)

    return logger
