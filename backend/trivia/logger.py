from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5

_configured = False


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Attach console and rotating file handlers to the package logger.

    Safe to call more than once; only the first call installs handlers.
    ``combined.log`` receives everything at ``level`` and above, ``error.log``
    only errors.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger("backend.trivia")
    root.setLevel(level.upper())
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        combined = RotatingFileHandler(
            os.path.join(log_dir, "combined.log"), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS
        )
        combined.setFormatter(formatter)
        root.addHandler(combined)

        errors = RotatingFileHandler(
            os.path.join(log_dir, "error.log"), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS
        )
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        root.addHandler(errors)

    _configured = True
