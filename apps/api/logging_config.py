"""Logging setup for the API process.

Handlers are attached to the root logger once; modules keep using
``logging.getLogger(__name__)``.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .settings import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure root logging from LOG_LEVEL / LOG_FILE.

    A rotating file handler (~1MB, three backups) is added only when a log
    file is configured. Calling this more than once is a no-op.
    """
    global _configured
    if _configured:
        return

    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    path = log_file or settings.LOG_FILE
    if path:
        file_handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    _configured = True
