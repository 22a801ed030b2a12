from __future__ import annotations

import logging
import sys

from faxbridge.core.settings import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOGGING_INITIALIZED = False


def setup_logging(settings: Settings) -> None:
    """Route the root logger and the uvicorn loggers through one stdout handler."""

    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log = logging.getLogger(logger_name)
        log.handlers = [handler]
        log.propagate = False

    # watchdog logs every inotify event at DEBUG
    logging.getLogger("watchdog").setLevel(max(logging.INFO, root.level))

    _LOGGING_INITIALIZED = True
