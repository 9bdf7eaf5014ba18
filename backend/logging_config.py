"""Logging setup shared by the API process and the command-line scripts."""

import logging
from typing import Optional

from config import settings

# Event log rows are written from a worker thread, so the thread name is kept
LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty client libraries; their request traces stay at WARNING
QUIET_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "simple_salesforce",
    "urllib3",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
)


def setup_logging(level: Optional[str] = None) -> None:
    """Install the root handler.

    ``level`` overrides ``settings.LOG_LEVEL``; scripts pass it from the
    command line.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        level=logging.getLevelName(level_name),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
