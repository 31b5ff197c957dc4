"""
Logging setup for the gateway process.

Two streams go to stdout:

* operational logs (``objectgate.*``, uvicorn, libraries) as colored text lines;
* domain events from ``objectgate.events`` as bare JSON lines, one per event,
  so log shippers can parse them without stripping prefixes or ANSI codes.

Event records still propagate to the root logger (so pytest's ``caplog`` and any
extra root handlers see them); the root text handler filters them out instead.
"""

import logging
import sys
from logging import config as logging_config

from objectgate.config import ServerSettings

EVENTS_LOGGER = "objectgate.events"
NOISY_LOGGERS = ("botocore", "boto3", "aiobotocore", "urllib3", "s3transfer")


class ColoredFormatter(logging.Formatter):
    """Text formatter that colors the level name when writing to a terminal."""

    COLOR_MAP = {
        "DEBUG": "\x1b[36m",
        "INFO": "\x1b[32m",
        "WARNING": "\x1b[33m",
        "ERROR": "\x1b[31m",
        "CRITICAL": "\x1b[41m",
    }
    RESET = "\x1b[0m"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool | None = None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = sys.stdout.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        original_levelname = record.levelname
        record.levelname = f"{self.COLOR_MAP.get(original_levelname, '')}{original_levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class EventFormatter(logging.Formatter):
    """Writes the event payload untouched; ``StructuredLogger`` already rendered it as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class ExcludeLoggerFilter(logging.Filter):
    """Drops records emitted by ``name`` or its children."""

    def __init__(self, name: str = ""):
        super().__init__()
        self.excluded = name

    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name == self.excluded or record.name.startswith(f"{self.excluded}."))


def configure_logging(level: str | None = None) -> None:
    """Install stdout handlers. ``level`` defaults to ``SERVER_LOG_LEVEL``."""
    level = (level or ServerSettings().log_level).upper()

    default_fmt = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
    access_fmt = "%(asctime)s %(levelname)-5s %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    cfg = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "no_events": {"()": "objectgate.logging_config.ExcludeLoggerFilter", "name": EVENTS_LOGGER},
        },
        "formatters": {
            "default": {"()": "objectgate.logging_config.ColoredFormatter", "fmt": default_fmt, "datefmt": datefmt},
            "access": {"()": "objectgate.logging_config.ColoredFormatter", "fmt": access_fmt, "datefmt": datefmt},
            "events": {"()": "objectgate.logging_config.EventFormatter"},
        },
        "handlers": {
            "default": {"class": "logging.StreamHandler", "formatter": "default", "filters": ["no_events"], "stream": "ext://sys.stdout"},
            "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": "ext://sys.stdout"},
            "events": {"class": "logging.StreamHandler", "formatter": "events", "stream": "ext://sys.stdout"},
        },
        "loggers": {
            EVENTS_LOGGER: {"handlers": ["events"], "level": level},
            "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["access"], "level": level, "propagate": False},
        },
        "root": {"handlers": ["default"], "level": level},
    }

    logging_config.dictConfig(cfg)

    # External libraries are chatty at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging", "ColoredFormatter", "EventFormatter", "ExcludeLoggerFilter", "EVENTS_LOGGER"]
