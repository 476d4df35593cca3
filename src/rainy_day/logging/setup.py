"""Loguru configuration: colored console for development, JSON lines in production."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from omegaconf import DictConfig

_PRETTY_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Drivers and clients that log every connection / request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "pymongo", "urllib3")

# Servers whose own handlers are replaced so their records reach loguru
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class _InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(cfg: DictConfig) -> None:
    """Install the loguru sink described by the ``logging`` config section.

    Parameters
    ----------
    cfg:
        Keys ``level``, ``colored`` and ``format`` (``"pretty"`` or
        ``"structured"``).
    """
    logger.remove()

    level: str = str(cfg.get("level", "INFO")).upper()
    structured: bool = cfg.get("format", "pretty") == "structured"

    if structured:
        logger.add(sys.stderr, level=level, serialize=True, colorize=False)
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_PRETTY_FORMAT,
            colorize=bool(cfg.get("colored", True)),
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [_InterceptHandler()]
        server_logger.propagate = False
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured", level=level, structured=structured)
